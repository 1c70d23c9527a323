from unittest.mock import MagicMock

import pytest
from bson import ObjectId
from pydantic import ValidationError as SchemaError
from pymongo.errors import ServerSelectionTimeoutError

import identifiers
from errors import Conflict, InvalidIdentifier, NotFound, StoreError, ValidationError
from materials import create_material, delete_material, list_materials, update_material
from quotes import is_material_in_use
from schemas import MaterialIn, MaterialPatch


def test_create_coerces_and_defaults(db, papel_a4):
    papel_a4["quantidade"] = "10"
    created = create_material(db, MaterialIn(**papel_a4))

    assert isinstance(created["id"], str)
    assert identifiers.encode(identifiers.decode(created["id"])) == created["id"]
    assert created["quantidade"] == 10.0
    assert isinstance(created["quantidade"], float)
    assert created["precoAnterior"] == 0
    assert created["createdAt"] == created["updatedAt"]
    assert db.materials.count_documents({}) == 1


@pytest.mark.parametrize("field", ["quantidade", "descricao", "precoPacote", "loja", "valorFinalUnitario"])
def test_create_requires_every_field(papel_a4, field):
    del papel_a4[field]
    with pytest.raises(SchemaError):
        MaterialIn(**papel_a4)


@pytest.mark.parametrize("field", ["descricao", "loja", "precoPacote"])
def test_create_rejects_blank(papel_a4, field):
    papel_a4[field] = "  "
    with pytest.raises(SchemaError):
        MaterialIn(**papel_a4)


def test_list_sorted_by_descricao(db, papel_a4):
    for name in ["Tinta", "Cola", "Papel A4", "Envelope"]:
        create_material(db, MaterialIn(**{**papel_a4, "descricao": name}))

    names = [m["descricao"] for m in list_materials(db)]
    assert names == ["Cola", "Envelope", "Papel A4", "Tinta"]


def test_partial_update_only_touches_sent_fields(db, papel_a4):
    created = create_material(db, MaterialIn(**papel_a4))

    updated = update_material(db, created["id"], MaterialPatch(precoPacote="30", precoAnterior=25))

    assert updated["precoPacote"] == 30.0
    assert updated["precoAnterior"] == 25.0
    assert updated["descricao"] == "Papel A4"
    assert updated["loja"] == "Loja X"
    assert updated["createdAt"] == db.materials.find_one()["createdAt"]


def test_update_without_fields(db, papel_a4):
    created = create_material(db, MaterialIn(**papel_a4))
    with pytest.raises(ValidationError):
        update_material(db, created["id"], MaterialPatch())


def test_update_ignores_explicit_nulls(db, papel_a4):
    created = create_material(db, MaterialIn(**papel_a4))
    with pytest.raises(ValidationError):
        update_material(db, created["id"], MaterialPatch(descricao=None))


def test_update_missing_document(db):
    with pytest.raises(NotFound):
        update_material(db, str(ObjectId()), MaterialPatch(loja="Loja Y"))


def test_update_invalid_id(db):
    with pytest.raises(InvalidIdentifier):
        update_material(db, "abc", MaterialPatch(loja="Loja Y"))


def test_delete_unused(db, papel_a4):
    created = create_material(db, MaterialIn(**papel_a4))
    delete_material(db, created["id"])
    assert db.materials.count_documents({}) == 0


def test_delete_in_use_is_refused(db, papel_a4):
    created = create_material(db, MaterialIn(**papel_a4))
    oid = ObjectId(created["id"])
    db.quotes.insert_one({
        "cliente": "Ana",
        "itens": [
            {"_id": ObjectId(), "materiais": []},
            {"_id": ObjectId(), "materiais": [{"_id": ObjectId(), "materialId": oid}]},
        ],
    })

    assert is_material_in_use(db, oid)
    with pytest.raises(Conflict):
        delete_material(db, created["id"])
    assert db.materials.count_documents({"_id": oid}) == 1


def test_delete_missing(db):
    with pytest.raises(NotFound):
        delete_material(db, str(ObjectId()))


def test_delete_invalid_id_does_not_touch_store():
    store = MagicMock()
    with pytest.raises(InvalidIdentifier):
        delete_material(store, "not-a-valid-id")
    store.__getitem__.assert_not_called()


def test_store_failure_is_store_error():
    store = MagicMock()
    store.__getitem__.return_value.find.side_effect = ServerSelectionTimeoutError("down")
    with pytest.raises(StoreError):
        list_materials(store)
