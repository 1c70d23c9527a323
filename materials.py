"""
Material ("produto") storage.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List

from pymongo import ASCENDING, ReturnDocument
from pymongo.database import Database

import identifiers
from database import MATERIALS, store_errors
from errors import Conflict, NotFound, ValidationError
from quotes import is_material_in_use
from schemas import MaterialIn, MaterialPatch

logger = logging.getLogger(__name__)


def serialize(doc: Dict[str, Any]) -> Dict[str, Any]:
    out = dict(doc)
    out["id"] = identifiers.encode(out.pop("_id"))
    return out


def list_materials(db: Database) -> List[Dict[str, Any]]:
    with store_errors("buscar produtos"):
        docs = list(db[MATERIALS].find({}).sort("descricao", ASCENDING))
    return [serialize(d) for d in docs]


def create_material(db: Database, material: MaterialIn) -> Dict[str, Any]:
    now = datetime.now(timezone.utc)
    doc = {
        "quantidade": float(material.quantidade),
        "descricao": material.descricao,
        "precoPacote": float(material.precoPacote),
        "precoAnterior": float(material.precoAnterior),
        "loja": material.loja,
        "valorFinalUnitario": float(material.valorFinalUnitario),
        "createdAt": now,
        "updatedAt": now,
    }
    with store_errors("adicionar produto"):
        result = db[MATERIALS].insert_one(doc)
    doc["_id"] = result.inserted_id
    logger.info("Produto criado: %s (%s)", result.inserted_id, material.descricao)
    return serialize(doc)


def update_material(db: Database, material_id: str, patch: MaterialPatch) -> Dict[str, Any]:
    oid = identifiers.decode(material_id)
    changes = patch.changes()
    if not changes:
        raise ValidationError("Nenhum campo para atualizar.")
    changes["updatedAt"] = datetime.now(timezone.utc)
    with store_errors("atualizar produto"):
        updated = db[MATERIALS].find_one_and_update(
            {"_id": oid},
            {"$set": changes},
            return_document=ReturnDocument.AFTER,
        )
    if updated is None:
        raise NotFound("Produto não encontrado.")
    logger.info("Produto atualizado: %s %s", oid, sorted(changes))
    return serialize(updated)


def delete_material(db: Database, material_id: str) -> None:
    oid = identifiers.decode(material_id)
    # Check and delete are two round-trips; a quote written in between is not seen
    if is_material_in_use(db, oid):
        logger.warning("Produto %s em uso, remoção recusada", oid)
        raise Conflict()
    with store_errors("deletar produto"):
        result = db[MATERIALS].delete_one({"_id": oid})
    if result.deleted_count == 0:
        raise NotFound("Produto não encontrado.")
    logger.info("Produto removido: %s", oid)
