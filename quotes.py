"""
Quote ("orçamento") storage.

Line items and material usages are embedded subdocuments. They are rebuilt
from the payload on every create and replace, so their ids are always fresh.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from bson import ObjectId
from pymongo import DESCENDING, ReturnDocument
from pymongo.database import Database

import identifiers
from database import QUOTES, store_errors
from errors import NotFound, ValidationError
from schemas import LineItemIn, MaterialSnapshot, MaterialUsageIn, QuoteIn

logger = logging.getLogger(__name__)

REQUIRED_MESSAGE = "Cliente, data e itens são obrigatórios."


# Integrity guard

def is_material_in_use(db: Database, material_id: ObjectId) -> bool:
    """True when any material usage of any quote points at material_id."""
    with store_errors("verificar uso do material"):
        found = db[QUOTES].find_one({"itens.materiais.materialId": material_id}, {"_id": 1})
    return found is not None


# Building stored subdocuments

def _build_snapshot(snapshot: MaterialSnapshot) -> Dict[str, Any]:
    return {
        "_id": identifiers.decode_or_none(snapshot.id),
        "descricao": snapshot.descricao,
        "valorFinalUnitario": snapshot.valorFinalUnitario,
    }


def _build_usage(usage: MaterialUsageIn) -> Dict[str, Any]:
    doc = {
        "_id": ObjectId(),
        "materialId": identifiers.decode_or_none(usage.material_ref()),
        "quantidade": float(usage.quantidade),
        "folhasImpressas": float(usage.folhasImpressas),
        "custoMaterial": float(usage.custoMaterial),
        "custoFolhas": float(usage.custoFolhas),
        "custoTotal": float(usage.custoTotal),
    }
    if usage.material is not None:
        doc["material"] = _build_snapshot(usage.material)
    return doc


def _build_item(item: LineItemIn) -> Dict[str, Any]:
    return {
        "_id": ObjectId(),
        "nome": item.nome,
        "quantidade": float(item.quantidade),
        "percentualLucro": float(item.percentualLucro),
        "custoUnitario": float(item.custoUnitario),
        "custoTotal": float(item.custoTotal),
        "materiais": [_build_usage(u) for u in item.materiais],
    }


def build_items(itens: List[LineItemIn]) -> List[Dict[str, Any]]:
    return [_build_item(item) for item in itens]


def _check(quote: QuoteIn) -> None:
    if not quote.cliente or not quote.data or not quote.itens:
        raise ValidationError(REQUIRED_MESSAGE)


# Wire form

def _serialize_usage(usage: Dict[str, Any]) -> Dict[str, Any]:
    out = dict(usage)
    out["id"] = identifiers.encode_or_none(out.pop("_id", None))
    out["materialId"] = identifiers.encode_or_none(out.get("materialId"))
    snapshot = out.get("material")
    if isinstance(snapshot, dict):
        snapshot = dict(snapshot)
        snapshot["id"] = identifiers.encode_or_none(snapshot.pop("_id", None))
        out["material"] = snapshot
    return out


def _serialize_item(item: Dict[str, Any]) -> Dict[str, Any]:
    out = dict(item)
    out["id"] = identifiers.encode_or_none(out.pop("_id", None))
    out["materiais"] = [_serialize_usage(u) for u in item.get("materiais") or []]
    return out


def serialize(doc: Dict[str, Any]) -> Dict[str, Any]:
    out = dict(doc)
    out["id"] = identifiers.encode(out.pop("_id"))
    out["itens"] = [_serialize_item(i) for i in doc.get("itens") or []]
    return out


# Operations

def list_quotes(db: Database) -> List[Dict[str, Any]]:
    with store_errors("buscar orçamentos"):
        docs = list(db[QUOTES].find({}).sort("createdAt", DESCENDING))
    return [serialize(d) for d in docs]


def create_quote(db: Database, quote: QuoteIn) -> Dict[str, Any]:
    _check(quote)
    now = datetime.now(timezone.utc)
    doc = {
        "cliente": quote.cliente,
        "descricao": quote.descricao or "",
        "data": quote.data,
        "itens": build_items(quote.itens),
        "createdAt": now,
        "updatedAt": now,
    }
    with store_errors("salvar orçamento"):
        result = db[QUOTES].insert_one(doc)
    doc["_id"] = result.inserted_id
    logger.info("Orçamento criado: %s", result.inserted_id)
    return serialize(doc)


def update_quote(db: Database, quote_id: str, quote: QuoteIn) -> Dict[str, Any]:
    oid = identifiers.decode(quote_id)
    _check(quote)
    changes = {
        "cliente": quote.cliente,
        "descricao": quote.descricao or "",
        "data": quote.data,
        "itens": build_items(quote.itens),
        "updatedAt": datetime.now(timezone.utc),
    }
    with store_errors("atualizar orçamento"):
        updated: Optional[Dict[str, Any]] = db[QUOTES].find_one_and_update(
            {"_id": oid},
            {"$set": changes},
            return_document=ReturnDocument.AFTER,
        )
    if updated is None:
        raise NotFound("Orçamento não encontrado.")
    logger.info("Orçamento atualizado: %s", oid)
    return serialize(updated)


def delete_quote(db: Database, quote_id: str) -> None:
    oid = identifiers.decode(quote_id)
    with store_errors("deletar orçamento"):
        result = db[QUOTES].delete_one({"_id": oid})
    if result.deleted_count == 0:
        raise NotFound("Orçamento não encontrado.")
    logger.info("Orçamento removido: %s", oid)
