"""
MongoDB access for the budgeting API.

Connection settings come from the environment (or a .env file):
- DATABASE_URL: MongoDB connection string
- DATABASE_NAME: database holding the "materials" and "quotes" collections
"""

import logging
import os
from contextlib import contextmanager

from dotenv import load_dotenv
from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.database import Database
from pymongo.errors import PyMongoError

from errors import StoreError

load_dotenv()

logger = logging.getLogger(__name__)

MATERIALS = "materials"
QUOTES = "quotes"

DATABASE_URL = os.getenv("DATABASE_URL")
DATABASE_NAME = os.getenv("DATABASE_NAME")

client = None
db = None

if DATABASE_URL and DATABASE_NAME:
    client = MongoClient(DATABASE_URL, tz_aware=True)
    db = client[DATABASE_NAME]


def get_db() -> Database:
    if db is None:
        raise StoreError("Banco de dados não configurado")
    return db


@contextmanager
def store_errors(action: str):
    """Translate driver failures into StoreError."""
    try:
        yield
    except PyMongoError as e:
        logger.error("Falha no banco de dados ao %s: %s", action, e, exc_info=True)
        raise StoreError(f"Erro ao {action}") from e


def ping(database: Database) -> None:
    database.command("ping")


def ensure_indexes(database: Database) -> None:
    database[MATERIALS].create_index([("descricao", ASCENDING)])
    database[QUOTES].create_index([("createdAt", DESCENDING)])
    # Lookup used before deleting a material
    database[QUOTES].create_index([("itens.materiais.materialId", ASCENDING)])
