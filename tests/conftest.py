import mongomock
import pytest
from fastapi.testclient import TestClient

from database import get_db
from main import app


@pytest.fixture
def db():
    return mongomock.MongoClient().orcamento_papelaria


@pytest.fixture
def client(db):
    app.dependency_overrides[get_db] = lambda: db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def papel_a4():
    return {
        "quantidade": 10,
        "descricao": "Papel A4",
        "precoPacote": 25.0,
        "loja": "Loja X",
        "valorFinalUnitario": 0.5,
    }
