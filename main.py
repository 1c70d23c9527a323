import logging
import os
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Query, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.database import Database
from starlette.exceptions import HTTPException as StarletteHTTPException

import database
from database import get_db
from errors import ApiError, MethodNotAllowed, NotFound
from materials import create_material, delete_material, list_materials, update_material
from quotes import create_quote, delete_quote, list_quotes, update_quote
from schemas import MaterialIn, MaterialPatch, QuoteIn

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)

KNOWN_PATHS = {"/", "/test", "/produtos", "/orcamentos"}


@asynccontextmanager
async def lifespan(app: FastAPI):
    # An unreachable database stops the server from starting
    if database.db is not None:
        database.ping(database.db)
        database.ensure_indexes(database.db)
        logger.info("Conectado ao MongoDB: %s", database.DATABASE_NAME)
    else:
        logger.warning("DATABASE_URL/DATABASE_NAME não configurados")
    yield


app = FastAPI(title="Orçamento Papelaria API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",")],
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)


# Errors are always {"message": ...}

@app.exception_handler(ApiError)
async def api_error_handler(request: Request, exc: ApiError):
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    fields = sorted({str(err["loc"][-1]) for err in exc.errors() if err.get("loc")})
    message = "Campos obrigatórios faltando ou inválidos"
    if fields:
        message += ": " + ", ".join(fields)
    return JSONResponse(status_code=400, content={"message": message})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 405:
        # Any verb on an unknown path is a 404, not a 405
        if request.url.path not in KNOWN_PATHS:
            return await api_error_handler(request, unknown_resource_error(request.url.path))
        return await api_error_handler(request, MethodNotAllowed())
    return JSONResponse(status_code=exc.status_code, content={"message": str(exc.detail)}, headers=exc.headers)


@app.get("/")
def read_root():
    return {"message": "Orçamento Papelaria Backend Running"}


@app.get("/test")
def test_database():
    response = {"backend": "✅ Running", "database": "❌ Not Available"}
    try:
        if database.db is not None:
            response["database"] = "✅ Connected"
            response["collections"] = {
                name: database.db[name].count_documents({})
                for name in (database.MATERIALS, database.QUOTES)
            }
        else:
            response["database"] = "❌ Not Configured"
    except Exception as e:
        logger.warning("Diagnóstico do banco falhou: %s", e)
        response["database"] = f"⚠️ Error: {str(e)[:80]}"
    return response


@app.options("/{path:path}")
def preflight(path: str):
    return Response(status_code=200)


# Products (materials)
@app.get("/produtos")
def get_produtos(db: Database = Depends(get_db)):
    return list_materials(db)


@app.post("/produtos", status_code=201)
def post_produto(material: MaterialIn, db: Database = Depends(get_db)):
    return create_material(db, material)


@app.put("/produtos")
def put_produto(patch: MaterialPatch, id: str = Query(...), db: Database = Depends(get_db)):
    return update_material(db, id, patch)


@app.delete("/produtos", status_code=204)
def delete_produto(id: str = Query(...), db: Database = Depends(get_db)):
    delete_material(db, id)
    return Response(status_code=204)


# Quotes
@app.get("/orcamentos")
def get_orcamentos(db: Database = Depends(get_db)):
    return list_quotes(db)


@app.post("/orcamentos", status_code=201)
def post_orcamento(quote: QuoteIn, db: Database = Depends(get_db)):
    return create_quote(db, quote)


@app.put("/orcamentos")
def put_orcamento(quote: QuoteIn, id: str = Query(...), db: Database = Depends(get_db)):
    return update_quote(db, id, quote)


@app.delete("/orcamentos", status_code=204)
def delete_orcamento(id: str = Query(...), db: Database = Depends(get_db)):
    delete_quote(db, id)
    return Response(status_code=204)


def unknown_resource_error(path: str) -> NotFound:
    return NotFound(f"Endpoint '{path}' não encontrado. Use /produtos ou /orcamentos.")


@app.api_route("/{recurso:path}", methods=["GET", "POST", "PUT", "DELETE"])
def unknown_resource(recurso: str):
    raise unknown_resource_error("/" + recurso)


if __name__ == "__main__":
    import uvicorn
    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", 8000))
    logger.info("Servidor de orçamentos em http://%s:%s", host, port)
    uvicorn.run(app, host=host, port=port)
