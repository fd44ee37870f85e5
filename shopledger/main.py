import logging
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager

from .core.db import create_all_tables
from .core.config import settings
from .core.exceptions import LedgerError
from .routers import clients, orders, editing, payments, salary, users, dashboard

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Iniciando la aplicación...")
    create_all_tables()
    yield
    logger.info("Cerrando la aplicación...")

app = FastAPI(
    lifespan=lifespan,
    title=settings.APP_NAME,
    description="Libro de cuentas de la tienda: órdenes, proyectos de edición, cobros y salarios",
    version=settings.APP_VERSION
)

# Configuración CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=settings.CORS_CREDENTIALS,
    allow_methods=settings.CORS_METHODS,
    allow_headers=settings.CORS_HEADERS,
)


@app.exception_handler(LedgerError)
async def ledger_exception_handler(request: Request, exc: LedgerError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


@app.get("/health")
def health():
    return {"status": "ok"}


# Agregar routers
app.include_router(users.router)
app.include_router(clients.router)
app.include_router(orders.router)
app.include_router(editing.router)
app.include_router(payments.router)
app.include_router(salary.router)
app.include_router(dashboard.router)
