import logging
import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from app.api.v1.auth import router as auth_router
from app.api.v1.dashboard import router as dashboard_router
from app.api.v1.fornecedores import router as fornecedores_router
from app.api.v1.kits import router as kits_router
from app.api.v1.lojas import router as lojas_router
from app.chamados.router import router as chamados_router
from app.core.config import settings
from app.instalacoes.router import router as instalacoes_router
from app.rotas.router import router as rotas_router

if not logging.getLogger().handlers:
    logging.basicConfig(level=logging.INFO)

logger = logging.getLogger("rollout")

app = FastAPI(
    title=settings.APP_NAME,
    version="1.0.0",
    description="Rollout de instalacoes em lojas - rotas, evidencias fotograficas e chamados",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
def on_startup() -> None:
    # schema is created by `alembic upgrade head` or scripts/init_db.py, never here
    if settings.ENV.lower() == "production":
        if settings.SECRET_KEY == "dev-secret-change-me":
            logger.warning("SECRET_KEY esta usando valor padrao em producao.")
        if settings.SQLALCHEMY_DATABASE_URI.startswith("sqlite"):
            logger.warning("SQLALCHEMY_DATABASE_URI aponta para SQLite em producao.")


app.include_router(auth_router, prefix="/api")
app.include_router(dashboard_router, prefix="/api")
app.include_router(fornecedores_router, prefix="/api")
app.include_router(lojas_router, prefix="/api")
app.include_router(kits_router, prefix="/api")
app.include_router(instalacoes_router, prefix="/api")
app.include_router(rotas_router, prefix="/api")
app.include_router(chamados_router, prefix="/api")


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    duration_ms = (time.perf_counter() - start) * 1000
    logger.info(
        "request method=%s path=%s status=%s duration_ms=%.2f",
        request.method,
        request.url.path,
        response.status_code,
        duration_ms,
    )
    return response


@app.get("/api/health")
def health():
    return {"status": "ok"}
