"""FastAPI application for PaperForge."""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.routers import auth, originality, papers, research, stats
from paperforge.auth.provider import AuthProvider
from paperforge.config import Settings
from paperforge.errors import PaperForgeError
from paperforge.export.exporter import PaperExporter
from paperforge.generation.generator import PaperGenerator
from paperforge.knowledge_base.db import Database
from paperforge.llm.router import LLMRouter
from paperforge.originality.checker import OriginalityChecker

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    db: Optional[Database] = None,
    llm_router: Optional[LLMRouter] = None,
    generator: Optional[PaperGenerator] = None,
    checker: Optional[OriginalityChecker] = None,
    exporter: Optional[PaperExporter] = None,
) -> FastAPI:
    """Build the application and its collaborators.

    Anything passed in is used as-is; everything else is constructed from
    ``settings``.
    """
    settings = settings or Settings()
    db = db or Database(settings.db_path)
    db.initialize()
    llm_router = llm_router or LLMRouter(settings=settings, db=db)
    generator = generator or PaperGenerator(
        llm_router,
        timeout=settings.generation_timeout,
        temperature=settings.generation_temperature,
        max_tokens=settings.generation_max_tokens,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        app.state.db.close()

    app = FastAPI(title="PaperForge API", version="1.0.0", lifespan=lifespan)

    app.state.settings = settings
    app.state.db = db
    app.state.llm_router = llm_router
    app.state.generator = generator
    app.state.checker = checker or OriginalityChecker()
    app.state.exporter = exporter or PaperExporter()
    app.state.auth = AuthProvider(db)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    _install_error_handlers(app)

    # research before papers so /papers/generate and /papers/export win over /papers/{id}
    app.include_router(research.router, prefix="/api")
    app.include_router(papers.router, prefix="/api")
    app.include_router(originality.router, prefix="/api")
    app.include_router(auth.router, prefix="/api")
    app.include_router(stats.router, prefix="/api")

    @app.get("/api/health")
    async def health():
        return {"status": "ok"}

    return app


def _error_body(message: str, kind: str) -> dict:
    return {"error": message, "kind": kind}


def _install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(PaperForgeError)
    async def handle_paperforge_error(request: Request, exc: PaperForgeError):
        if exc.http_status >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(_error_body(exc.message, exc.kind), status_code=exc.http_status)

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        if errors:
            first = errors[0]
            field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
            message = f"{field}: {first.get('msg')}" if field else first.get("msg", "Invalid request")
        else:
            message = "Invalid request"
        return JSONResponse(_error_body(message, "invalid_request"), status_code=400)

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(_error_body("Internal server error", "server_error"), status_code=500)
