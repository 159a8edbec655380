"""FastAPI application entry point."""

import os
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from errors import CultivateError
from web.deps import get_components, get_config, shutdown_components
from web.routes import artifacts, contacts, suggestions

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    if not os.getenv("CULTIVATE_JWT_SECRET"):
        logger.warning("web.jwt_secret_missing")
    config = get_config()
    get_components()["pipeline"].recover_interrupted()
    logger.info("web.startup", db=str(config.paths.db))
    yield
    await shutdown_components()
    logger.info("web.shutdown")


app = FastAPI(
    title="cultivate",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS: allow frontend origin
frontend_origin = os.getenv("FRONTEND_ORIGIN", "http://localhost:3000")
app.add_middleware(
    CORSMiddleware,
    allow_origins=[frontend_origin],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(CultivateError)
async def cultivate_error_handler(request: Request, exc: CultivateError):
    if exc.http_status >= 500:
        logger.error("web.request_failed", path=request.url.path, code=exc.code, error=exc.message)
    else:
        logger.info("web.request_rejected", path=request.url.path, code=exc.code, error=exc.message)
    return JSONResponse(status_code=exc.http_status, content=exc.to_dict())


# Mount routes
app.include_router(artifacts.router)
app.include_router(contacts.router)
app.include_router(suggestions.router)


@app.get("/api/health")
async def health():
    return {"status": "ok"}
