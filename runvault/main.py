"""Run vault application - FastAPI entry point."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .config import LOG_LEVEL
from .database import init_db
from .errors import VaultError
from .middleware import AuthMiddleware

# Import routers
from .routes.vault import router as vault_router
from .routes.photos import router as photos_router
from .routes.events import router as events_router
from .routes.storage import router as storage_router

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup: runs before the application starts accepting requests
    init_db()
    yield


app = FastAPI(title="Run Vault", lifespan=lifespan)

app.add_middleware(AuthMiddleware)


async def vault_error_handler(request: Request, exc: VaultError):
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


app.add_exception_handler(VaultError, vault_error_handler)


@app.get("/health")
def health():
    return {"status": "ok"}


# Include routers
app.include_router(vault_router)
app.include_router(photos_router)
app.include_router(events_router)
app.include_router(storage_router)
