from contextlib import asynccontextmanager

from fastapi import FastAPI
from .db import close_pool
from .errors import register_error_handlers
from .logging_config import configure_logging
from .routes.health import router as health_router
from .routes.suppliers import router as suppliers_router

configure_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    close_pool()


app = FastAPI(
    title="ProcureTrack Supplier API",
    version="0.1.0",
    description="Supplier identity resolution and updates for extracted procurement documents.",
    lifespan=lifespan,
)

register_error_handlers(app)

app.include_router(health_router)
app.include_router(suppliers_router)
