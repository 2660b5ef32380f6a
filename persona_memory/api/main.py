"""Main FastAPI application and server startup."""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from persona_memory.config.settings import load_settings
from persona_memory.errors import InvalidMemoryError, StoreUnavailableError
from persona_memory.telemetry import configure_logging
from .memory import models_router, router as memory_router

configure_logging(load_settings().logging)

app = FastAPI(
    title="Persona Memory API",
    description="Semantic memory for chat personas",
    version="1.0.0",
)

app.include_router(memory_router, prefix="/api")
app.include_router(models_router, prefix="/api")


@app.exception_handler(StoreUnavailableError)
async def store_unavailable_handler(request: Request, exc: StoreUnavailableError):
    return JSONResponse(status_code=503, content={"detail": str(exc)})


@app.exception_handler(InvalidMemoryError)
async def invalid_memory_handler(request: Request, exc: InvalidMemoryError):
    return JSONResponse(status_code=422, content={"detail": str(exc)})


@app.get("/health")
def health():
    """Health check endpoint."""
    return {"status": "ok"}
