"""FastAPI application."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from ntask.api.routes.boards import router as boards_router
from ntask.api.routes.documents import router as documents_router
from ntask.api.routes.health import router as health_router
from ntask.api.routes.metrics import router as metrics_router
from ntask.config import get_settings
from ntask.db.engine import dispose_async_engine
from ntask.errors import NTaskError
from ntask.utils.logging import configure_logging


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    configure_logging(get_settings().log_level)
    yield
    await dispose_async_engine()


app = FastAPI(title="N-TASK API", version="0.1.0", lifespan=lifespan)


@app.exception_handler(NTaskError)
async def ntask_error_handler(request: Request, exc: NTaskError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code, content={"success": False, "error": exc.message}
    )


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    first = exc.errors()[0] if exc.errors() else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid request")
    error = f"{location}: {message}" if location else message
    return JSONResponse(status_code=400, content={"success": False, "error": error})


# Register routes
app.include_router(health_router, tags=["health"])
app.include_router(metrics_router, tags=["metrics"])
app.include_router(documents_router)
app.include_router(boards_router)


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {"message": "N-TASK API", "version": "0.1.0"}
