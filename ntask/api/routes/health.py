"""Health check endpoints.

- /health: liveness, always 200
- /healthz: database (when configured) and board store, 503 if either fails
"""

import json
import os
from typing import Any

from fastapi import APIRouter, Response
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from ntask.api.deps import get_board_store
from ntask.config import Settings, get_settings
from ntask.db.engine import get_async_engine
from ntask.graph.store import BoardStore, JsonFileStorage

router = APIRouter()


async def check_db(settings: Settings) -> tuple[bool, str]:
    """Check database connectivity.

    Returns:
        (is_ok, status_message)
    """
    if not settings.database_url:
        return (True, "in_memory")

    try:
        async with get_async_engine().connect() as conn:
            await conn.execute(text("SELECT 1"))
        return (True, "ok")
    except (SQLAlchemyError, OSError) as e:
        return (False, f"error: {type(e).__name__}")


def check_board_store(store: BoardStore) -> tuple[bool, str]:
    """Check that the board snapshot location is writable.

    Returns:
        (is_ok, status_message)
    """
    storage = store.storage
    if not isinstance(storage, JsonFileStorage):
        return (True, "in_memory")

    directory = storage.path.parent
    if directory.exists() and not os.access(directory, os.W_OK):
        return (False, "error: not_writable")
    return (True, "ok")


@router.get("/health")
async def health() -> dict[str, str]:
    """Simple health check for Docker/k8s.

    Returns:
        200 OK always (application is running)
    """
    return {"status": "ok"}


@router.get("/healthz", response_model=None)
async def healthz() -> dict[str, Any] | Response:
    """Component health check.

    Returns:
        200 with component status if all components are ok
        503 if any component fails
    """
    settings = get_settings()

    db_ok, db_status = await check_db(settings)
    store_ok, store_status = check_board_store(get_board_store())

    core_ok = db_ok and store_ok

    response_body = {
        "status": "ok" if core_ok else "degraded",
        "components": {
            "db": db_status,
            "board_store": store_status,
        },
    }

    if not core_ok:
        return Response(
            content=json.dumps(response_body),
            status_code=503,
            media_type="application/json",
        )

    return response_body
