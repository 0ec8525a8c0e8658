from __future__ import annotations

import logging

from fastapi import FastAPI
import httpx
import pytest

from app.api.routers.health import router as health_router
from app.core.logging import configure_logging


@pytest.mark.asyncio
async def test_healthz_reports_service() -> None:
    app = FastAPI()
    app.include_router(health_router)

    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://testserver") as client:
        response = await client.get("/healthz")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "service": "podcast-backend"}


def test_library_loggers_are_quieted_outside_debug() -> None:
    configure_logging("INFO")
    assert logging.getLogger("httpx").level == logging.WARNING

    configure_logging("debug")
    assert logging.getLogger("httpx").level == logging.DEBUG
