from fastapi import APIRouter

router = APIRouter(tags=["health"])

SERVICE_NAME = "podcast-backend"


@router.get("/healthz")
def healthz() -> dict[str, str]:
    """Liveness only; provider and database readiness surface on the preview endpoint."""

    return {"status": "ok", "service": SERVICE_NAME}
