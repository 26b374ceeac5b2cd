from fastapi import APIRouter, Depends, Response

from paygate.api.deps import get_store
from paygate.services.store import KeyValueStore


router = APIRouter()


@router.get("/health")
def health() -> dict:
    """Liveness probe - always returns 200 if app is running."""
    return {"status": "ok"}


@router.get("/ready")
def readiness(response: Response, store: KeyValueStore = Depends(get_store)) -> dict:
    """Readiness probe - returns 503 if the state store is unavailable."""
    if store.ping():
        return {"status": "ready"}
    response.status_code = 503
    return {"status": "not_ready", "error": "store unavailable"}
