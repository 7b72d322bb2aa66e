from datetime import datetime, timezone

from fastapi import APIRouter, Request

router = APIRouter(prefix="/api/health", tags=["health"])


@router.get("")
async def health():
    return {"ok": True, "time": datetime.now(timezone.utc).isoformat()}


@router.get("/readiness")
async def readiness(request: Request):
    notifier_ok = bool(getattr(request.app.state.notifier, "enabled", True))
    store_ok = bool(getattr(request.app.state.store, "enabled", True))
    return {"ready": notifier_ok and store_ok, "notifier": notifier_ok, "store": store_ok}
