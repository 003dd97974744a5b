# backend/app/api/run.py
from typing import Any
from fastapi import APIRouter, HTTPException
from starlette.concurrency import run_in_threadpool

from backend.app.services import agent_service
from backend.app.status import run_status_store

router = APIRouter()


@router.get("/health")
async def health() -> dict:
    return {"status": "ok"}


@router.post("/check")
async def check_endpoint() -> dict:
    run_status_store.update(state="running", step="starting", detail="Starting check", metrics={})

    def progress_cb(step: str, event: dict[str, Any]) -> None:
        status_update: dict[str, Any] = {
            "state": "running",
            "step": step,
            "detail": event.get("detail"),
        }
        if "metrics" in event:
            status_update["metrics"] = event.get("metrics") or {}
        run_status_store.update(**status_update)

    try:
        # Gmail calls block; run them in a worker thread so FastAPI stays responsive.
        results = await run_in_threadpool(agent_service.run_once, progress_cb)
    except (RuntimeError, ValueError) as exc:
        # Missing credentials, unconfigured mailbox or invalid settings.
        run_status_store.update(state="error", step="error", detail=str(exc))
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    run_status_store.record_errors(results.get("errors") or [])
    run_status_store.update(
        state="done",
        step="done",
        detail="Check completed",
        summary=results,
        metrics={
            "checked_requests": results.get("checked_requests"),
            "pending_requests": results.get("pending_requests"),
            "notifications_sent": results.get("notifications_sent"),
            "errors": len(results.get("errors") or []),
        },
    )
    return {"ok": True, "results": results}


@router.get("/run/status")
async def run_status() -> dict:
    return {"ok": True, "status": run_status_store.snapshot()}
