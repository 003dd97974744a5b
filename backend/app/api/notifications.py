from __future__ import annotations

import asyncio
from typing import AsyncIterator, Optional

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import StreamingResponse
from pydantic import BaseModel
from starlette.concurrency import run_in_threadpool

from backend.app.services import agent_service
from leave_agent.notifications.push import PushChannel
from leave_agent.notifications.web import EventStreamChannel, serialize_record

router = APIRouter()

KEEPALIVE_SECONDS = 15.0
STREAM_QUEUE_SIZE = 100


class TokenRequest(BaseModel):
    token: str


def _push_channel() -> PushChannel:
    channel = agent_service.dispatcher.channel
    if not isinstance(channel, PushChannel):
        raise HTTPException(status_code=409, detail="Push notifications are not enabled.")
    return channel


def _web_channel() -> EventStreamChannel:
    channel = agent_service.dispatcher.channel
    if not isinstance(channel, EventStreamChannel):
        raise HTTPException(status_code=409, detail="Event stream notifications are not enabled.")
    return channel


@router.post("/notifications/test")
async def send_test_notification() -> dict:
    ok = await run_in_threadpool(agent_service.dispatcher.notify_test)
    return {"ok": ok, "channel": agent_service.dispatcher.channel.name}


@router.post("/notifications/tokens")
def register_token(body: TokenRequest) -> dict:
    channel = _push_channel()
    if not channel.registry.add(body.token.strip()):
        raise HTTPException(status_code=400, detail="Token must be a non-empty string.")
    return {"ok": True, "registered": len(channel.registry)}


@router.delete("/notifications/tokens")
def unregister_token(body: TokenRequest) -> dict:
    channel = _push_channel()
    channel.registry.remove(body.token.strip())
    return {"ok": True, "registered": len(channel.registry)}


@router.get("/notifications/recent")
def recent_notifications(limit: Optional[int] = None) -> dict:
    channel = agent_service.dispatcher.channel
    if not isinstance(channel, EventStreamChannel):
        return {"ok": True, "notifications": []}
    return {"ok": True, "notifications": [r.to_dict() for r in channel.recent(limit)]}


@router.get("/notifications/stream")
async def stream_notifications(request: Request, replay: bool = False) -> StreamingResponse:
    channel = _web_channel()
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue[str] = asyncio.Queue(maxsize=STREAM_QUEUE_SIZE)
    backlog = [serialize_record(r) for r in channel.recent()] if replay else []

    def listener(payload: str) -> None:
        # Called from the scan's worker thread; raises once the loop is gone.
        loop.call_soon_threadsafe(queue.put_nowait, payload)

    listener_id = channel.attach(listener)

    async def events() -> AsyncIterator[str]:
        try:
            for payload in backlog:
                yield f"data: {payload}\n\n"
            while not await request.is_disconnected():
                try:
                    payload = await asyncio.wait_for(queue.get(), timeout=KEEPALIVE_SECONDS)
                except asyncio.TimeoutError:
                    yield ": keep-alive\n\n"
                    continue
                yield f"data: {payload}\n\n"
        finally:
            channel.detach(listener_id)

    return StreamingResponse(
        events(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
