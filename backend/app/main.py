# backend/app/main.py
import os
import threading
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from backend.app.api.notifications import router as notifications_router
from backend.app.api.run import router as run_router
from backend.app.services import agent_service, scheduler_loop
from leave_agent.config.settings import configure_logging

configure_logging()


@asynccontextmanager
async def lifespan(_app: FastAPI):
    stop_event = threading.Event()
    worker = None
    if os.getenv("LEAVE_AGENT_SCHEDULER") == "1":
        worker = threading.Thread(
            target=scheduler_loop,
            args=(agent_service, stop_event),
            name="leave-agent-scheduler",
            daemon=True,
        )
        worker.start()
    try:
        yield
    finally:
        stop_event.set()
        if worker is not None:
            worker.join(timeout=5)


app = FastAPI(title="leave-reply-agent API", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=[os.getenv("FRONTEND_URL", "http://localhost:5173")],
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(run_router, prefix="/api")
app.include_router(notifications_router, prefix="/api")
