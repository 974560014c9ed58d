import threading
from typing import Optional

from fastapi import FastAPI
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel

from app import generator
from app.config import load_config
from app.state import GeneratorState
from app.console import log
from app.scheduler import PhaseScheduler

app = FastAPI()

STATE = GeneratorState()
cancel = threading.Event()
worker: Optional[threading.Thread] = None
sink = None
JOIN_TIMEOUT_SEC = 10.0


class StatusResponse(BaseModel):
    counter: int
    cycle: int
    phase: Optional[str] = None
    messages_sent: int
    batches_sent: int
    running: bool
    started_at: Optional[float] = None
    last_send_at: Optional[float] = None
    last_error: Optional[str] = None


def generator_thread(sink) -> None:
    try:
        PhaseScheduler(state=STATE).run(sink, cancel)
    except Exception as e:
        log(f"Generator crashed: {e!r}")
        raise
    finally:
        sink.close()


@app.on_event("startup")
async def on_startup():
    global worker, sink
    # StartupConfigError propagates and aborts host startup before any send
    config = load_config()
    sink = generator.open_sink(config)
    cancel.clear()
    worker = threading.Thread(target=generator_thread, args=(sink,), daemon=True)
    worker.start()


def stop_worker() -> None:
    cancel.set()
    if worker is None:
        return
    worker.join(timeout=JOIN_TIMEOUT_SEC)
    if worker.is_alive() and sink is not None:
        log(f"Generator still busy after {JOIN_TIMEOUT_SEC}s, closing the sink")
        sink.close()


@app.on_event("shutdown")
async def on_shutdown():
    # host unload: same path as an interrupt
    await run_in_threadpool(stop_worker)


@app.get("/api/health")
async def api_health():
    return {"ok": True}


@app.get("/api/status", response_model=StatusResponse)
async def api_status():
    return STATE.snapshot()


@app.post("/api/stop")
async def api_stop():
    already = cancel.is_set()
    cancel.set()
    return {"ok": True, "already_stopped": already}
