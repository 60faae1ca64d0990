"""FastAPI web server for chat-mirror."""

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, HTTPException
from fastapi.responses import HTMLResponse
from pydantic import BaseModel, Field

from .config import load_settings
from .errors import ConfigError
from .session import ChatSession, build_session

logger = logging.getLogger(__name__)

# Session cache (created and started on first request)
_session: ChatSession | None = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    global _session
    if _session is not None:
        _session.stop()
        _session = None


app = FastAPI(title="chat-mirror", version="0.1.0", lifespan=lifespan)


def _get_session() -> ChatSession:
    """Lazily build, start and cache the chat session."""
    global _session
    if _session is None:
        try:
            settings = load_settings()
        except ConfigError as e:
            logger.error("%s", e)
            raise HTTPException(status_code=503, detail=str(e))
        _session = build_session(settings)
        logger.info("Mirroring messages from %s", settings.database_url)
    if not _session.started:
        _session.start()
    return _session


class SendRequest(BaseModel):
    text: str = Field(..., max_length=4096)


class ScrollReport(BaseModel):
    scroll_top: float
    scroll_height: float = Field(..., ge=0)
    client_height: float = Field(..., ge=0)


# ── Routes ───────────────────────────────────────────────────────


@app.get("/")
async def index():
    """Serve the frontend."""
    html_path = Path(__file__).parent / "static" / "index.html"
    if not html_path.exists():
        raise HTTPException(status_code=404, detail="Frontend not found")
    return HTMLResponse(html_path.read_text(encoding="utf-8"))


@app.get("/api/view")
async def get_view():
    """Return the full view model."""
    return _get_session().view()


@app.get("/api/thread")
async def get_thread():
    """Return the message area as an HTML fragment."""
    session = _get_session()
    view = session.view()
    headers = {"X-Scroll-To-Bottom": "1" if view["scroll"]["should_scroll_to_bottom"] else "0"}
    return HTMLResponse(session.thread_html(), headers=headers)


@app.post("/api/messages")
async def send_message(req: SendRequest):
    """Send a message through the webhook relay."""
    if not req.text.strip():
        raise HTTPException(status_code=422, detail="Message text is empty")
    accepted = await _get_session().send(req.text)
    return {"accepted": accepted}


@app.post("/api/refresh")
async def refresh():
    """Fetch now, resuming polling if it was suspended."""
    session = _get_session()
    session.refresh()
    return {"state": session.polling.state.value}


@app.post("/api/clear")
async def clear():
    """Clear the local view; stored messages are untouched."""
    _get_session().clear()
    return {"cleared": True}


@app.delete("/api/error")
async def dismiss_error():
    store = _get_session().store
    store.dismiss_error()
    return {"error": store.error}


@app.post("/api/scroll")
async def report_scroll(report: ScrollReport):
    """Record the browser's scroll position."""
    store = _get_session().store
    store.report_scroll(report.scroll_top, report.scroll_height, report.client_height)
    return {
        "pinned_to_bottom": store.scroll.pinned_to_bottom,
        "show_jump_button": store.scroll.pending_indicator_visible,
    }


@app.post("/api/scroll/bottom")
async def jump_to_latest():
    store = _get_session().store
    store.jump_to_latest()
    return {"show_jump_button": store.scroll.pending_indicator_visible}


@app.post("/api/scroll/complete")
async def scroll_complete():
    _get_session().store.scroll_completed()
    return {"should_scroll_to_bottom": False}
