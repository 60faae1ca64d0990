"""Presentation: turn store state into a view model and HTML fragments.

Everything here is a pure function of its inputs. Failures are already
folded into store fields by the time rendering happens, so nothing in this
module raises on bad message data.
"""

import html
from datetime import date
from typing import Any, Optional

from .core import Message, Role, Status
from .store import MessageStore
from .timeline import (
    canonical_timestamp,
    format_date_divider,
    format_message_time,
    group_by_date,
    sort_messages,
)

GLYPHS = {
    # status -> (icon, tone)
    Status.SENDING: ("check", "faded"),
    Status.SENT: ("check-check", "muted"),
    Status.ERROR: ("check", "alert"),
    None: ("check", "muted"),
}

_ICON_TEXT = {"check": "✓", "check-check": "✓✓"}


def _value(v: Any) -> Any:
    return getattr(v, "value", v)


def format_tool_name(name: Optional[str]) -> str:
    """``search_knowledge`` -> ``Search Knowledge``."""
    if not name:
        return "Tool"
    words = name.replace("-", " ").replace("_", " ").split()
    return " ".join(w[:1].upper() + w[1:] for w in words) or "Tool"


def is_renderable(message: Message) -> bool:
    """Tool messages always render; others need non-blank content."""
    if message.role == Role.TOOL:
        return True
    return bool(message.content and message.content.strip())


def status_glyph(message: Message) -> Optional[dict]:
    """Delivery glyph for the user's own bubbles."""
    if message.role != Role.USER:
        return None
    try:
        key = Status(message.status) if message.status is not None else None
    except ValueError:
        key = None
    icon, tone = GLYPHS[key]
    return {"icon": icon, "tone": tone}


def _bubble(message: Message) -> dict:
    ts = canonical_timestamp(message)
    is_tool = message.role == Role.TOOL
    return {
        "key": f"{message.id}-{'temp' if message.is_temp else 'real'}",
        "id": message.id,
        "role": _value(message.role),
        "side": "sender" if message.role == Role.USER else "other",
        "content": None if is_tool else message.content,
        "tool": format_tool_name(message.tool_name) if is_tool else None,
        "time": format_message_time(ts),
        "timestamp": ts,
        "status": _value(message.status),
        "glyph": status_glyph(message),
        "temp": bool(message.is_temp),
    }


def build_view(store: MessageStore, today: Optional[date] = None) -> dict:
    """Snapshot of everything the page shows."""
    messages = [m for m in store.visible_messages() if is_renderable(m)]
    groups = group_by_date(sort_messages(messages))

    return {
        "connected": not store.connection_failed,
        "connection_failed": store.connection_failed,
        "error": store.error,
        "loading": store.is_loading and not messages,
        "empty": not store.is_loading and not messages,
        "groups": [
            {
                "date": g.date,
                "label": format_date_divider(g.date, today),
                "messages": [_bubble(m) for m in g.messages],
            }
            for g in groups
        ],
        "scroll": {
            "should_scroll_to_bottom": store.should_scroll_to_bottom,
            "pinned_to_bottom": store.scroll.pinned_to_bottom,
            "show_jump_button": store.scroll.pending_indicator_visible,
            "threshold": store.scroll.threshold,
        },
        "input": {
            "disabled": store.input_disabled,
            "busy": store.sending,
            "placeholder": store.input_placeholder,
        },
    }


# ── HTML ─────────────────────────────────────────────────────────


def _e(value: Any) -> str:
    return html.escape(str(value), quote=True)


def _render_bubble(b: dict) -> str:
    classes = ["bubble", b["side"]]
    if b["temp"]:
        classes.append("temp")

    if b["tool"] is not None:
        body = f'<span class="tool-tag">{_e(b["tool"])}</span>'
    else:
        body = f'<p class="text">{_e(b["content"])}</p>'

    glyph = ""
    if b["glyph"]:
        icon, tone = b["glyph"]["icon"], b["glyph"]["tone"]
        glyph = f'<span class="glyph {icon} {tone}">{_ICON_TEXT[icon]}</span>'

    return (
        f'<div class="{" ".join(classes)}" data-key="{_e(b["key"])}">'
        f"{body}"
        f'<div class="meta"><span class="time">{_e(b["time"])}</span>{glyph}</div>'
        f"</div>"
    )


def render_thread(view: dict) -> str:
    """HTML fragment for the message area."""
    parts = []

    if view["connection_failed"]:
        parts.append(
            '<div class="banner connection">'
            "<strong>Database Connection Error</strong>"
            f"<span>{_e(view['error'] or '')}</span>"
            '<button data-action="refresh">Retry Connection</button>'
            "</div>"
        )
    elif view["error"]:
        parts.append(
            f'<div class="banner error">{_e(view["error"])}'
            '<button data-action="dismiss">&times;</button></div>'
        )

    if view["loading"]:
        parts.append('<div class="placeholder loading">Loading messages...</div>')
    elif view["empty"]:
        parts.append(
            '<div class="placeholder empty"><h3>No messages yet</h3>'
            "<p>Start a conversation by sending a message below</p></div>"
        )
    else:
        parts.append('<div class="thread">')
        for group in view["groups"]:
            parts.append(f'<section class="day" data-date="{group["date"]}">')
            parts.append(f'<div class="divider">{_e(group["label"])}</div>')
            parts.extend(_render_bubble(b) for b in group["messages"])
            parts.append("</section>")
        parts.append("</div>")

    jump_class = "jump visible" if view["scroll"]["show_jump_button"] else "jump"
    parts.append(f'<button class="{jump_class}" data-action="jump">&darr;</button>')

    return "".join(parts)
