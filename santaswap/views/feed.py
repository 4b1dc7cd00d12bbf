"""
JSON snapshot and Server-Sent-Events feed of the shared Event.

Each stream owns a ScreenTracker for the requesting identity, so the
browser is told which screen to show along with every snapshot.
"""
from __future__ import annotations

import json
import queue

from flask import Blueprint, Response, current_app, stream_with_context
from flask.views import MethodView

from ..models import Event
from ..policies import current_identity
from ..services.event_store import get_event_store, is_setup_needed
from ..services.screens import ScreenChange, ScreenTracker, derive_screen

feed_bp = Blueprint("feed", __name__, url_prefix="/api/event")


def snapshot_payload(event: Event, change: ScreenChange) -> dict:
    return {
        "event": event.to_public_dict(),
        "screen": change.current.value,
        "drawReopened": change.draw_reopened,
    }


def error_payload(error: BaseException) -> dict:
    return {"error": "setup_needed" if is_setup_needed(error) else str(error)}


def format_sse(name: str, data: dict) -> str:
    return f"event: {name}\ndata: {json.dumps(data)}\n\n"


class EventSnapshotView(MethodView):
    def get(self):
        event = get_event_store().read()
        return snapshot_payload(event, derive_screen(event, current_identity()))


class EventStreamView(MethodView):
    def get(self):
        store = get_event_store()
        keepalive = current_app.config["SANTA_STREAM_KEEPALIVE"]
        tracker = ScreenTracker(identity=current_identity())
        messages: queue.Queue = queue.Queue()

        @stream_with_context
        def generate():
            unsubscribe = store.subscribe(
                lambda event: messages.put(("snapshot", event)),
                lambda error: messages.put(("error", error)),
            )
            try:
                while True:
                    try:
                        kind, payload = messages.get(timeout=keepalive)
                    except queue.Empty:
                        yield ": keep-alive\n\n"
                        continue
                    if kind == "error":
                        # Stream stays open; the next committed write recovers it.
                        yield format_sse("error", error_payload(payload))
                        continue
                    yield format_sse("snapshot", snapshot_payload(payload, tracker.observe_event(payload)))
            finally:
                unsubscribe()

        return Response(
            generate(),
            mimetype="text/event-stream",
            headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
        )


feed_bp.add_url_rule("", view_func=EventSnapshotView.as_view("snapshot"))
feed_bp.add_url_rule("/stream", view_func=EventStreamView.as_view("stream"))
