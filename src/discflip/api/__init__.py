"""HTTP/WebSocket adapter around the move sequencer."""

from .app import create_app  # noqa: F401
