"""Shared constants for the Textual UI."""

from __future__ import annotations

from core.models import ConnectionState

OWL_AMBER = "#F5A623"

STATUS_COLORS = {
    ConnectionState.CONNECTED: "green",
    ConnectionState.CONNECTING: "orange1",
    ConnectionState.DISCONNECTED: "red",
}

STATUS_LABELS = {
    ConnectionState.CONNECTED: "Connected",
    ConnectionState.CONNECTING: "Connecting...",
    ConnectionState.DISCONNECTED: "Offline",
}
