"""Textual chat screen for one owlsync room."""

from __future__ import annotations

from typing import Any, Optional

from rich.text import Text
from textual import events, on
from textual.app import App, ComposeResult
from textual.containers import Container, Horizontal, Vertical, VerticalScroll
from textual.widgets import Footer, Input, Static

from core.config import SyncConfig
from core.errors import FetchFailed, SendFailed
from core.models import ConnectionState
from core.ports import IdentityPort, MessageBackendPort
from core.room import RoomSession

from .constants import OWL_AMBER, STATUS_COLORS, STATUS_LABELS
from .rendering import render_message


class ChatApp(App):
    """Chat view for a single room, backed by a RoomSession."""

    BINDINGS = [
        ("ctrl+r", "reload", "Reload"),
        ("ctrl+q", "quit", "Quit"),
        ("ctrl+c", "quit", "Quit"),
    ]

    CSS = """
    Screen {
        background: #14121a;
        color: #ece8f2;
    }

    #header {
        height: 5;
        padding: 1 2;
        border-bottom: solid #2e2a38;
    }

    #header-left, #header-right {
        width: 1fr;
    }

    #header-right {
        text-align: right;
    }

    #title {
        text-style: bold;
    }

    .subtle {
        color: #b9b2c6;
    }

    #messages {
        height: 1fr;
        padding: 1 2;
    }

    #composer {
        dock: bottom;
        margin: 0 1 1 1;
    }
    """

    def __init__(
        self,
        room_id: str,
        backend: MessageBackendPort,
        identity: IdentityPort,
        sync_config: Optional[SyncConfig] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self._room_id = room_id
        self._backend = backend
        self._identity = identity
        self._sync_config = sync_config or SyncConfig()
        self._session: Optional[RoomSession] = None
        self._blurred = False

    def compose(self) -> ComposeResult:
        with Container(id="header"):
            with Horizontal(id="header-row"):
                with Vertical(id="header-left"):
                    yield Static(self._title_text(), id="title")
                    yield Static(f"room: {self._room_id}", classes="subtle")
                with Vertical(id="header-right"):
                    yield Static("", id="connection-status")
                    yield Static("", id="load-status", classes="subtle")
        with VerticalScroll(id="messages"):
            yield Static("", id="message-list")
        yield Input(placeholder="Message  (**bold**  *italic*  __underline__)", id="composer")
        yield Footer()

    def on_mount(self) -> None:
        self._session = RoomSession(
            self._room_id,
            self._backend,
            self._identity,
            config=self._sync_config,
            on_connection_change=self._show_connection_state,
        )
        self._session.store.add_listener(self._refresh_messages)
        self._show_connection_state(self._session.connection_state)
        self._refresh_messages()
        self.query_one("#composer", Input).focus()
        self.run_worker(self._load(initial=True), group="snapshot", exclusive=True)

    async def _load(self, initial: bool = False) -> None:
        if self._session is None or self._session.closed:
            return
        self._set_load_status("loading...")
        if initial:
            error = await self._session.open()
        else:
            error = await self._session.resume()
        self._show_load_result(error)

    def _show_load_result(self, error: Optional[FetchFailed]) -> None:
        if error is None:
            self._set_load_status("")
            return
        self._set_load_status("history unavailable (ctrl+r to retry)")
        self.notify(str(error), severity="error", title="Could not load messages")

    @on(Input.Submitted, "#composer")
    def _on_composer_submitted(self, event: Input.Submitted) -> None:
        text = event.value
        if not text.strip():
            return
        event.input.value = ""
        self.run_worker(self._send(text), group="send")

    async def _send(self, text: str) -> None:
        if self._session is None:
            return
        try:
            await self._session.send(text)
        except SendFailed as exc:
            self.notify(str(exc), severity="error", title="Message not sent")
            composer = self.query_one("#composer", Input)
            # Give the typed text back unless the user already started a new one.
            if not composer.value:
                composer.value = exc.text

    def on_app_blur(self, event: events.AppBlur) -> None:
        self._blurred = True

    def on_app_focus(self, event: events.AppFocus) -> None:
        if not self._blurred:
            return
        self._blurred = False
        self.run_worker(self._load(), group="snapshot", exclusive=True)

    def action_reload(self) -> None:
        self.notify("Reloading chat...", timeout=1)
        self.run_worker(self._load(), group="snapshot", exclusive=True)

    async def action_quit(self) -> None:
        if self._session is not None:
            await self._session.close()
        self.exit()

    def _show_connection_state(self, state: ConnectionState) -> None:
        status = self.query_one("#connection-status", Static)
        status.update(
            Text.assemble(
                ("● ", STATUS_COLORS[state]),
                (STATUS_LABELS[state], ""),
            )
        )

    def _set_load_status(self, message: str) -> None:
        self.query_one("#load-status", Static).update(message)

    def _refresh_messages(self) -> None:
        if self._session is None:
            return
        identity = self._identity.current_identity()
        current_user_id = identity.id if identity else None
        # The store is newest-first; the view reads top to bottom.
        messages = list(reversed(self._session.messages))
        content = Text()
        if not messages:
            content.append("No messages yet. Say hello!", style="dim")
        for index, message in enumerate(messages):
            if index:
                content.append("\n\n")
            content.append_text(render_message(message, current_user_id))
        self.query_one("#message-list", Static).update(content)
        self.query_one("#messages", VerticalScroll).scroll_end(animate=False)

    @staticmethod
    def _title_text() -> Text:
        return Text.assemble(
            ("OWL", OWL_AMBER),
            ("SYNC > Chat", "bold"),
        )
