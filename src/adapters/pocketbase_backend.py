"""PocketBase backend adapter.

Implements the core MessageBackendPort and IdentityPort over PocketBase's
REST API and its server-sent-events realtime endpoint, using httpx.
"""

from __future__ import annotations

import json
import logging
from typing import Any, AsyncIterator, Optional
from urllib.parse import quote

import httpx

from adapters.pocketbase_mapper import identity_from_record, message_from_record
from adapters.sse import SSEEvent, iter_sse_events
from core.errors import BackendError
from core.models import Identity, Message

LOGGER = logging.getLogger(__name__)

CONNECT_EVENT = "PB_CONNECT"
PAGE_SIZE = 500


def escape_filter_value(value: str) -> str:
    return value.replace('"', '\\"')


def _status_message(status_code: int, action: str) -> str:
    if status_code in (401, 403):
        return f"Not authorized to {action}. Please log in again."
    if status_code == 404:
        return f"Could not {action}: not found."
    if status_code >= 500:
        return f"Server error ({status_code}). Please try again later."
    return f"Could not {action} (status {status_code})."


def _to_backend_error(exc: httpx.HTTPError, action: str) -> BackendError:
    if isinstance(exc, httpx.HTTPStatusError):
        status_code = exc.response.status_code
        return BackendError(_status_message(status_code, action), status_code)
    if isinstance(exc, httpx.TimeoutException):
        return BackendError("Request timed out. Check your network and try again.")
    return BackendError("Network error. Please check your internet connection.")


def _signup_message(response: httpx.Response) -> str:
    status_code = response.status_code
    if status_code == 400:
        body = response.text
        if "nickname" in body:
            return "This nickname is already taken. Please choose another."
        if "email" in body:
            return "This email is already in use."
        return "Invalid input. Please check your information."
    if status_code == 409:
        return "This nickname is already taken. Please choose another."
    if status_code >= 500:
        return "Server error. Please try again later."
    return "Signup failed. Please try again."


class PocketBaseLiveFeed:
    """Live feed over one PocketBase realtime connection.

    Yields only ``create`` events. ``cancel`` closes the HTTP stream and may be
    called any number of times.
    """

    def __init__(self, room_id: str, response: httpx.Response, events: AsyncIterator[SSEEvent]) -> None:
        self._room_id = room_id
        self._response = response
        self._events = events
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def __aiter__(self) -> AsyncIterator[Message]:
        return self._messages()

    async def _messages(self) -> AsyncIterator[Message]:
        try:
            async for event in self._events:
                message = self._message_from_event(event)
                if message is not None:
                    yield message
        except (httpx.HTTPError, httpx.StreamError) as exc:
            if self._cancelled:
                return
            raise BackendError(f"Realtime connection lost: {exc}") from exc

    def _message_from_event(self, event: SSEEvent) -> Optional[Message]:
        if event.event == CONNECT_EVENT:
            return None
        try:
            payload = json.loads(event.data)
        except json.JSONDecodeError:
            LOGGER.warning("Ignoring malformed realtime payload on %s", event.event)
            return None
        if not isinstance(payload, dict) or payload.get("action") != "create":
            return None
        record = payload.get("record")
        if not isinstance(record, dict) or "id" not in record:
            return None
        return message_from_record(record)

    async def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        await self._response.aclose()
        LOGGER.debug("Realtime stream closed for room %s", self._room_id)


class PocketBaseBackend:
    """Thin async PocketBase client that satisfies the core ports."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        users_collection: str = "Users",
        messages_collection: str = "Messages",
        rooms_collection: str = "Rooms",
        http: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._users = users_collection
        self._messages = messages_collection
        self._rooms = rooms_collection
        self._http = http or httpx.AsyncClient(base_url=self._base_url, timeout=timeout)
        self._token: Optional[str] = None
        self._record: Optional[dict[str, Any]] = None

    @property
    def token(self) -> Optional[str]:
        return self._token

    @property
    def auth_record(self) -> Optional[dict[str, Any]]:
        return self._record

    @property
    def is_authenticated(self) -> bool:
        return bool(self._token) and self._record is not None

    def _headers(self) -> dict[str, str]:
        if not self._token:
            return {}
        return {"Authorization": self._token}

    def _records_path(self, collection: str) -> str:
        return f"/api/collections/{collection}/records"

    def restore(self, token: str, record: dict[str, Any]) -> None:
        """Reuse a persisted auth token and record."""

        self._token = token
        self._record = record

    def logout(self) -> None:
        self._token = None
        self._record = None

    def current_identity(self) -> Optional[Identity]:
        return identity_from_record(self._record)

    async def auth_with_password(self, identity: str, password: str) -> dict[str, Any]:
        """Sign in with nickname (or email) and password; return the auth record."""

        try:
            response = await self._http.post(
                f"/api/collections/{self._users}/auth-with-password",
                json={"identity": identity, "password": password},
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status_code = exc.response.status_code
            if status_code in (400, 401, 403):
                raise BackendError("Invalid nickname or password.", status_code) from exc
            raise _to_backend_error(exc, "log in") from exc
        except httpx.HTTPError as exc:
            raise _to_backend_error(exc, "log in") from exc

        payload = response.json()
        self._token = payload["token"]
        self._record = payload["record"]
        LOGGER.info("Logged in as %s", self._record.get("nickname") or self._record.get("id"))
        return self._record

    async def signup(self, nickname: str, password: str) -> dict[str, Any]:
        """Create an anonymous account; does not sign in."""

        try:
            response = await self._http.post(
                self._records_path(self._users),
                json={
                    "email": "",
                    "emailVisibility": False,
                    "nickname": nickname,
                    "is_anonymous": True,
                    "password": password,
                    "passwordConfirm": password,
                },
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise BackendError(_signup_message(exc.response), exc.response.status_code) from exc
        except httpx.HTTPError as exc:
            raise _to_backend_error(exc, "sign up") from exc

        record = response.json()
        LOGGER.info("Created account %s", nickname)
        return record

    async def fetch_messages(self, room_id: str) -> list[Message]:
        """Return every message of a room, oldest first, with senders expanded."""

        params = {
            "filter": f'Room="{escape_filter_value(room_id)}"',
            "sort": "created",
            "expand": "Sender",
            "perPage": PAGE_SIZE,
        }
        records: list[dict[str, Any]] = []
        page = 1
        while True:
            try:
                response = await self._http.get(
                    self._records_path(self._messages),
                    params={**params, "page": page},
                    headers=self._headers(),
                )
                response.raise_for_status()
            except httpx.HTTPError as exc:
                raise _to_backend_error(exc, "fetch messages") from exc

            payload = response.json()
            items = payload.get("items") or []
            records.extend(items)
            total_pages = int(payload.get("totalPages") or 1)
            if not items or page >= total_pages:
                break
            page += 1

        return [message_from_record(record) for record in records]

    async def create_message(self, room_id: str, body: str) -> Message:
        identity = self.current_identity()
        if identity is None:
            raise BackendError("You must be logged in to send messages.")

        try:
            response = await self._http.post(
                self._records_path(self._messages),
                params={"expand": "Sender"},
                json={"Room": room_id, "Sender": identity.id, "content": body.strip()},
                headers=self._headers(),
            )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise _to_backend_error(exc, "send the message") from exc

        return message_from_record(response.json())

    def _topic(self, room_id: str) -> str:
        # Scope the subscription server-side: only this room, senders expanded.
        options = {
            "query": {
                "filter": f'Room="{escape_filter_value(room_id)}"',
                "expand": "Sender",
            }
        }
        return f"{self._messages}/*?options={quote(json.dumps(options, separators=(',', ':')))}"

    async def subscribe(self, room_id: str) -> PocketBaseLiveFeed:
        """Open the realtime stream and subscribe it to one room's messages."""

        request = self._http.build_request(
            "GET",
            "/api/realtime",
            headers={**self._headers(), "Accept": "text/event-stream"},
            timeout=httpx.Timeout(self._timeout, read=None),
        )
        try:
            response = await self._http.send(request, stream=True)
        except httpx.HTTPError as exc:
            raise _to_backend_error(exc, "open the realtime connection") from exc

        try:
            response.raise_for_status()
            events = iter_sse_events(response.aiter_lines())
            try:
                first = await events.__anext__()
            except StopAsyncIteration:
                raise BackendError("Realtime connection closed before it was acknowledged.")
            if first.event != CONNECT_EVENT:
                raise BackendError(f"Unexpected realtime handshake event: {first.event}")
            client_id = json.loads(first.data)["clientId"]

            ack = await self._http.post(
                "/api/realtime",
                json={"clientId": client_id, "subscriptions": [self._topic(room_id)]},
                headers=self._headers(),
            )
            ack.raise_for_status()
        except httpx.HTTPError as exc:
            await response.aclose()
            raise _to_backend_error(exc, "subscribe to the room") from exc
        except BaseException:
            await response.aclose()
            raise

        LOGGER.info("Realtime subscription acknowledged for room %s", room_id)
        return PocketBaseLiveFeed(room_id, response, events)

    async def list_rooms(self, limit: int = 50) -> list[dict[str, Any]]:
        """Return rooms newest first, as plain records."""

        try:
            response = await self._http.get(
                self._records_path(self._rooms),
                params={"sort": "-created", "perPage": limit, "page": 1},
                headers=self._headers(),
            )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise _to_backend_error(exc, "fetch rooms") from exc
        return list(response.json().get("items") or [])

    async def aclose(self) -> None:
        await self._http.aclose()
