"""
Firebase Realtime Database Store Implementation

DESIGN DECISION: The production store is Firebase Realtime Database,
reached through its REST API because:
1. Every tree primitive maps onto one HTTP verb on ``{path}.json``
2. A root-level PATCH is the database's atomic multi-path update
3. Change streams are plain Server-Sent Events
4. Service account auth reuses the standard google-auth session

TRADEOFFS:
- HTTP calls are blocking, so they run in a worker thread
- The change stream needs a reader thread per subscription
- Generated keys are allocated client-side, like the official SDKs do

The implementation follows the abstract interface, so reconcilers can
run against the in-memory store without changing any logic.
"""

import asyncio
import contextlib
import json
import threading
from typing import Any, AsyncIterator, Iterable, Iterator, Mapping, Optional

import requests
from google.auth.transport.requests import AuthorizedSession
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from ledger_sync.audit import get_logger
from ledger_sync.config import FirebaseSettings, get_settings
from ledger_sync.services.storage.interface import (
    ChildSnapshot,
    PathAddressedStore,
    RemoteReadError,
    RemoteWriteError,
    Snapshot,
    StorageError,
    StoreConnectionError,
)
from ledger_sync.services.storage.paths import join_path, split_path, validate_key
from ledger_sync.services.storage.push_ids import generate_push_id
from ledger_sync.services.storage.tree import assign_path, child_items


SCOPES = [
    "https://www.googleapis.com/auth/firebase.database",
    "https://www.googleapis.com/auth/userinfo.email",
]

# Stream events that carry data
DATA_EVENTS = ("put", "patch")

# How long teardown waits for a stream reader thread to exit
STREAM_JOIN_TIMEOUT_SECONDS = 2.0


def _error_message(error: Exception) -> str:
    """Best human-readable message for a failed request."""
    response = getattr(error, "response", None)
    if response is not None:
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and body.get("error"):
            return str(body["error"])
    return str(error)


def parse_sse_lines(lines: Iterable[Optional[str]]) -> Iterator[tuple[str, Any]]:
    """
    Parse a Server-Sent Events line stream into ``(event, data)`` pairs.

    ``data`` is decoded as JSON (keep-alive events carry ``null``).
    """
    event: Optional[str] = None
    data_lines: list[str] = []

    for line in lines:
        if line is None:
            continue
        if line == "":
            if event is not None:
                raw = "\n".join(data_lines)
                yield event, json.loads(raw) if raw else None
            event = None
            data_lines = []
            continue
        if line.startswith(":"):
            continue

        field, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]
        if field == "event":
            event = value
        elif field == "data":
            data_lines.append(value)

    if event is not None:
        raw = "\n".join(data_lines)
        yield event, json.loads(raw) if raw else None


def apply_stream_event(mirror: Any, event: str, payload: Any) -> Any:
    """
    Apply one ``put``/``patch`` stream event to a local mirror.

    ``payload`` is ``{"path": "/relative/path", "data": ...}``.
    Returns the new mirror; the old one is not modified.
    """
    if event not in DATA_EVENTS or not isinstance(payload, dict):
        return mirror

    segments = split_path(payload.get("path") or "/")
    data = payload.get("data")

    if event == "put":
        return assign_path(mirror, segments, data)

    for name, value in (data or {}).items():
        mirror = assign_path(mirror, segments + split_path(name), value)
    return mirror


class FirebaseRestClient:
    """
    Low-level Firebase REST client wrapper.

    Handles authentication and provides retry logic for connecting.
    """

    def __init__(self, settings: Optional[FirebaseSettings] = None):
        self._session: Optional[AuthorizedSession] = None
        self._settings = settings or get_settings().firebase

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> AuthorizedSession:
        """
        Establish an authorized HTTP session.

        Uses service account credentials for authentication.
        """
        if self._session is None:
            try:
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=SCOPES,
                )
                self._session = AuthorizedSession(credentials)
            except FileNotFoundError:
                raise StoreConnectionError(
                    f"Firebase credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise StoreConnectionError(f"Failed to connect to Firebase: {e}")

        return self._session

    def url(self, path: str) -> str:
        return f"{self._settings.database_url}/{join_path(path)}.json"

    def request(
        self,
        method: str,
        path: str,
        body: Any = None,
        stream: bool = False,
    ) -> requests.Response:
        """Send one request and raise for HTTP errors."""
        session = self.connect()
        headers = {}
        timeout: Any = self._settings.request_timeout_seconds
        if stream:
            headers["Accept"] = "text/event-stream"
            timeout = (
                self._settings.request_timeout_seconds,
                self._settings.stream_read_timeout_seconds,
            )

        response = session.request(
            method,
            self.url(path),
            data=json.dumps(body) if body is not None else None,
            headers=headers,
            stream=stream,
            timeout=timeout,
        )
        response.raise_for_status()
        return response


class FirebaseTreeStore(PathAddressedStore):
    """
    Firebase Realtime Database implementation of the path-addressed store.

    Every call is one REST request; reads and writes raise
    RemoteReadError/RemoteWriteError with the server's message.
    """

    def __init__(self, client: Optional[FirebaseRestClient] = None):
        self._client = client or FirebaseRestClient()
        self._logger = get_logger(__name__)

    async def _call(
        self,
        error_cls: type[StorageError],
        method: str,
        path: str,
        body: Any = None,
    ) -> Any:
        try:
            response = await asyncio.to_thread(self._client.request, method, path, body)
        except StorageError:
            raise
        except requests.RequestException as e:
            message = _error_message(e)
            self._logger.warning(
                "firebase_request_failed",
                method=method,
                path=join_path(path),
                error=message,
            )
            raise error_cls(message)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise error_cls(f"Malformed response from Firebase: {e}")

    async def read(self, path: str) -> Snapshot:
        value = await self._call(RemoteReadError, "GET", path)
        return Snapshot(path=join_path(path), value=value)

    async def set(self, path: str, value: Any) -> None:
        if value is None:
            await self._call(RemoteWriteError, "DELETE", path)
        else:
            await self._call(RemoteWriteError, "PUT", path, value)

    async def update(self, path: str, fields: Mapping[str, Any]) -> None:
        if not fields:
            return
        await self._call(RemoteWriteError, "PATCH", path, dict(fields))

    async def push(self, path: str, value: Any) -> str:
        result = await self._call(RemoteWriteError, "POST", path, value)
        if not isinstance(result, dict) or "name" not in result:
            raise RemoteWriteError(f"Push to {join_path(path)} returned no key")
        return result["name"]

    async def remove(self, path: str, key: str) -> None:
        await self._call(RemoteWriteError, "DELETE", join_path(path, validate_key(key)))

    async def multi_update(self, updates: Mapping[str, Any]) -> None:
        if not updates:
            return
        # A PATCH at the root is applied atomically by the database
        await self._call(
            RemoteWriteError,
            "PATCH",
            "",
            {join_path(path): value for path, value in updates.items()},
        )

    def allocate_key(self, path: str) -> str:
        return generate_push_id()

    async def subscribe_list(self, path: str) -> AsyncIterator[list[ChildSnapshot]]:
        loop = asyncio.get_running_loop()
        queue: asyncio.Queue = asyncio.Queue()
        stop = threading.Event()
        responses: list[requests.Response] = []

        def post(item: tuple[str, Any]) -> None:
            # The loop may already be closed when the reader thread winds down
            with contextlib.suppress(RuntimeError):
                loop.call_soon_threadsafe(queue.put_nowait, item)

        def reader() -> None:
            try:
                response = self._client.request("GET", path, stream=True)
                responses.append(response)
                with response:
                    lines = response.iter_lines(decode_unicode=True)
                    for event, data in parse_sse_lines(lines):
                        if stop.is_set():
                            return
                        post((event, data))
            except Exception as e:
                if not stop.is_set():
                    post(("error", e))
                return
            post(("end", None))

        thread = threading.Thread(
            target=reader,
            name=f"firebase-stream:{join_path(path)}",
            daemon=True,
        )
        thread.start()
        self._logger.info("firebase_stream_opened", path=join_path(path))

        mirror: Any = None
        try:
            while True:
                event, data = await queue.get()
                if event in DATA_EVENTS:
                    mirror = apply_stream_event(mirror, event, data)
                    yield [
                        ChildSnapshot(key=key, value=value)
                        for key, value in child_items(mirror)
                    ]
                elif event == "keep-alive":
                    continue
                elif event == "cancel":
                    raise RemoteReadError(
                        f"Stream for {join_path(path)} cancelled by the database"
                    )
                elif event == "auth_revoked":
                    raise RemoteReadError("Stream credentials expired or were revoked")
                elif event == "error":
                    if isinstance(data, StorageError):
                        raise data
                    raise RemoteReadError(_error_message(data))
                elif event == "end":
                    return
        finally:
            stop.set()
            for response in responses:
                response.close()
            # Closing the response unblocks the reader, so the join is short
            await asyncio.to_thread(thread.join, STREAM_JOIN_TIMEOUT_SECONDS)
            if thread.is_alive():
                self._logger.warning(
                    "firebase_stream_reader_still_running",
                    path=join_path(path),
                    timeout=STREAM_JOIN_TIMEOUT_SECONDS,
                )
            self._logger.info("firebase_stream_closed", path=join_path(path))
