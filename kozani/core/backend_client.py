"""
Kozani backend client.

Sends the conversation to ``POST {api_url}/api/chat`` and relays the
streamed response body to a callback, chunk by chunk, in arrival order.
There is no retry and no buffering beyond what incremental UTF-8 decoding
needs to join multi-byte sequences split across chunks.

The HTTP exchange runs on a daemon reader thread and hands decoded chunks
to the calling thread through a queue. Callbacks always run on the caller,
so cancelling takes effect at once even while the reader is still blocked
waiting for headers or the next body read. An abandoned reader closes its
response when its blocking call returns.
"""

import codecs
import logging
import queue
import socket
import threading
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple, Union

import requests
import urllib3

from kozani.core.cancellation import CancellationToken, NONE_TOKEN
from kozani.core.exceptions import (
    BackendStatusError,
    BackendUnavailableError,
    RequestCancelledError,
)
from kozani.core.messages import ChatMessage

logger = logging.getLogger(__name__)

MessageLike = Union[ChatMessage, Mapping[str, Any]]
Event = Tuple[str, Any]

READ_SIZE = 8192

_CHUNK = "chunk"
_DONE = "done"
_FAILED = "failed"
_CANCELLED = "cancelled"


def _serialize(messages: Sequence[MessageLike]) -> List[Dict[str, str]]:
    serialized = []
    for msg in messages:
        if isinstance(msg, ChatMessage):
            serialized.append(msg.to_dict())
        else:
            serialized.append({"role": str(msg["role"]), "content": str(msg["content"])})
    return serialized


def is_success(status_code: int) -> bool:
    return 200 <= status_code < 300


def _iter_body(response: requests.Response) -> Iterator[bytes]:
    """
    Yield body bytes as they come off the socket.

    Chunked bodies are yielded per transfer chunk. Other bodies are read
    with ``read1`` so a close-delimited stream is not held until EOF.
    """
    raw = getattr(response, "raw", None)
    if raw is None or raw.chunked:
        yield from response.iter_content(chunk_size=None)
        return
    while True:
        data = raw.read1(READ_SIZE, decode_content=True)
        if not data:
            return
        yield data


def _shutdown(response: requests.Response) -> None:
    """Wake a reader blocked on the response socket.

    Closing the response here would wait on the reader's buffer lock, so the
    socket is shut down instead. Close-delimited responses have already
    been detached from their connection and are left to the reader.
    """
    connection = getattr(getattr(response, "raw", None), "connection", None)
    sock = getattr(connection, "sock", None)
    if sock is None:
        return
    try:
        sock.shutdown(socket.SHUT_RDWR)
    except OSError as e:
        logger.debug(f"Socket shutdown after cancel failed: {e}")


class BackendClient:
    """
    Streaming client for the Kozani chat endpoint.

    A requests.Session is reused across calls; pass one in to share
    connection pools or to substitute a fake in tests.
    """

    CHAT_ENDPOINT = "/api/chat"

    def __init__(
        self,
        api_url: str,
        timeout: Optional[float] = 60,
        session: Optional[requests.Session] = None,
    ):
        if not api_url:
            raise ValueError("Backend URL is required")
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    @property
    def chat_url(self) -> str:
        return f"{self.api_url}{self.CHAT_ENDPOINT}"

    def stream_chat(
        self,
        messages: Sequence[MessageLike],
        token: str,
        signal: Optional[CancellationToken],
        on_chunk: Callable[[str], None],
    ) -> None:
        """
        Stream a chat completion from the backend.

        Args:
            messages: Non-empty, ordered conversation
            token: GitHub bearer token forwarded to the backend
            signal: Cancellation token; firing it aborts the request
            on_chunk: Called once per received chunk of decoded text

        Raises:
            ValueError: Empty conversation or empty token
            BackendStatusError: Non-2xx response
            BackendUnavailableError: Connection or read failure
            RequestCancelledError: ``signal`` fired before the stream ended
        """
        if not messages:
            raise ValueError("At least one message is required")
        if not token:
            raise ValueError("A bearer token is required")

        signal = signal or NONE_TOKEN
        if signal.is_cancellation_requested:
            raise RequestCancelledError("Request cancelled before it was sent")

        payload = {"messages": _serialize(messages)}
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {token}",
        }

        events: "queue.Queue[Event]" = queue.Queue()
        stop = threading.Event()
        opened: List[requests.Response] = []
        reader = threading.Thread(
            target=self._read_stream,
            args=(payload, headers, stop, opened, events.put),
            name="kozani-stream",
            daemon=True,
        )

        logger.info(f"POST {self.chat_url} ({len(payload['messages'])} messages)")
        registration = signal.on_cancellation_requested(lambda: events.put((_CANCELLED, None)))
        finished = False
        reader.start()
        try:
            while True:
                kind, value = events.get()
                if signal.is_cancellation_requested:
                    raise RequestCancelledError("Request cancelled")
                if kind == _CHUNK:
                    on_chunk(value)
                elif kind == _FAILED:
                    finished = True
                    raise value
                elif kind == _DONE:
                    finished = True
                    return
        finally:
            registration.dispose()
            if not finished:
                stop.set()
                for response in opened:
                    _shutdown(response)

    def _read_stream(
        self,
        payload: Dict[str, Any],
        headers: Dict[str, str],
        stop: threading.Event,
        opened: List[requests.Response],
        emit: Callable[[Event], None],
    ) -> None:
        """Reader thread body. Every outcome ends with one _DONE or _FAILED event."""
        try:
            count = self._fetch(payload, headers, stop, opened, emit)
        except Exception as e:
            emit((_FAILED, e))
            return
        logger.debug(f"Stream complete: {count} chunks")
        emit((_DONE, None))

    def _fetch(
        self,
        payload: Dict[str, Any],
        headers: Dict[str, str],
        stop: threading.Event,
        opened: List[requests.Response],
        emit: Callable[[Event], None],
    ) -> int:
        try:
            response = self.session.post(
                self.chat_url,
                json=payload,
                headers=headers,
                stream=True,
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            if stop.is_set():
                return 0
            logger.error(f"Backend request to {self.chat_url} failed: {e}")
            raise BackendUnavailableError(f"Cannot reach Kozani backend at {self.api_url}: {e}") from e

        opened.append(response)
        try:
            if stop.is_set():
                return 0

            if not is_success(response.status_code):
                logger.error(f"Backend returned {response.status_code} {response.reason}")
                raise BackendStatusError(response.status_code, response.reason)

            decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
            count = 0
            try:
                for raw in _iter_body(response):
                    if stop.is_set():
                        return count
                    text = decoder.decode(raw)
                    if text:
                        count += 1
                        emit((_CHUNK, text))
            except (requests.exceptions.RequestException, urllib3.exceptions.HTTPError, OSError) as e:
                if stop.is_set():
                    return count
                logger.error(f"Backend stream interrupted: {e}")
                raise BackendUnavailableError(f"Stream from {self.api_url} interrupted: {e}") from e

            tail = decoder.decode(b"", final=True)
            if tail:
                count += 1
                emit((_CHUNK, tail))
            return count
        finally:
            response.close()

    def close(self) -> None:
        self.session.close()


def stream_from_backend(
    messages: Sequence[MessageLike],
    token: str,
    signal: Optional[CancellationToken],
    on_chunk: Callable[[str], None],
    api_url: str,
    timeout: Optional[float] = 60,
) -> None:
    """One-shot helper around BackendClient.stream_chat."""
    client = BackendClient(api_url, timeout=timeout)
    try:
        client.stream_chat(messages, token, signal, on_chunk)
    finally:
        client.close()
