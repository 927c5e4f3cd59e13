"""
Tests for the @kozani chat participant:
- sign-in prompt without a session (and no HTTP request)
- streamed markdown relay and accumulated history
- cancellation notice vs. backend fallback
"""

from typing import List

from kozani.core.auth import AuthenticationAccount, AuthenticationSession
from kozani.core.backend_client import BackendClient
from kozani.core.cancellation import CancellationTokenSource
from kozani.core.chat_participant import (
    AUTH_REQUIRED_MARKDOWN,
    CANCELLED_MARKDOWN,
    KozaniChatParticipant,
)
from kozani.core.messages import ChatContext, ChatRequest


# ---------------------------------------------------------------------------
# Helpers / Fakes
# ---------------------------------------------------------------------------

class FakeAuth:
    def __init__(self, session=None):
        self.session = session
        self.calls: List[bool] = []

    def get_session(self, scopes=None, create_if_none=False):
        self.calls.append(create_if_none)
        return self.session


class FakeResponse:
    def __init__(self, chunks, status_code=200, reason="OK"):
        self.chunks = list(chunks)
        self.status_code = status_code
        self.reason = reason
        self.closed = False

    @property
    def ok(self):
        return 200 <= self.status_code < 300

    def iter_content(self, chunk_size=None):
        for chunk in self.chunks:
            if self.closed:
                return
            yield chunk

    def close(self):
        self.closed = True


class FakeSession:
    def __init__(self, response=None):
        self.response = response or FakeResponse([])
        self.calls = []

    def post(self, url, **kwargs):
        self.calls.append({"url": url, **kwargs})
        return self.response


class RecordingStream:
    """Chat response sink recording markdown and progress separately."""

    def __init__(self, on_markdown=None):
        self.markdowns: List[str] = []
        self.progresses: List[str] = []
        self.on_markdown = on_markdown

    def markdown(self, text: str) -> None:
        self.markdowns.append(text)
        if self.on_markdown:
            self.on_markdown(text)

    def progress(self, text: str) -> None:
        self.progresses.append(text)

    @property
    def text(self) -> str:
        return "".join(self.markdowns)


SESSION = AuthenticationSession(
    id="github-1",
    access_token="gho_abc",
    account=AuthenticationAccount(id="1", label="octocat"),
)


def make_participant(auth, response=None):
    http = FakeSession(response)
    backend = BackendClient("http://localhost:5000", session=http)
    return KozaniChatParticipant(auth, backend), http


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------

def test_unauthenticated_prompts_sign_in_and_sends_nothing():
    auth = FakeAuth(session=None)
    participant, http = make_participant(auth)
    stream = RecordingStream()

    result = participant(ChatRequest(prompt="hi"), ChatContext(), stream, None)

    assert stream.markdowns == [AUTH_REQUIRED_MARKDOWN]
    assert result.metadata["title"] == "Auth Required"
    assert http.calls == []
    assert auth.calls == [True]


def test_streams_chunks_as_markdown():
    participant, http = make_participant(
        FakeAuth(SESSION), FakeResponse([b"Hello", b", ", b"world"])
    )
    stream = RecordingStream()

    result = participant(ChatRequest(prompt="greet me"), None, stream, None)

    assert stream.progresses == ["Thinking..."]
    assert stream.markdowns == ["Hello", ", ", "world"]
    assert result.metadata == {"title": "Kozani Chat", "status": "ok"}
    assert http.calls[0]["headers"]["Authorization"] == "Bearer gho_abc"
    assert http.calls[0]["json"] == {"messages": [{"role": "user", "content": "greet me"}]}


def test_history_is_sent_before_prompt():
    participant, http = make_participant(FakeAuth(SESSION), FakeResponse([b"ok"]))
    context = ChatContext()
    context.add_turn("user", "first question")
    context.add_turn("assistant", "first answer")

    participant(ChatRequest(prompt="follow up"), context, RecordingStream(), None)

    assert http.calls[0]["json"]["messages"] == [
        {"role": "user", "content": "first question"},
        {"role": "assistant", "content": "first answer"},
        {"role": "user", "content": "follow up"},
    ]


def test_backend_error_shows_setup_help_with_url():
    participant, _ = make_participant(
        FakeAuth(SESSION), FakeResponse([], status_code=500, reason="Internal Server Error")
    )
    stream = RecordingStream()

    result = participant(ChatRequest(prompt="anyone there?"), None, stream, None)

    assert result.metadata["status"] == "unavailable"
    assert "**octocat**" in stream.text
    assert "*anyone there?*" in stream.text
    assert "http://localhost:5000" in stream.text
    assert "POST /api/chat" in stream.text
    assert CANCELLED_MARKDOWN not in stream.markdowns


def test_cancellation_shows_notice_not_fallback():
    source = CancellationTokenSource()

    def cancel_after_first(text):
        if text == "partial":
            source.cancel()

    participant, _ = make_participant(
        FakeAuth(SESSION), FakeResponse([b"partial", b" more", b" text"])
    )
    stream = RecordingStream(on_markdown=cancel_after_first)

    result = participant(ChatRequest(prompt="long answer"), None, stream, source.token)

    assert stream.markdowns == ["partial", CANCELLED_MARKDOWN]
    assert result.metadata["status"] == "cancelled"
    assert "localhost:5000" not in stream.text
