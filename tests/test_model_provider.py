from typing import List

from kozani.core.ai.model_provider import KOZANI_MODEL, SIGN_IN_MESSAGE, KozaniModelProvider
from kozani.core.auth import AuthenticationAccount, AuthenticationSession
from kozani.core.backend_client import BackendClient
from kozani.core.cancellation import CancellationTokenSource
from kozani.core.messages import (
    ChatRole,
    LanguageModelChatMessage,
    LanguageModelTextPart,
)


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
    def __init__(self, response=None, error=None):
        self.response = response or FakeResponse([])
        self.error = error
        self.calls = []

    def post(self, url, **kwargs):
        self.calls.append({"url": url, **kwargs})
        if self.error:
            raise self.error
        return self.response


class Progress:
    def __init__(self, on_report=None):
        self.parts: List[LanguageModelTextPart] = []
        self.on_report = on_report

    def report(self, part):
        self.parts.append(part)
        if self.on_report:
            self.on_report(part)

    @property
    def values(self) -> List[str]:
        return [p.value for p in self.parts]


SESSION = AuthenticationSession(
    id="github-1",
    access_token="gho_abc",
    account=AuthenticationAccount(id="1", label="octocat"),
)


class ImagePart:
    """Non-text content part."""
    data = b"\x89PNG"


def make_provider(session=SESSION, response=None, error=None):
    http = FakeSession(response, error)
    backend = BackendClient("http://localhost:5000", session=http)
    return KozaniModelProvider(FakeAuth(session), backend), http


def test_model_information():
    provider, _ = make_provider()
    models = provider.provide_language_model_chat_information({}, None)
    assert models == [KOZANI_MODEL]
    assert models[0].id == "kozani-1"
    assert models[0].max_input_tokens == 128000
    assert models[0].max_output_tokens == 16384
    assert models[0].is_default


def test_unauthenticated_reports_sign_in_without_request():
    provider, http = make_provider(session=None)
    progress = Progress()

    provider.provide_language_model_chat_response(
        KOZANI_MODEL, [LanguageModelChatMessage.user("hi")], {}, progress, None
    )

    assert progress.values == [SIGN_IN_MESSAGE]
    assert http.calls == []
    assert provider.auth.calls == [False]


def test_messages_converted_and_chunks_reported():
    provider, http = make_provider(response=FakeResponse([b"foo", b"bar"]))
    progress = Progress()
    messages = [
        LanguageModelChatMessage(
            role=ChatRole.USER,
            content=[LanguageModelTextPart("look at "), ImagePart(), LanguageModelTextPart("this")],
        ),
        LanguageModelChatMessage.assistant("ok"),
    ]

    provider.provide_language_model_chat_response(KOZANI_MODEL, messages, {}, progress, None)

    assert http.calls[0]["json"] == {
        "messages": [
            {"role": "user", "content": "look at this"},
            {"role": "assistant", "content": "ok"},
        ]
    }
    assert progress.values == ["foo", "bar"]
    assert all(isinstance(p, LanguageModelTextPart) for p in progress.parts)


def test_backend_failure_reports_placeholder():
    import requests

    provider, _ = make_provider(error=requests.exceptions.ConnectionError("refused"))
    progress = Progress()

    provider.provide_language_model_chat_response(
        KOZANI_MODEL, [LanguageModelChatMessage.user("hi")], {}, progress, None
    )

    assert len(progress.values) == 1
    assert "http://localhost:5000 is not available" in progress.values[0]


def test_cancellation_is_silent():
    source = CancellationTokenSource()
    provider, _ = make_provider(response=FakeResponse([b"one", b"two", b"three"]))
    progress = Progress(on_report=lambda part: source.cancel())

    provider.provide_language_model_chat_response(
        KOZANI_MODEL, [LanguageModelChatMessage.user("hi")], {}, progress, source.token
    )

    assert progress.values == ["one"]


def test_token_count_estimate():
    provider, _ = make_provider()
    assert provider.provide_token_count(KOZANI_MODEL, "", None) == 0
    assert provider.provide_token_count(KOZANI_MODEL, "abcd", None) == 1
    assert provider.provide_token_count(KOZANI_MODEL, "abcde", None) == 2
    message = LanguageModelChatMessage(
        role=ChatRole.USER,
        content=[LanguageModelTextPart("12345678"), ImagePart()],
    )
    assert provider.provide_token_count(KOZANI_MODEL, message, None) == 2
