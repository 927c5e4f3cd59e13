"""
CLI tests: subcommands run against fakes for GitHub and the backend.
"""

import io
import json
import threading

import pytest

from kozani import cli as cli_mod
from kozani import extension
from kozani.core.auth import AuthenticationAccount, AuthenticationSession
from kozani.core.backend_client import BackendClient
from kozani.core.messages import LanguageModelTextPart
from kozani.ui.terminal import TerminalProgress, TerminalResponseStream

RealBackendClient = BackendClient


class FakeAuth:
    def __init__(self, session=None):
        self.session = session

    def get_session(self, scopes=None, create_if_none=False):
        return self.session

    def remove_session(self):
        had, self.session = self.session is not None, None
        return had


class FakeResponse:
    def __init__(self, chunks, status_code=200):
        self.chunks = list(chunks)
        self.status_code = status_code
        self.reason = "OK" if status_code < 400 else "Error"

    @property
    def ok(self):
        return 200 <= self.status_code < 300

    def iter_content(self, chunk_size=None):
        return iter(self.chunks)

    def close(self):
        pass


class FakeHttp:
    def __init__(self, *responses):
        self.responses = list(responses)
        self.posts = []

    def post(self, url, **kwargs):
        self.posts.append(kwargs["json"])
        return self.responses.pop(0)

    def close(self):
        pass


class StalledResponse(FakeResponse):
    """Holds the body back until ``release`` is set."""

    def __init__(self, chunks):
        super().__init__(chunks)
        self.release = threading.Event()

    def iter_content(self, chunk_size=None):
        self.release.wait(5)
        yield from self.chunks


SESSION = AuthenticationSession(
    id="github-1",
    access_token="gho_abc",
    account=AuthenticationAccount(id="1", label="octocat"),
)


@pytest.fixture
def wired(tmp_path, monkeypatch):
    """Point config at tmp_path and swap GitHub/backend for fakes."""
    monkeypatch.setenv("KOZANI_CONFIG", str(tmp_path / "config.json"))
    monkeypatch.delenv("KOZANI_API_URL", raising=False)

    state = {"auth": FakeAuth(SESSION), "http": FakeHttp()}
    monkeypatch.setattr(cli_mod, "build_auth_provider", lambda settings: state["auth"])
    monkeypatch.setattr(
        extension,
        "BackendClient",
        lambda api_url, timeout=None: RealBackendClient(api_url, timeout=timeout, session=state["http"]),
    )
    return state


def test_models_command(wired, capsys):
    assert cli_mod.main(["--no-color", "models"]) == 0
    out = capsys.readouterr().out
    assert "kozani-1 (default)" in out
    assert "in=128000 out=16384" in out


def test_ask_streams_answer(wired, capsys):
    wired["http"] = FakeHttp(FakeResponse([b"Rebase ", b"with git rebase -i"]))

    assert cli_mod.main(["--no-color", "ask", "how", "to", "rebase?"]) == 0

    out = capsys.readouterr().out
    assert "Thinking..." in out
    assert "Rebase with git rebase -i" in out
    assert wired["http"].posts == [{"messages": [{"role": "user", "content": "how to rebase?"}]}]


def test_ask_without_session_fails(wired, capsys):
    wired["auth"] = FakeAuth(None)

    assert cli_mod.main(["--no-color", "ask", "hello"]) == 1
    assert "Authentication required" in capsys.readouterr().out
    assert wired["http"].posts == []


def test_ask_backend_error_exit_code(wired, capsys):
    wired["http"] = FakeHttp(FakeResponse([], status_code=502))

    assert cli_mod.main(["--no-color", "--api-url", "http://down.test", "ask", "hello"]) == 1
    assert "http://down.test" in capsys.readouterr().out


def test_interactive_chat_accumulates_history(wired, monkeypatch, capsys):
    wired["http"] = FakeHttp(FakeResponse([b"answer one"]), FakeResponse([b"answer two"]))
    inputs = iter(["first", "second", "/exit"])
    monkeypatch.setattr("builtins.input", lambda prompt="": next(inputs))

    assert cli_mod.main(["--no-color", "chat"]) == 0

    assert wired["http"].posts[1] == {
        "messages": [
            {"role": "user", "content": "first"},
            {"role": "assistant", "content": "answer one"},
            {"role": "user", "content": "second"},
        ]
    }


def test_chat_exits_on_eof(wired, monkeypatch):
    def eof(prompt=""):
        raise EOFError

    monkeypatch.setattr("builtins.input", eof)
    assert cli_mod.main(["--no-color", "chat"]) == 0


def test_sign_in_and_out(wired, capsys):
    assert cli_mod.main(["--no-color", "sign-in"]) == 0
    assert "Signed in as octocat" in capsys.readouterr().out

    assert cli_mod.main(["--no-color", "sign-out"]) == 0
    assert "Signed out of GitHub" in capsys.readouterr().out

    assert cli_mod.main(["--no-color", "sign-in"]) == 1


def test_invalid_config_reports_error(tmp_path, monkeypatch, capsys):
    config = tmp_path / "config.json"
    config.write_text("{broken")
    monkeypatch.setenv("KOZANI_CONFIG", str(config))

    assert cli_mod.main(["--no-color", "models"]) == 1
    assert "Could not load config" in capsys.readouterr().err


# ---------------------------------------------------------------------------
# Terminal sinks
# ---------------------------------------------------------------------------

def test_terminal_stream_separates_progress_lines():
    out = io.StringIO()
    stream = TerminalResponseStream(out=out, color=False)

    stream.markdown("partial")
    stream.progress("Thinking...")
    stream.markdown("rest\n")
    stream.finish()

    assert out.getvalue() == "partial\n⚡ Thinking...\nrest\n"
    assert stream.text == "partialrest\n"


def test_terminal_progress_collects_parts():
    out = io.StringIO()
    progress = TerminalProgress(out=out)
    progress.report(LanguageModelTextPart("a"))
    progress.report(LanguageModelTextPart("b"))
    assert out.getvalue() == "ab"
    assert progress.text == "ab"


def test_doctor_reports_unreachable_backend(wired, monkeypatch, capsys):
    import requests

    def refuse(url, timeout=None):
        raise requests.exceptions.ConnectionError("refused")

    monkeypatch.setattr(cli_mod.requests, "get", refuse)

    assert cli_mod.main(["--no-color", "--api-url", "http://down.test", "doctor"]) == 1
    out = capsys.readouterr().out
    assert "Backend URL:   http://down.test" in out
    assert "signed in as octocat" in out
    assert "unreachable" in out


def test_doctor_reports_reachable_backend(wired, monkeypatch, capsys):
    monkeypatch.setattr(cli_mod.requests, "get", lambda url, timeout=None: object())
    assert cli_mod.main(["--no-color", "doctor"]) == 0
    assert "Backend:       reachable" in capsys.readouterr().out


def test_sign_in_failure_reports_error(wired, capsys):
    wired["auth"] = FakeAuth(None)

    assert cli_mod.main(["--no-color", "sign-in"]) == 1
    assert "GitHub sign-in failed" in capsys.readouterr().err


def test_ctrl_c_cancels_request(wired, monkeypatch, capsys):
    stalled = StalledResponse([b"too late"])
    wired["http"] = FakeHttp(stalled)

    real_join = threading.Thread.join
    interrupts = []

    def interrupted_join(self, timeout=None):
        # Two Ctrl-C presses while the reply is pending.
        if self.name == "kozani-request" and len(interrupts) < 2:
            interrupts.append(timeout)
            raise KeyboardInterrupt
        return real_join(self, timeout)

    monkeypatch.setattr(threading.Thread, "join", interrupted_join)
    try:
        assert cli_mod.main(["--no-color", "ask", "hello"]) == 1
    finally:
        stalled.release.set()

    out = capsys.readouterr().out
    assert "*Request cancelled*" in out
    assert "too late" not in out
    assert "not available" not in out
    assert "localhost:5000" not in out
    assert len(interrupts) == 2


def test_ask_lm_streams_model_text(wired, capsys):
    wired["http"] = FakeHttp(FakeResponse([b"model ", b"answer"]))

    assert cli_mod.main(["--no-color", "ask", "--lm", "hi"]) == 0

    assert "model answer" in capsys.readouterr().out
    assert wired["http"].posts == [{"messages": [{"role": "user", "content": "hi"}]}]


def test_ask_lm_without_session_fails(wired, capsys):
    wired["auth"] = FakeAuth(None)

    assert cli_mod.main(["--no-color", "ask", "--lm", "hi"]) == 1
    assert "Please sign in with GitHub" in capsys.readouterr().out
    assert wired["http"].posts == []


def test_config_set_get_and_list(wired, tmp_path, capsys):
    assert cli_mod.main(["--no-color", "config", "set", "api_url", "http://kozani.test"]) == 0
    assert cli_mod.main(["--no-color", "config", "set", "timeout", "15"]) == 0
    capsys.readouterr()

    assert cli_mod.main(["--no-color", "config", "get", "api_url"]) == 0
    assert capsys.readouterr().out.strip() == "http://kozani.test"

    assert cli_mod.main(["--no-color", "config", "get", "github.client_id"]) == 1
    assert "github.client_id is not set" in capsys.readouterr().out

    assert cli_mod.main(["--no-color", "config"]) == 0
    assert json.loads(capsys.readouterr().out) == {"api_url": "http://kozani.test", "timeout": 15}
    assert json.loads((tmp_path / "config.json").read_text())["timeout"] == 15
