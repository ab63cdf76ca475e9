"""Test configuration and fixtures."""

from pathlib import Path
from typing import Any, Callable

import httpx
import pytest
from fastapi.testclient import TestClient

from tool_call_adapter.config import Settings
from tool_call_adapter.core import Diagnostics
from tool_call_adapter.main import create_app

UPSTREAM_BASE_URL = "http://upstream.test/v1"


class RecordingDiagnostics(Diagnostics):
    """Collects diagnostics events as (name, detail) tuples."""

    def __init__(self) -> None:
        self.events: list[tuple[str, Any]] = []

    def names(self) -> list[str]:
        return [name for name, _ in self.events]

    def decode_failed(self, error: Exception) -> None:
        self.events.append(("decode_failed", error))

    def encode_failed(self, error: Exception) -> None:
        self.events.append(("encode_failed", error))

    def grammar_injected(self, path: Path) -> None:
        self.events.append(("grammar_injected", path))

    def grammar_present(self) -> None:
        self.events.append(("grammar_present", None))

    def grammar_loaded(self, path: Path) -> None:
        self.events.append(("grammar_loaded", path))

    def grammar_fallback(self, path: Path, error: Exception) -> None:
        self.events.append(("grammar_fallback", (path, error)))

    def request_rejected(self, status_code: int, reason: str) -> None:
        self.events.append(("request_rejected", status_code))

    def upstream_failed(self, url: str, error: Exception) -> None:
        self.events.append(("upstream_failed", error))


class ChunkedBody(httpx.AsyncByteStream):
    """Response body that is delivered lazily, like a live connection."""

    def __init__(self, *chunks: bytes) -> None:
        self._chunks = chunks

    async def __aiter__(self):
        for chunk in self._chunks:
            yield chunk


class FakeUpstream:
    """Mock upstream that records every request it receives."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.error: Exception | None = None
        self.respond: Callable[[httpx.Request], httpx.Response] = (
            lambda request: httpx.Response(200, json={"object": "chat.completion"})
        )

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        response = self.respond(request)
        if isinstance(response.stream, httpx.ByteStream):
            # httpx reads content= and json= bodies eagerly, so hand the
            # proxy an unread stream it can relay
            return httpx.Response(
                response.status_code,
                headers=response.headers,
                stream=ChunkedBody(response.content),
            )
        return response

    @property
    def last(self) -> httpx.Request:
        assert self.requests, "upstream received no requests"
        return self.requests[-1]


@pytest.fixture
def grammar_file(tmp_path: Path) -> Path:
    """Grammar file with a trivial rule."""
    path = tmp_path / "cline.gbnf"
    path.write_text('root ::= "X"', encoding="utf-8")
    return path


@pytest.fixture
def diagnostics() -> RecordingDiagnostics:
    return RecordingDiagnostics()


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def make_settings(grammar_file: Path) -> Callable[..., Settings]:
    """Build settings that ignore .env files."""

    def _make(**overrides: Any) -> Settings:
        values: dict[str, Any] = {
            "target_base_url": UPSTREAM_BASE_URL,
            "grammar_file_path": str(grammar_file),
        }
        values.update(overrides)
        return Settings(_env_file=None, **values)

    return _make


@pytest.fixture
def make_client(
    make_settings: Callable[..., Settings],
    upstream: FakeUpstream,
    diagnostics: RecordingDiagnostics,
) -> Callable[..., TestClient]:
    """Create a test client whose upstream is the fake upstream.

    Use as a context manager so the app lifespan runs.
    """

    def _make(config_path: str | Path | None = None, **overrides: Any) -> TestClient:
        client = httpx.AsyncClient(transport=httpx.MockTransport(upstream.handler))
        app = create_app(
            make_settings(**overrides),
            config_path=config_path,
            client=client,
            diagnostics=diagnostics,
        )
        return TestClient(app)

    return _make
