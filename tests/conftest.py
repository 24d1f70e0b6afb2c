"""Shared pytest fixtures for mindmark tests."""

from itertools import count

import pytest

from mindmark.document import MindMapDocument
from mindmark.errors import AdapterError
from mindmark.sync.controller import SyncController
from mindmark.sync.models import MarkdownOrigin
from mindmark.sync.stream import MarkdownStream
from mindmark.sync.window import SuppressionWindow

EXAMPLE_MARKDOWN = "# Root\n- item a\n- item b\n"


class FakeClock:
    """Manually advanced monotonic clock (seconds)."""

    def __init__(self, start: float = 100.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms / 1000.0


class RecordingSink:
    """Markdown sink that records every flush."""

    def __init__(self, sink_id: str = "recording") -> None:
        self.id = sink_id
        self.flushed: list[str] = []

    async def flush(self, markdown: str) -> None:
        self.flushed.append(markdown)


class FailingSink:
    """Markdown sink whose storage is unavailable."""

    def __init__(self, sink_id: str = "failing") -> None:
        self.id = sink_id
        self.attempts = 0

    async def flush(self, markdown: str) -> None:
        self.attempts += 1
        raise AdapterError("disk full", map_id="demo")


@pytest.fixture
def id_factory():
    """Deterministic node ids: n1, n2, ..."""
    counter = count(1)
    return lambda: f"n{next(counter)}"


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def window(clock):
    return SuppressionWindow(300, clock=clock)


@pytest.fixture
def stream():
    return MarkdownStream(debounce_ms=200)


@pytest.fixture
def document():
    return MindMapDocument()


@pytest.fixture
def layout_calls():
    return []


@pytest.fixture
def controller(document, stream, window, layout_calls):
    """Started controller whose layout callback records each call."""
    ctrl = SyncController(
        document,
        stream,
        window=window,
        layout=lambda nodes: layout_calls.append(len(nodes)),
    )
    ctrl.start()
    yield ctrl
    ctrl.close()


@pytest.fixture
def pushes(stream):
    """Markdown pushed to the stream by the controller (nodes origin)."""
    received: list[str] = []

    def _record(text, origin):
        if origin == MarkdownOrigin.NODES:
            received.append(text)

    unsubscribe = stream.subscribe(_record)
    yield received
    unsubscribe()


@pytest.fixture
def loaded(controller):
    """Controller with the example document loaded."""
    controller.load_markdown(EXAMPLE_MARKDOWN)
    return controller


@pytest.fixture
def isolated_env(tmp_path, monkeypatch):
    """Empty CWD and HOME, no MINDMARK_* or LOG_* variables."""
    for var in (
        "MINDMARK_CONFIG",
        "MINDMARK_SUPPRESSION_WINDOW_MS",
        "MINDMARK_DEBOUNCE_MS",
        "MINDMARK_COLLAPSE_DEPTH",
        "MINDMARK_STORAGE_ROOT",
        "MINDMARK_DEBUG",
        "LOG_LEVEL",
        "LOG_FILE",
    ):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    return tmp_path
