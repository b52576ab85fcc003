import asyncio
import logging
from contextlib import asynccontextmanager
from types import SimpleNamespace

import pytest

from clinic_agent.config.constants import LOGGER_NAME


@pytest.fixture(autouse=True)
def reset_logging():
    """Reset logging configuration before each test"""
    for name in ("", LOGGER_NAME):
        logger = logging.getLogger(name)
        for handler in logger.handlers[:]:
            logger.removeHandler(handler)
    # configure_logging() turns propagation off; caplog listens on the root logger
    app_logger = logging.getLogger(LOGGER_NAME)
    app_logger.propagate = True
    app_logger.setLevel(logging.NOTSET)
    logging.basicConfig(level=logging.NOTSET)
    yield


class FakeLiveSession:
    """In-memory stand-in for a Gemini Live session.

    Records everything sent to the model. Messages pushed with ``push`` are
    yielded by ``receive``; pushing ``None`` ends the current turn.
    """

    def __init__(self):
        self.incoming = asyncio.Queue()
        self.sent_audio = []
        self.sent_text = []
        self.tool_responses = []
        self.closed = False

    async def send_realtime_input(self, audio=None, text=None):
        if audio is not None:
            self.sent_audio.append(audio)
        if text is not None:
            self.sent_text.append(text)

    async def send_tool_response(self, function_responses=None):
        self.tool_responses.extend(function_responses or [])

    def push(self, message):
        self.incoming.put_nowait(message)

    async def receive(self):
        while True:
            message = await self.incoming.get()
            if message is None:
                return
            yield message


class FakeLive:
    def __init__(self, session, error=None):
        self.session = session
        self.error = error
        self.connect_calls = []

    @asynccontextmanager
    async def connect(self, model, config):
        self.connect_calls.append((model, config))
        if self.error:
            raise self.error
        try:
            yield self.session
        finally:
            self.session.closed = True


@pytest.fixture
def fake_session():
    return FakeLiveSession()


@pytest.fixture
def fake_live(fake_session):
    return FakeLive(fake_session)


@pytest.fixture
def fake_client(fake_live):
    """Object shaped like genai.Client for the parts the session uses."""
    return SimpleNamespace(aio=SimpleNamespace(live=fake_live))


@pytest.fixture
def wait_until():
    """Poll a condition from async tests instead of sleeping a fixed time."""

    async def _wait_until(predicate, timeout=1.0):
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while not predicate():
            if loop.time() > deadline:
                raise AssertionError("Condition not met before timeout")
            await asyncio.sleep(0.005)

    return _wait_until


@pytest.fixture
def failing_client(fake_session):
    """Client whose connect attempt is refused."""
    return SimpleNamespace(
        aio=SimpleNamespace(live=FakeLive(fake_session, error=ConnectionError("refused")))
    )
