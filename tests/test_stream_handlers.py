import base64
from unittest.mock import AsyncMock, MagicMock

import pytest

from clinic_agent.handlers.stream_handlers import (
    handle_connected,
    handle_dtmf,
    handle_mark,
    handle_media,
    handle_start,
    handle_stop,
)
from clinic_agent.models.call_session import CallSession

SILENCE_FRAME = base64.b64encode(b"\xff" * 160).decode("utf-8")


def start_message(stream_sid="MZ123"):
    return {"event": "start", "start": {"streamSid": stream_sid, "callSid": "CA123"}}


def media_message(payload=SILENCE_FRAME):
    return {"event": "media", "media": {"track": "inbound", "payload": payload}}


@pytest.fixture
def model_session():
    session = MagicMock()
    session.is_open = True
    session.start_call = AsyncMock()
    session.send_audio = AsyncMock()
    session.close = AsyncMock()
    return session


@pytest.fixture
def call(model_session):
    return CallSession(AsyncMock(), model_session)


@pytest.mark.asyncio
class TestStreamHandlers:

    async def test_start_marks_call_active(self, call, model_session):
        await handle_start(start_message(), call)

        assert call.active
        assert call.stream_sid == "MZ123"
        assert call.call_sid == "CA123"
        assert model_session.label == "MZ123"
        model_session.start_call.assert_awaited_once()

    async def test_invalid_start_ignored(self, call, model_session):
        await handle_start({"event": "start", "start": {"streamSid": ""}}, call)

        assert not call.active
        model_session.start_call.assert_not_awaited()

    async def test_media_before_start_dropped(self, call, model_session):
        await handle_media(media_message(), call)

        assert call.frames_dropped == 1
        model_session.send_audio.assert_not_awaited()

        # Later frames still flow once the call starts
        await handle_start(start_message(), call)
        await handle_media(media_message(), call)
        model_session.send_audio.assert_awaited_once()

    async def test_media_forwarded_as_16k_pcm(self, call, model_session):
        await handle_start(start_message(), call)
        await handle_media(media_message(), call)

        # 160 mu-law silence bytes -> 160 zero samples at 8 kHz -> 320 samples at 16 kHz
        model_session.send_audio.assert_awaited_once_with(b"\x00" * 640)
        assert call.frames_forwarded == 1

    async def test_media_dropped_while_model_not_open(self, call, model_session):
        model_session.is_open = False
        await handle_start(start_message(), call)
        await handle_media(media_message(), call)

        model_session.send_audio.assert_not_awaited()
        assert call.frames_dropped == 1

    async def test_invalid_payload_does_not_raise(self, call, model_session):
        await handle_start(start_message(), call)
        await handle_media(media_message("%%%not-base64%%%"), call)
        await handle_media({"event": "media", "media": {}}, call)

        model_session.send_audio.assert_not_awaited()

    async def test_stop_closes_model_session_once(self, call, model_session):
        await handle_start(start_message(), call)
        await handle_stop({"event": "stop", "stop": {"callSid": "CA123"}}, call)
        await handle_stop({"event": "stop"}, call)

        assert call.stopped
        assert not call.active
        model_session.close.assert_awaited_once()

    async def test_media_after_stop_dropped(self, call, model_session):
        await handle_start(start_message(), call)
        await handle_stop({"event": "stop"}, call)
        await handle_media(media_message(), call)

        model_session.send_audio.assert_not_awaited()

    async def test_start_after_stop_ignored(self, call, model_session):
        await handle_stop({"event": "stop"}, call)
        await handle_start(start_message(), call)

        assert not call.active
        model_session.start_call.assert_not_awaited()

    async def test_informational_events(self, call):
        await handle_connected({"event": "connected", "protocol": "Call", "version": "1.0.0"}, call)
        await handle_mark({"event": "mark", "mark": {"name": "greeting"}}, call)
        await handle_dtmf({"event": "dtmf", "dtmf": {"digit": "5"}}, call)
        assert not call.active
