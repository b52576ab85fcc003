"""
Handles Twilio Media Streams events for one call.

Each handler receives the raw event dict and the call's CallSession. Caller
audio is decoded from mu-law, upsampled to 16 kHz and forwarded to the call's
Gemini Live session only while the call is active and the session is open;
anything else is dropped so audio never queues up behind a slow model connection.
"""

import base64
import binascii
import logging
from typing import Any, Dict

from pydantic import ValidationError

from clinic_agent.audio import mulaw
from clinic_agent.audio.resampler import upsample_8k_to_16k
from clinic_agent.config.constants import LOGGER_NAME
from clinic_agent.models.call_session import CallSession
from clinic_agent.models.message_schemas import (
    ConnectedEvent,
    DtmfEvent,
    MarkEvent,
    StartEvent,
    StopEvent,
)

logger = logging.getLogger(LOGGER_NAME)


async def handle_connected(message: Dict[str, Any], call: CallSession) -> None:
    """Log the connected event; it carries no call state."""
    try:
        connected = ConnectedEvent(**message)
        logger.info(
            f"Twilio media stream connected (protocol={connected.protocol}, version={connected.version})"
        )
    except ValidationError as e:
        logger.error(f"Invalid connected event: {e}")


async def handle_start(message: Dict[str, Any], call: CallSession) -> None:
    """
    Handle the start event: capture the stream identity and open the conversation.

    The greeting cue goes out now if the model session is already open, or as
    soon as it opens otherwise.
    """
    try:
        start = StartEvent(**message)
    except ValidationError as e:
        logger.error(f"Invalid start event: {e}")
        return

    if call.stopped:
        logger.warning(f"Start event received after stop for stream: {start.start.streamSid}")
        return

    call.mark_started(start.start.streamSid, start.start.callSid)
    logger.info(f"Media stream started: {call.stream_sid} (call {call.call_sid})")

    if call.model_session is not None:
        call.model_session.label = call.stream_sid
        await call.model_session.start_call()


async def handle_media(message: Dict[str, Any], call: CallSession) -> None:
    """
    Forward one caller audio frame to the model.

    Skips full schema validation to keep per-frame latency low.
    """
    if not call.can_forward_audio:
        call.frames_dropped += 1
        if call.frames_dropped == 1 or call.frames_dropped % 100 == 0:
            logger.debug(f"Dropped {call.frames_dropped} audio frame(s) for stream: {call.label}")
        return

    payload = (message.get("media") or {}).get("payload")
    if not payload:
        logger.warning("Media event without payload")
        return

    try:
        mulaw_audio = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        logger.error(f"Error decoding media payload: {e}")
        return

    pcm16k = upsample_8k_to_16k(mulaw.decode(mulaw_audio))
    await call.model_session.send_audio(pcm16k)
    call.frames_forwarded += 1


async def handle_stop(message: Dict[str, Any], call: CallSession) -> None:
    """Handle the stop event: end the call and close its model session."""
    try:
        StopEvent(**message)
    except ValidationError as e:
        logger.warning(f"Malformed stop event, stopping anyway: {e}")

    if not call.mark_stopped():
        logger.debug(f"Duplicate stop event ignored for stream: {call.label}")
        return

    logger.info(
        f"Media stream stopped: {call.label} "
        f"(forwarded={call.frames_forwarded}, dropped={call.frames_dropped})"
    )
    if call.model_session is not None:
        await call.model_session.close()


async def handle_mark(message: Dict[str, Any], call: CallSession) -> None:
    """Log playback marks echoed back by Twilio."""
    try:
        mark = MarkEvent(**message)
        logger.debug(f"Mark played on stream {call.label}: {mark.mark.get('name')}")
    except ValidationError as e:
        logger.error(f"Invalid mark event: {e}")


async def handle_dtmf(message: Dict[str, Any], call: CallSession) -> None:
    """Log keypad input; the booking flow is voice-only."""
    try:
        dtmf = DtmfEvent(**message)
        logger.info(f"DTMF digit on stream {call.label}: {dtmf.dtmf.get('digit')}")
    except ValidationError as e:
        logger.error(f"Invalid dtmf event: {e}")
