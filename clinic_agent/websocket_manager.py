"""
Media stream connection manager for Twilio <-> Gemini Live calls.

This module implements the server side of a Twilio bidirectional Media Stream:
- Accept the WebSocket connection and refuse it if the model credentials are missing
- Create the call's CallSession and open its Gemini Live session in the background
- Route each incoming event to its handler by the event's "event" field
- Stream the model's audio back to Twilio, in order, tagged with the stream id
- Close the model session when the call ends, whether or not Twilio sent "stop"
"""

import asyncio
import json
import logging
import os
from typing import Any, Awaitable, Callable, Dict, Optional, Set

from fastapi import WebSocket, WebSocketDisconnect

from clinic_agent.bot.gemini_live import GeminiLiveSession
from clinic_agent.config.constants import (
    EVENT_CONNECTED,
    EVENT_DTMF,
    EVENT_MARK,
    EVENT_MEDIA,
    EVENT_START,
    EVENT_STOP,
    LOGGER_NAME,
    OUTPUT_AUDIO,
    OUTPUT_INTERRUPTED,
)
from clinic_agent.handlers.stream_handlers import (
    handle_connected,
    handle_dtmf,
    handle_mark,
    handle_media,
    handle_start,
    handle_stop,
)
from clinic_agent.handlers.tool_handlers import ToolDispatcher
from clinic_agent.models.call_session import CallSession
from clinic_agent.models.message_schemas import ClearEvent, OutboundMediaEvent
from clinic_agent.services.clinic_client import ClinicService

logger = logging.getLogger(LOGGER_NAME)

# Close code sent when the server is missing required configuration
CLOSE_CODE_CONFIG_ERROR = 1011

# Type hint for handler functions
HandlerFunc = Callable[[Dict[str, Any], CallSession], Awaitable[None]]


def get_gemini_api_key() -> Optional[str]:
    """Read the Gemini API key at connection time."""
    return os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY")


class MediaStreamManager:
    """Relays audio and events between Twilio media streams and Gemini Live sessions.

    Each connection gets its own CallSession and model session; calls share
    nothing except the booking backend client.
    """

    def __init__(self, clinic_service: Optional[ClinicService] = None):
        self._clinic_service = clinic_service
        self.calls: Set[CallSession] = set()

        self.handlers: Dict[str, HandlerFunc] = {
            EVENT_CONNECTED: handle_connected,
            EVENT_START: handle_start,
            EVENT_MEDIA: handle_media,
            EVENT_STOP: handle_stop,
            EVENT_MARK: handle_mark,
            EVENT_DTMF: handle_dtmf,
        }

    @property
    def clinic_service(self) -> ClinicService:
        """The booking backend client shared by all calls, created on first use."""
        if self._clinic_service is None:
            self._clinic_service = ClinicService()
        return self._clinic_service

    def create_model_session(self, api_key: str) -> GeminiLiveSession:
        """Build the Gemini Live session for a new call."""
        return GeminiLiveSession(api_key, ToolDispatcher(self.clinic_service))

    async def handle_websocket(self, websocket: WebSocket) -> None:
        """Handle one Twilio media stream connection throughout its lifecycle.

        Args:
            websocket (WebSocket): The FastAPI WebSocket connection object

        This method:
        1. Accepts the connection, closing it at once if configuration is missing
        2. Starts opening the model session without waiting for it
        3. Processes incoming events in order until the connection closes
        4. Closes the model session and stops relay tasks on the way out
        """
        await websocket.accept()
        logger.info("Media stream connection established")

        api_key = get_gemini_api_key()
        if not api_key:
            logger.error("GEMINI_API_KEY is not set, closing media stream connection")
            await websocket.close(
                code=CLOSE_CODE_CONFIG_ERROR,
                reason="Server configuration error: GEMINI_API_KEY not set.",
            )
            return

        call = CallSession(websocket, self.create_model_session(api_key))
        self.calls.add(call)
        open_task = asyncio.create_task(call.model_session.open())
        sender_task = asyncio.create_task(self._forward_model_output(call))

        try:
            while True:
                data = await websocket.receive_text()
                try:
                    message = json.loads(data)
                except json.JSONDecodeError as e:
                    logger.error(f"Dropping unparseable event: {e}")
                    continue
                if not isinstance(message, dict):
                    logger.error(f"Dropping event that is not a JSON object: {data[:100]}")
                    continue

                event = message.get("event")
                handler = self.handlers.get(event)
                if handler is None:
                    logger.debug(f"Ignoring unknown event type: {event}")
                    continue

                try:
                    await handler(message, call)
                except Exception as e:
                    logger.error(f"Error handling {event} event: {e}", exc_info=True)
        except WebSocketDisconnect:
            logger.info(f"Media stream disconnected: {call.label}")
        except Exception as e:
            logger.error(f"Error in media stream connection: {e}", exc_info=True)
        finally:
            await self._cleanup(call, open_task, sender_task)

    async def _forward_model_output(self, call: CallSession) -> None:
        """Send the model's audio to Twilio in the order it was produced."""
        queue = call.model_session.output_queue
        try:
            while True:
                kind, audio = await queue.get()
                if not call.stream_sid or call.stopped:
                    continue

                if kind == OUTPUT_AUDIO:
                    outbound = OutboundMediaEvent.from_audio(call.stream_sid, audio)
                elif kind == OUTPUT_INTERRUPTED:
                    outbound = ClearEvent(streamSid=call.stream_sid)
                else:
                    continue

                try:
                    await call.websocket.send_text(outbound.model_dump_json())
                except Exception as e:
                    logger.warning(f"Could not send {kind} to stream {call.label}: {e}")
        except asyncio.CancelledError:
            logger.debug(f"Output forwarding cancelled for stream: {call.label}")

    async def _cleanup(
        self, call: CallSession, open_task: asyncio.Task, sender_task: asyncio.Task
    ) -> None:
        call.mark_stopped()

        if not open_task.done():
            open_task.cancel()
        try:
            await open_task
        except asyncio.CancelledError:
            pass
        except Exception as e:
            logger.warning(f"Model session open failed: {e}")

        try:
            await call.model_session.close()
        except Exception as e:
            logger.error(f"Error closing model session: {e}", exc_info=True)

        sender_task.cancel()
        try:
            await sender_task
        except asyncio.CancelledError:
            pass

        self.calls.discard(call)
        try:
            await call.websocket.close()
        except Exception:
            pass  # Already closed by the peer
        logger.info(f"Media stream connection closed: {call.label}")

    async def aclose(self) -> None:
        """Release the shared booking backend client."""
        if self._clinic_service is not None:
            await self._clinic_service.aclose()
