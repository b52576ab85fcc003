"""
Gemini Live session for one phone call.

This module owns the duplex connection to the Gemini Live API for a single call:
it forwards caller audio as realtime input, opens the conversation with a
greeting cue, turns model audio into Twilio-ready mu-law chunks on an output
queue, and runs the model's function calls through the ToolDispatcher, sending
exactly one correlated result back per call.
"""

import asyncio
import base64
import json
import logging
import os
import re
import uuid
from contextlib import AsyncExitStack
from typing import Any, Dict, Optional, Set, Tuple

from google import genai
from google.genai import types

from clinic_agent.audio import mulaw
from clinic_agent.audio.resampler import downsample_16k_to_8k, downsample_24k_to_8k
from clinic_agent.bot.prompts import GREETING_CUE, SYSTEM_INSTRUCTION
from clinic_agent.bot.tools import CLINIC_TOOLS
from clinic_agent.config.constants import (
    DEFAULT_LIVE_MODEL,
    DEFAULT_START_POLICY,
    LOGGER_NAME,
    MODEL_INPUT_MIME_TYPE,
    MODEL_INPUT_SAMPLE_RATE,
    OUTPUT_AUDIO,
    OUTPUT_INTERRUPTED,
    START_POLICY_GREET,
    START_POLICY_LISTEN,
)
from clinic_agent.handlers.tool_handlers import ToolDispatcher
from clinic_agent.models.tool_schemas import ToolError, ToolInvocation

logger = logging.getLogger(LOGGER_NAME)

# Maximum queued output chunks; a full queue pushes back on the receive loop
MAX_QUEUE_SIZE = 32

# How long close() waits for in-flight tool calls to deliver their results
TOOL_RESULT_GRACE_SECONDS = 2.0

_RATE_PATTERN = re.compile(r"rate=(\d+)")

OutputItem = Tuple[str, bytes]


def _sample_rate(mime_type: Optional[str]) -> int:
    """Read the sample rate from a mime type like ``audio/pcm;rate=24000``."""
    match = _RATE_PATTERN.search(mime_type or "")
    return int(match.group(1)) if match else MODEL_INPUT_SAMPLE_RATE


class GeminiLiveSession:
    """
    One Gemini Live speech-to-speech session, tied to one call.

    The session is opened in the background when the call connects. Until it is
    open, audio sends are no-ops: early caller audio is dropped, never queued.
    """

    def __init__(
        self,
        api_key: str,
        dispatcher: ToolDispatcher,
        model: Optional[str] = None,
        start_policy: Optional[str] = None,
        client: Optional[genai.Client] = None,
    ):
        self.api_key = api_key
        self.dispatcher = dispatcher
        self.model = model or os.getenv("GEMINI_LIVE_MODEL", DEFAULT_LIVE_MODEL)
        self.start_policy = (
            start_policy or os.getenv("CONVERSATION_START_POLICY", DEFAULT_START_POLICY)
        ).lower()
        if self.start_policy not in (START_POLICY_GREET, START_POLICY_LISTEN):
            logger.warning(
                f"Unknown conversation start policy '{self.start_policy}', using '{DEFAULT_START_POLICY}'"
            )
            self.start_policy = DEFAULT_START_POLICY
        self.label = "pending-stream"
        self.output_queue: "asyncio.Queue[OutputItem]" = asyncio.Queue(maxsize=MAX_QUEUE_SIZE)

        self._client = client
        self._session = None
        self._exit_stack: Optional[AsyncExitStack] = None
        self._receive_task: Optional[asyncio.Task] = None
        self._tool_tasks: Set[asyncio.Task] = set()
        self._pending_tool_calls: Dict[str, ToolInvocation] = {}
        self._call_started = False
        self._greeting_sent = False
        self._failed = False
        self._closed = False

    @property
    def is_open(self) -> bool:
        """Whether the session is connected and usable."""
        return self._session is not None and not self._failed and not self._closed

    @property
    def greeting_sent(self) -> bool:
        return self._greeting_sent

    @property
    def pending_tool_calls(self) -> Dict[str, ToolInvocation]:
        return dict(self._pending_tool_calls)

    def build_config(self) -> types.LiveConnectConfig:
        """Build the Live API session configuration."""
        return types.LiveConnectConfig(
            response_modalities=[types.Modality.AUDIO],
            input_audio_transcription=types.AudioTranscriptionConfig(),
            output_audio_transcription=types.AudioTranscriptionConfig(),
            tools=[CLINIC_TOOLS],
            system_instruction=types.Content(parts=[types.Part(text=SYSTEM_INSTRUCTION)]),
        )

    async def open(self) -> bool:
        """
        Connect to the Gemini Live API.

        Returns:
            bool: True if the session is open when this returns
        """
        if self._closed or self._session is not None:
            return self.is_open

        if self._client is None:
            self._client = genai.Client(api_key=self.api_key)

        exit_stack = AsyncExitStack()
        try:
            logger.info(f"Connecting to Gemini Live with model: {self.model}")
            session = await exit_stack.enter_async_context(
                self._client.aio.live.connect(model=self.model, config=self.build_config())
            )
        except Exception as e:
            logger.error(f"Failed to open Gemini Live session: {e}", exc_info=True)
            self._failed = True
            return False

        if self._closed:
            # The call ended while we were connecting
            await exit_stack.aclose()
            return False

        self._exit_stack = exit_stack
        self._session = session
        self._receive_task = asyncio.create_task(self._receive_loop())
        logger.info(f"Gemini Live session opened for stream: {self.label}")

        if self._call_started:
            await self.send_initial_greeting_cue()
        return True

    async def start_call(self) -> None:
        """Note that the call started; greets now if the session is already open."""
        self._call_started = True
        if self.is_open:
            await self.send_initial_greeting_cue()

    async def send_initial_greeting_cue(self) -> None:
        """Ask the model to open the conversation. Sent at most once per call."""
        if self.start_policy != START_POLICY_GREET:
            logger.debug(f"Start policy is '{self.start_policy}', waiting for the caller to speak")
            return
        if self._greeting_sent or not self.is_open:
            return

        self._greeting_sent = True
        try:
            await self._session.send_realtime_input(text=GREETING_CUE)
            logger.info(f"Greeting cue sent for stream: {self.label}")
        except Exception as e:
            self._mark_failed("sending greeting cue", e)

    async def send_audio(self, pcm16k: bytes) -> None:
        """
        Forward one 16 kHz linear16 frame to the model.

        Args:
            pcm16k: Caller audio, already decoded and upsampled
        """
        if not self.is_open:
            return
        try:
            await self._session.send_realtime_input(
                audio=types.Blob(data=pcm16k, mime_type=MODEL_INPUT_MIME_TYPE)
            )
        except Exception as e:
            self._mark_failed("sending audio", e)

    async def send_tool_result(self, invocation_key: str, payload: Any) -> bool:
        """
        Deliver the result of one tool invocation back to the model.

        Args:
            invocation_key: Correlation key of the function call being answered
            payload: Result data or an error payload

        Returns:
            bool: True if the response reached the model
        """
        invocation = self._pending_tool_calls.pop(invocation_key, None)
        if invocation is None:
            logger.warning(f"No pending tool call {invocation_key}, result not sent")
            return False
        invocation.result = payload

        if self._session is None or self._failed:
            logger.warning(
                f"Session unavailable, dropping result of {invocation.name} ({invocation_key})"
            )
            return False

        result_json = json.dumps(payload, default=str)
        try:
            await self._session.send_tool_response(
                function_responses=[
                    types.FunctionResponse(
                        id=invocation.id or None,
                        name=invocation.name,
                        response={"result": result_json},
                    )
                ]
            )
        except Exception as e:
            logger.warning(f"Could not deliver result of {invocation.name} ({invocation_key}): {e}")
            return False

        logger.info(f"Sent tool response for {invocation.name}: {result_json[:500]}")
        return True

    async def _receive_loop(self) -> None:
        """Read model events until the session ends or is closed."""
        try:
            while not self._closed:
                received = 0
                async for message in self._session.receive():
                    received += 1
                    await self._handle_message(message)
                if not received:
                    logger.info(f"Gemini Live session ended for stream: {self.label}")
                    self._failed = True
                    break
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self._mark_failed("receiving", e)

    async def _handle_message(self, message: types.LiveServerMessage) -> None:
        tool_call = message.tool_call
        if tool_call and tool_call.function_calls:
            for function_call in tool_call.function_calls:
                self._start_tool_call(function_call)

        content = message.server_content
        if content is None:
            return

        if content.interrupted:
            logger.debug(f"Model output interrupted on stream: {self.label}")
            await self.output_queue.put((OUTPUT_INTERRUPTED, b""))

        if content.input_transcription and content.input_transcription.text:
            logger.info(f"[{self.label}] Caller: {content.input_transcription.text}")
        if content.output_transcription and content.output_transcription.text:
            logger.info(f"[{self.label}] Agent: {content.output_transcription.text}")

        if content.model_turn and content.model_turn.parts:
            for part in content.model_turn.parts:
                if part.inline_data and part.inline_data.data:
                    await self._emit_audio(part.inline_data.data, part.inline_data.mime_type)

    async def _emit_audio(self, data, mime_type: Optional[str]) -> None:
        """Convert one model audio chunk to 8 kHz mu-law and queue it for the caller."""
        if isinstance(data, str):
            data = base64.b64decode(data)

        if _sample_rate(mime_type) == 24000:
            pcm8k = downsample_24k_to_8k(data)
        else:
            pcm8k = downsample_16k_to_8k(data)

        mulaw_audio = mulaw.encode(pcm8k)
        if mulaw_audio:
            await self.output_queue.put((OUTPUT_AUDIO, mulaw_audio))

    def _start_tool_call(self, function_call: types.FunctionCall) -> None:
        name = function_call.name or ""
        # The model may omit ids; those calls still need their own entry
        key = function_call.id or f"{name}-{uuid.uuid4().hex}"
        if key in self._pending_tool_calls:
            logger.warning(f"Duplicate tool call id {key} ignored")
            return

        invocation = ToolInvocation(
            key=key,
            id=function_call.id or "",
            name=name,
            args=dict(function_call.args or {}),
        )
        self._pending_tool_calls[key] = invocation
        logger.info(
            f"Model called tool: {invocation.name}({json.dumps(invocation.args, default=str)})"
        )
        task = asyncio.create_task(self._run_tool_call(invocation))
        self._tool_tasks.add(task)
        task.add_done_callback(self._tool_tasks.discard)

    async def _run_tool_call(self, invocation: ToolInvocation) -> None:
        try:
            result = await self.dispatcher.dispatch(invocation.name, invocation.args)
        except Exception as e:
            logger.error(f"Tool {invocation.name} failed: {e}", exc_info=True)
            result = ToolError(error=str(e)).model_dump()
        await self.send_tool_result(invocation.key, result)

    def _mark_failed(self, action: str, error: Exception) -> None:
        if not self._failed:
            logger.error(f"Gemini Live session error while {action}: {error}")
        self._failed = True

    async def close(self) -> None:
        """Close the session. Safe to call repeatedly or before open() finished."""
        if self._closed:
            return
        self._closed = True

        if self._receive_task:
            self._receive_task.cancel()
            try:
                await self._receive_task
            except asyncio.CancelledError:
                pass

        if self._tool_tasks:
            logger.info(f"Waiting for {len(self._tool_tasks)} in-flight tool call(s)")
            _, pending = await asyncio.wait(
                set(self._tool_tasks), timeout=TOOL_RESULT_GRACE_SECONDS
            )
            for task in pending:
                task.cancel()
            if self._pending_tool_calls:
                logger.warning(
                    f"Tool calls left unanswered at close: {list(self._pending_tool_calls)}"
                )

        if self._exit_stack:
            try:
                await self._exit_stack.aclose()
            except Exception as e:
                logger.warning(f"Error closing Gemini Live connection: {e}")

        self._exit_stack = None
        self._session = None
        logger.info(f"Gemini Live session closed for stream: {self.label}")
