"""
Per-call state for one Twilio media stream connection.

A CallSession is created when the telephony WebSocket is accepted and lives
exactly as long as that connection. It owns the call's model session; there is
no process-wide session table, so calls never share mutable state.
"""

from typing import TYPE_CHECKING, Optional

from fastapi import WebSocket

if TYPE_CHECKING:
    from clinic_agent.bot.gemini_live import GeminiLiveSession


class CallSession:
    """
    State of one physical phone call.

    Attributes:
        websocket: The Twilio media stream connection
        stream_sid: Stream identifier assigned by Twilio on the start event
        call_sid: Call identifier from the start event, when provided
        active: True between the start event and the stop event (or disconnect)
        stopped: True once the call has ended; later media is dropped
        model_session: The call's Gemini Live session, exclusively owned
    """

    def __init__(self, websocket: WebSocket, model_session: Optional["GeminiLiveSession"] = None):
        self.websocket = websocket
        self.model_session = model_session
        self.stream_sid: Optional[str] = None
        self.call_sid: Optional[str] = None
        self.active = False
        self.stopped = False
        self.frames_forwarded = 0
        self.frames_dropped = 0

    def mark_started(self, stream_sid: str, call_sid: Optional[str] = None) -> None:
        """Record the stream identity and mark the call active."""
        self.stream_sid = stream_sid
        self.call_sid = call_sid
        self.active = True

    def mark_stopped(self) -> bool:
        """
        Mark the call inactive.

        Returns:
            bool: False if the call had already stopped
        """
        if self.stopped:
            return False
        self.active = False
        self.stopped = True
        return True

    @property
    def can_forward_audio(self) -> bool:
        """Whether caller audio may be sent to the model right now."""
        return (
            self.active
            and self.model_session is not None
            and self.model_session.is_open
        )

    @property
    def label(self) -> str:
        """Identifier used in log lines."""
        return self.stream_sid or "pending-stream"
