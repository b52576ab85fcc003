"""
Models module for data structures and per-call state in the clinic voice agent.

Key components:
- message_schemas: Pydantic models for the Twilio Media Streams events received
  from and sent to the telephony side.
- call_session: CallSession, the state of one phone call and owner of its
  Gemini Live session.
- tool_schemas: ToolInvocation and ToolError for function calls requested by
  the speech model.

Usage examples:
```python
from clinic_agent.models.message_schemas import StartEvent, OutboundMediaEvent

start = StartEvent(**{"event": "start", "start": {"streamSid": "MZ123", "callSid": "CA456"}})
outbound = OutboundMediaEvent.from_audio("MZ123", mulaw_bytes)
await websocket.send_text(outbound.model_dump_json())
```
"""

from clinic_agent.models.call_session import CallSession
from clinic_agent.models.message_schemas import (
    ClearEvent,
    ConnectedEvent,
    DtmfEvent,
    InboundEvent,
    MarkEvent,
    MediaEvent,
    OutboundEvent,
    OutboundMediaEvent,
    StartEvent,
    StopEvent,
)
from clinic_agent.models.tool_schemas import ToolError, ToolInvocation

__all__ = [
    "CallSession",
    "ClearEvent",
    "ConnectedEvent",
    "DtmfEvent",
    "InboundEvent",
    "MarkEvent",
    "MediaEvent",
    "OutboundEvent",
    "OutboundMediaEvent",
    "StartEvent",
    "StopEvent",
    "ToolError",
    "ToolInvocation",
]
