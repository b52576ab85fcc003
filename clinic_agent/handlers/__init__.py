"""
Handlers module for Twilio Media Streams events and model function calls.

Key components:
- stream_handlers: One coroutine per Twilio event (connected, start, media, stop,
  mark, dtmf), each taking the raw event dict and the call's CallSession.
- tool_handlers: ToolDispatcher, mapping the model's function calls to clinic
  booking operations and converting every failure into an error payload.

Usage examples:
```python
from clinic_agent.handlers.stream_handlers import handle_media
from clinic_agent.handlers.tool_handlers import ToolDispatcher

await handle_media({"event": "media", "media": {"payload": b64_audio}}, call)

dispatcher = ToolDispatcher(clinic_service)
result = await dispatcher.dispatch("listCategories", {})
```
"""

from clinic_agent.handlers.stream_handlers import (
    handle_connected,
    handle_dtmf,
    handle_mark,
    handle_media,
    handle_start,
    handle_stop,
)
from clinic_agent.handlers.tool_handlers import ToolDispatcher

__all__ = [
    "handle_connected",
    "handle_dtmf",
    "handle_mark",
    "handle_media",
    "handle_start",
    "handle_stop",
    "ToolDispatcher",
]
