"""
Bot module for the Gemini Live side of a call.

Key components:
- GeminiLiveSession: One duplex Gemini Live session per call. Forwards caller
  audio, sends the greeting cue once, converts model audio to 8 kHz mu-law on
  an output queue and answers each function call exactly once.
- tools: Function declarations for the three clinic operations.
- prompts: System instruction for the five-step booking conversation and the
  greeting cue.

Usage examples:
```python
from clinic_agent.bot import GeminiLiveSession
from clinic_agent.handlers.tool_handlers import ToolDispatcher
from clinic_agent.services import ClinicService

session = GeminiLiveSession(api_key, ToolDispatcher(ClinicService()))
await session.open()
await session.start_call()          # greets the caller
await session.send_audio(pcm16k)    # 16 kHz linear16
kind, chunk = await session.output_queue.get()
await session.close()
```
"""

from clinic_agent.bot.gemini_live import GeminiLiveSession
from clinic_agent.bot.tools import CLINIC_TOOLS

__all__ = ["GeminiLiveSession", "CLINIC_TOOLS"]
