"""
Configuration module for the clinic voice agent.

Key components:
- constants: Application-wide constants (logger name, audio rates, Twilio event
  names, tool names, booking backend defaults).
- logging_config: Console and rotating-file logging for the application logger.

Runtime settings come from environment variables (optionally loaded from a
``.env`` file by ``clinic_agent.main``) and are read where they are used, so a
missing credential only affects the connection that needs it.

Usage examples:
```python
from clinic_agent.config.constants import LOGGER_NAME, DEFAULT_LIVE_MODEL
from clinic_agent.config.logging_config import configure_logging

logger = configure_logging()
logger.info("Application started")
```
"""
