"""
Configuration module for the call relay.

Key components:
- constants: Application-wide constants such as the logger name, default
  model, stream path, WebSocket tuning and Realtime API event types.
- logging_config: Console and rotating file logging for the application logger.
- settings: Environment-driven Settings, validated at startup.

Usage examples:
```python
from app.config.logging_config import configure_logging
from app.config.settings import Settings

logger = configure_logging()
settings = Settings.from_env()  # raises ConfigurationError when incomplete
```
"""
