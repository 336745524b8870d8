"""
Bot module: the realtime session client and the per-call relay.

Key components:
- RealtimeSessionClient: Opens sessions against the OpenAI Realtime API and
  sends the one-shot greeting on open.
- RealtimeSessionHandle: Duplex connection to one open realtime session.
- CallRelaySession: Forwards frames between one telephony stream and one
  realtime session and owns their joint teardown.

Usage examples:
```python
from app.bot import CallRelaySession, RealtimeSessionClient
from app.models.realtime_schemas import RealtimeSessionConfig

client = RealtimeSessionClient(api_key)
config = RealtimeSessionConfig(instructions="Greet the caller.")

async def handle_call(telephony):
    session = CallRelaySession(telephony, client, config)
    await session.run()
```
"""

from app.bot.call_relay import CallRelaySession, RelayState
from app.bot.realtime_api import RealtimeSessionClient, RealtimeSessionHandle

__all__ = ["CallRelaySession", "RelayState", "RealtimeSessionClient", "RealtimeSessionHandle"]
