"""
Call Relay - Twilio Media Streams to OpenAI Realtime API

Answers inbound phone calls with an AI voice agent by relaying the call's
media stream to an OpenAI Realtime session and the agent's replies back.

Key Components:
- bot: Upstream realtime session client and the per-call relay session
- config: Constants, settings loaded from the environment, and logging setup
- models: Realtime API message schemas and the registry of live sessions
- services: The telephony media stream connection wrapper
- upgrade_router: ASGI middleware refusing WebSocket upgrades on unknown paths
- websocket_manager: Acceptor that runs one relay session per media stream

Getting Started:
1. Set up environment variables:
   - OPENAI_API_KEY: Your OpenAI API key (required, startup aborts without it)
   - PORT: Port to run the server on (default 10000)
   - HOST: Host to bind the server to (default 0.0.0.0)
   - LOG_LEVEL: Logging level (default INFO)

2. Start the server:
   ```bash
   python run.py
   ```

3. Point the Twilio number's voice webhook at https://your-server/voice
"""
