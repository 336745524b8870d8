"""
Services module: connections to external systems.

- telephony_stream: TelephonyStream, the wrapper around the media WebSocket
  the telephony provider opens for each call.
"""
