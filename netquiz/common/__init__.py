"""
Shared definitions used by both the server and the client library.

Includes:
- Ports, request tags and record names
- Length-prefixed wire framing
- Chat and notification event types
"""
