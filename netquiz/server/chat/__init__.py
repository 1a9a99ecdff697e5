"""
Chat module for server-side messaging functionality.

Handles:
- Chat message broadcasting
- Private messages
- In-band chat commands
"""
