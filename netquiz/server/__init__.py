"""
Server package for the NetQuiz LAN platform.

This package contains all server-side functionality including:
- Connection routing on the single TCP port
- Session registry, login and presence
- Chat fan-out and in-band commands
- UDP presence notifications
- Quiz and file transfer handlers
"""
