"""
NetQuiz LAN communication platform.

Quiz delivery, file sharing, real-time chat and presence notifications
behind a single TCP port, with UDP broadcast for announcements.
"""

__version__ = '1.0.0'
