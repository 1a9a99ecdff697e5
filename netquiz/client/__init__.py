"""
Client package for the NetQuiz LAN platform.

Protocol-level clients for chat sessions, quizzes, file transfer and
presence notifications.
"""
