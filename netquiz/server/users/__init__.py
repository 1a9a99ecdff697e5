"""
Users module for server-side session management.

Handles:
- Login with unique usernames
- Session registry
- Join/leave presence
"""
