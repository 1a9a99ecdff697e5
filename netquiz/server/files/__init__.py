"""
Files module for server-side file transfer functionality.

Handles:
- File uploads and downloads
- File listing
"""
