"""
Notification module for UDP presence broadcasts.
"""
