"""
Quiz module for server-side quiz delivery and scoring.
"""
