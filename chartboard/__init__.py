"""Chartboard: dashboard chart lifecycle on asyncio."""

__version__ = "0.1.0"
