"""
Utility functions for the Chartboard dashboard system.
"""

from typing import List, Optional, Sequence, Union
import logging
from datetime import datetime


def setup_logging(log_level: str = "INFO", log_file: Optional[str] = None) -> logging.Logger:
    """Set up logging configuration."""
    logger = logging.getLogger("chartboard")
    logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    # Clear existing handlers
    logger.handlers.clear()

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


def split_route(route: Union[str, Sequence[str], None]) -> List[str]:
    """Split a route given as '/'-separated string or sequence into segments."""
    if route is None:
        return []
    if isinstance(route, str):
        return [segment for segment in route.split("/") if segment]
    return [str(segment) for segment in route if segment]


def pretty_date(timestamp: Optional[datetime], now: Optional[datetime] = None) -> str:
    """Describe a timestamp relative to now ('5 minutes ago', 'yesterday')."""
    if timestamp is None:
        return "never"

    now = now or datetime.now()
    seconds = (now - timestamp).total_seconds()

    if seconds < 60:
        return "just now"
    if seconds < 120:
        return "1 minute ago"
    if seconds < 3600:
        return f"{int(seconds // 60)} minutes ago"
    if seconds < 7200:
        return "1 hour ago"
    if seconds < 86400:
        return f"{int(seconds // 3600)} hours ago"

    days = int(seconds // 86400)
    if days == 1:
        return "yesterday"
    if days < 7:
        return f"{days} days ago"
    if days < 14:
        return "1 week ago"
    if days < 31:
        return f"{days // 7} weeks ago"
    if days < 62:
        return "1 month ago"
    if days < 365:
        return f"{days // 30} months ago"
    if days < 730:
        return "1 year ago"
    return f"{days // 365} years ago"


def format_last_synced(timestamp: Optional[datetime], now: Optional[datetime] = None) -> str:
    """Text of the last-synced label shown above a chart."""
    return f"Last synced {pretty_date(timestamp, now)}"
