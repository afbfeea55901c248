#!/usr/bin/env python3
"""
ossify/services/formatting.py
Human-readable sizes and dates
"""

from datetime import datetime
from typing import Optional


SIZE_UNITS = ['B', 'K', 'M', 'G', 'T']


def format_size(size: int) -> str:
    """Format bytes with base-1024 units: 1023B, 1.0K, 1.5M ..."""
    if size < 1024:
        return f"{max(size, 0)}B"

    i = 0
    size_float = float(size)
    while size_float >= 1024 and i < len(SIZE_UNITS) - 1:
        size_float /= 1024
        i += 1

    return f"{size_float:.1f}{SIZE_UNITS[i]}"


def format_date(value: Optional[datetime], default: str = 'Unknown') -> str:
    if value is None:
        return default
    return value.strftime('%Y-%m-%d %H:%M:%S')
