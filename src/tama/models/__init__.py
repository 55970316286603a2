"""
Data models for the tama chat client.
"""
from .turn import Turn

__all__ = ["Turn"]
