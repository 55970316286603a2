"""
Modal screens for the tama chat client.
"""
from .confirm_screen import ConfirmScreen

__all__ = ["ConfirmScreen"]
