"""Bot package - Discord client and event wiring."""
from .client import GridironBot, install_signal_handlers

__all__ = ["GridironBot", "install_signal_handlers"]
