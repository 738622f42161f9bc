"""Background server lifecycle: launching and startup probing."""

from .launcher import ServerLauncher
from .prober import wait_until_started

__all__ = [
    "ServerLauncher",
    "wait_until_started",
]
