"""
LINSTOR Docker volume plugin.

This package exposes LINSTOR managed DRBD volumes to Docker through the
volume plugin protocol, and ships an operator CLI for the same operations.
"""

__version__ = "0.1.0"
__all__ = ["api", "cli", "client", "lib"]
