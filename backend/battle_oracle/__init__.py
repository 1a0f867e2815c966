"""Battle Oracle: settlement and Merkle commitments for portfolio battles."""

__version__ = "0.1.0"
__author__ = "Battle Oracle Team"

__all__ = ["__version__", "__author__"]
