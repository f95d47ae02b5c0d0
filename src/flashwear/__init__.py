"""Flashwear - storage type detection and wear estimation for mobile flash storage."""

__version__ = "0.1.0"
