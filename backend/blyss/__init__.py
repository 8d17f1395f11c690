"""Blyss real-time notification gateway and client runtime."""

__version__ = "0.1.0"
