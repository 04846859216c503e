"""Compact TOON encoding and short keys for LLM <-> Linear bridges."""

__version__ = "0.1.0"
