"""Alignment and report I/O (SequinKit)."""
