"""Build-time helpers."""
