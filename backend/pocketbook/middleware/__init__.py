"""Starlette middleware: request ID tagging and access logging."""
