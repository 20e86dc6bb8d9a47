"""Shared infrastructure: configuration, logging, tracing and errors."""
