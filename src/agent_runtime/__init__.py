"""
Agent Runtime - governed tool execution for autonomous coding-agent sessions.

This package normalizes several model backends into one chat contract,
gates every tool call through a role, file-path and lock governance
pipeline, audits file-affecting calls, and persists crash-recoverable
sessions that can spawn bounded child sessions.
"""

__version__ = "0.1.0"

__all__ = [
    "lib",
    "models",
    "providers",
    "services",
    "tools",
]
