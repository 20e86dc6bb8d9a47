"""
Structured logging configuration with audit trail support for the agent runtime.

Provides JSON-formatted logging with OpenTelemetry correlation and a
dedicated audit logger for governance and session lifecycle events.
"""

import json
import logging
import logging.config
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Any, Optional, TYPE_CHECKING

from opentelemetry import trace

if TYPE_CHECKING:
    from agent_runtime.lib.config import LoggingConfig


AUDIT_LOGGER_NAME = "agent_runtime.audit"

_RESERVED_RECORD_KEYS = {
    "name", "msg", "args", "levelname", "levelno", "pathname",
    "filename", "module", "exc_info", "exc_text", "stack_info",
    "lineno", "funcName", "created", "msecs", "relativeCreated",
    "thread", "threadName", "processName", "process", "message",
    "taskName", "otelTraceID", "otelSpanID", "otelTraceSampled", "otelServiceName"
}


class StructuredFormatter(logging.Formatter):
    """JSON formatter with OpenTelemetry trace correlation."""

    def __init__(self, include_trace: bool = True, extra_fields: Optional[Dict[str, Any]] = None):
        super().__init__()
        self.include_trace = include_trace
        self.extra_fields = extra_fields or {}

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as structured JSON."""
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno
        }

        if self.include_trace:
            current_span = trace.get_current_span()
            if current_span and current_span.is_recording():
                span_context = current_span.get_span_context()
                log_entry.update({
                    "trace_id": format(span_context.trace_id, "032x"),
                    "span_id": format(span_context.span_id, "016x")
                })

        if record.exc_info:
            log_entry["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": self.formatException(record.exc_info)
            }

        for key, value in record.__dict__.items():
            if key not in _RESERVED_RECORD_KEYS:
                log_entry[key] = value

        log_entry.update(self.extra_fields)

        return json.dumps(log_entry, ensure_ascii=False, default=str)


class SecurityEventLogger:
    """Logger for governance decisions and session lifecycle events."""

    def __init__(self, logger_name: str = AUDIT_LOGGER_NAME):
        self.logger = logging.getLogger(logger_name)

    def log_governance_decision(
        self,
        tool: str,
        role: str,
        allowed: bool,
        reason: Optional[str] = None,
        path: Optional[str] = None,
        chain_id: Optional[str] = None
    ) -> None:
        """Log the outcome of a governance validation."""
        level = logging.INFO if allowed else logging.WARNING
        self.logger.log(
            level,
            f"Governance {'pass' if allowed else 'deny'}: {tool} for role {role}",
            extra={
                "audit_type": "governance",
                "tool": tool,
                "role": role,
                "decision": "pass" if allowed else "deny",
                "reason": reason,
                "path": path,
                "chain_id": chain_id
            }
        )

    def log_session_event(
        self,
        event_type: str,
        session_id: str,
        role: Optional[str] = None,
        status: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> None:
        """Log a session-related audit event."""
        self.logger.info(
            f"Session event: {event_type}",
            extra={
                "audit_type": "session",
                "event_type": event_type,
                "session_id": session_id,
                "role": role,
                "status": status,
                "metadata": metadata or {}
            }
        )

    def log_spawn_event(
        self,
        parent_session_id: str,
        target_role: str,
        decision: str,
        reason: Optional[str] = None,
        child_session_id: Optional[str] = None
    ) -> None:
        """Log a nested session spawn attempt."""
        self.logger.info(
            f"Spawn event: {target_role} from {parent_session_id} - {decision}",
            extra={
                "audit_type": "spawn",
                "parent_session_id": parent_session_id,
                "target_role": target_role,
                "decision": decision,
                "reason": reason,
                "child_session_id": child_session_id
            }
        )


def setup_logging(config: "LoggingConfig") -> None:
    """Setup structured logging configuration."""
    log_level = config.level.upper()
    log_format = config.format

    log_dir = Path(config.directory).expanduser()
    log_dir.mkdir(parents=True, exist_ok=True)

    logging_config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "structured": {
                "()": StructuredFormatter,
                "include_trace": config.include_trace,
                "extra_fields": {
                    "service": "agent-runtime",
                    "environment": config.environment
                }
            },
            "simple": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
            }
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": log_level,
                "formatter": "structured" if log_format == "structured" else "simple",
                "stream": sys.stderr
            },
            "application_file": {
                "class": "logging.handlers.RotatingFileHandler",
                "level": log_level,
                "formatter": "structured",
                "filename": str(log_dir / "runtime.log"),
                "maxBytes": config.max_file_size,
                "backupCount": config.backup_count
            },
            "audit_file": {
                "class": "logging.handlers.RotatingFileHandler",
                "level": "INFO",
                "formatter": "structured",
                "filename": str(log_dir / "audit.jsonl"),
                "maxBytes": config.max_file_size,
                "backupCount": config.backup_count
            }
        },
        "loggers": {
            "agent_runtime": {
                "level": log_level,
                "handlers": ["console", "application_file"],
                "propagate": False
            },
            AUDIT_LOGGER_NAME: {
                "level": "INFO",
                "handlers": ["audit_file"],
                "propagate": False
            },
            "httpx": {
                "level": "WARNING",
                "handlers": ["console", "application_file"],
                "propagate": False
            },
            "opentelemetry": {
                "level": "WARNING",
                "handlers": ["console", "application_file"],
                "propagate": False
            }
        },
        "root": {
            "level": log_level,
            "handlers": ["console"]
        }
    }

    logging.config.dictConfig(logging_config)

    logger = logging.getLogger("agent_runtime.logging")
    logger.info("Structured logging initialized", extra={
        "config": {
            "level": log_level,
            "format": log_format,
            "directory": str(log_dir)
        }
    })
