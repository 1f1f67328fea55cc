"""
Purpose: Centralized logging configuration with structured output support.
Constraints: Logging only; no business logic.
"""

# Imports
import logging
import sys
import json
import os
import threading
import time
import re
from datetime import datetime
from pathlib import Path
from logging.handlers import RotatingFileHandler
from contextlib import contextmanager
from typing import Optional, Dict, Any

from vrc_world_opener.core.metrics import get_metrics

_REDACTED = "[redacted]"

_SECRET_PATTERNS = [
    re.compile(r"\bauthcookie_[A-Za-z0-9-]{8,}\b"),
    re.compile(r"\btwoFactorAuth=[^;\s]+"),
    re.compile(r"\bauth=[^;\s]+"),
    re.compile(r"(?i)\bBasic\s+[A-Za-z0-9+/=]{8,}"),
    re.compile(r"\beyJ[a-zA-Z0-9_\-]+=*\.[a-zA-Z0-9_\-]+=*\.[a-zA-Z0-9_\-]+=*\b"),
]


def _enabled(var: str, default: str = "1") -> bool:
    return os.getenv(var, default).lower() not in ("0", "false", "no")


def _redact_text(text: str) -> str:
    if not text:
        return text
    redacted = text
    for pattern in _SECRET_PATTERNS:
        redacted = pattern.sub(_REDACTED, redacted)
    return redacted


def _redact_obj(value):
    if isinstance(value, str):
        return _redact_text(value)
    if isinstance(value, dict):
        return {k: _redact_obj(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return type(value)(_redact_obj(v) for v in value)
    return value


# Public API
class UnifiedLogger:
    """Logger shared by the scanner, the browser bridge and the API client"""

    _lock = threading.Lock()
    _sentry_initialized = False
    _metrics_thread_started = False
    _global_initialized = False

    def __init__(self, name: str = "vrc_world_opener", log_level: Optional[str] = None):
        self.name = name

        if log_level is None:
            log_level = os.getenv("LOG_LEVEL", "INFO").upper()
        level = getattr(logging, log_level, logging.INFO)

        with self._lock:
            self.logger = logging.getLogger(name)
            self.logger.setLevel(level)
            # Root handlers are configured once; every logger propagates to them
            if not UnifiedLogger._global_initialized:
                logs_dir = Path(os.getenv("LOG_DIR", "logs"))
                timestamp = datetime.now().strftime("%Y%m%d")

                if self._ensure_root_logger(logs_dir, timestamp, level):
                    if _enabled("METRICS_ENABLED"):
                        self._start_metrics_thread(logs_dir)
                    self._maybe_init_sentry()
                    self.logger.info(f"Logger initialized. Log dir: {logs_dir}")

                UnifiedLogger._global_initialized = True
            self.logger.propagate = True

    def get_logger(self) -> logging.Logger:
        """Get the underlying logger instance"""
        return self.logger

    def log_activity(self, action: str, details: Dict[str, Any], level: str = "INFO"):
        """Log an opener event with structured data"""
        log_level = getattr(logging, level.upper(), logging.INFO)
        self.logger.log(log_level, f"ACTIVITY: {action}", extra={"action": action, "details": details})
        get_metrics().record(f"activity.{action}", success=log_level < logging.ERROR)

    def log_error_with_context(self, error: Exception, context: Dict[str, Any], level: str = "ERROR"):
        """Log errors with additional context and the active traceback"""
        details = {
            "error_type": type(error).__name__,
            "error_message": str(error),
            "context": context,
        }
        self.logger.log(
            getattr(logging, level.upper(), logging.ERROR),
            f"ERROR: {type(error).__name__}: {error}",
            exc_info=error,
            extra={"details": details},
        )
        get_metrics().record_error("exception")

    @contextmanager
    def time_operation(self, operation_name: str):
        """Context manager for timing operations"""
        start_time = time.time()
        try:
            yield
        finally:
            duration = time.time() - start_time
            self.logger.debug(f"PERFORMANCE: {operation_name} took {duration:.3f}s")

    def _start_metrics_thread(self, logs_dir: Path) -> None:
        if UnifiedLogger._metrics_thread_started:
            return
        interval = int(os.getenv("METRICS_SNAPSHOT_INTERVAL_SEC", "60"))
        if interval <= 0:
            return
        metrics_path = logs_dir / "metrics.jsonl"

        def _loop():
            while True:
                time.sleep(interval)
                try:
                    get_metrics().write_snapshot(metrics_path)
                except OSError as exc:
                    self.logger.debug(f"Metrics snapshot failed: {exc}")

        t = threading.Thread(target=_loop, daemon=True, name="metrics-snapshotter")
        t.start()
        UnifiedLogger._metrics_thread_started = True

    def _maybe_init_sentry(self) -> None:
        if UnifiedLogger._sentry_initialized:
            return
        dsn = os.getenv("SENTRY_DSN", "").strip()
        if not dsn:
            return
        try:
            import sentry_sdk
            from sentry_sdk.integrations.logging import LoggingIntegration
        except ImportError:
            self.logger.warning("SENTRY_DSN is set but sentry-sdk is not installed")
            return

        sentry_sdk.init(
            dsn=dsn,
            environment=os.getenv("SENTRY_ENVIRONMENT", "production"),
            release=os.getenv("SENTRY_RELEASE"),
            traces_sample_rate=float(os.getenv("SENTRY_TRACES_SAMPLE_RATE", "0.0")),
            integrations=[LoggingIntegration(level=logging.INFO, event_level=logging.ERROR)],
        )
        UnifiedLogger._sentry_initialized = True

    def _ensure_root_logger(self, logs_dir: Path, timestamp: str, level: int) -> bool:
        if not _enabled("ENABLE_ROOT_LOGGER"):
            return False
        root_logger = logging.getLogger()
        if root_logger.handlers:
            return False

        logs_dir.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            logs_dir / f"opener_{timestamp}.log",
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.setLevel(level)

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(
            getattr(logging, os.getenv("CONSOLE_LOG_LEVEL", "INFO").upper(), logging.INFO)
        )

        detailed_formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s"
        )
        simple_formatter = logging.Formatter("%(asctime)s - %(levelname)s - %(message)s")
        if _enabled("LOG_REDACTION"):
            detailed_formatter = _RedactingFormatter(detailed_formatter)
            simple_formatter = _RedactingFormatter(simple_formatter)

        file_handler.setFormatter(detailed_formatter)
        console_handler.setFormatter(simple_formatter)

        root_logger.setLevel(level)
        root_logger.addHandler(file_handler)
        root_logger.addHandler(console_handler)

        if _enabled("ENABLE_JSON_LOGGING", "0"):
            json_handler = RotatingFileHandler(
                logs_dir / f"opener_json_{timestamp}.log",
                maxBytes=5 * 1024 * 1024,
                backupCount=3,
                encoding="utf-8",
            )
            json_handler.setLevel(level)
            json_handler.setFormatter(_RedactingJsonFormatter())
            root_logger.addHandler(json_handler)
        if _enabled("METRICS_ENABLED"):
            root_logger.addHandler(_MetricsHandler())
        return True


def setup_logger(name: str = "vrc_world_opener", log_level: Optional[str] = None) -> logging.Logger:
    """Return a configured logger instance"""
    return UnifiedLogger(name=name, log_level=log_level).get_logger()


class _MetricsHandler(logging.Handler):
    """Count every log record by level."""

    def emit(self, record: logging.LogRecord) -> None:
        metrics = get_metrics()
        metrics.record(f"log.{record.levelname.lower()}", success=record.levelno < logging.ERROR)
        if record.levelno >= logging.ERROR:
            metrics.record_error("log.error")


class _RedactingFormatter(logging.Formatter):
    def __init__(self, base: logging.Formatter):
        super().__init__(base._fmt, base.datefmt)
        self._base = base

    def format(self, record: logging.LogRecord) -> str:
        original_msg, original_args = record.msg, record.args
        record.msg = _redact_text(record.getMessage())
        record.args = ()
        try:
            return self._base.format(record)
        finally:
            record.msg, record.args = original_msg, original_args


class _RedactingJsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        log_obj = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": _redact_text(record.getMessage()),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        if hasattr(record, "action"):
            log_obj["action"] = _redact_obj(record.action)
        if hasattr(record, "details"):
            log_obj["details"] = _redact_obj(record.details)
        return json.dumps(log_obj, ensure_ascii=False, default=str)
