"""
Logging for Run Control.

Every record carries the session it belongs to and, while a run holds the
execution slot, the request and feature it was emitted for. Console and
log file share one formatter: JSON lines in CI, compact text otherwise.
Run output itself never goes through here; it lives in the log sink and
is printed on stdout, so diagnostics are kept on stderr.
"""

import json
import logging
import logging.handlers
import sys
import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from .config import Config


RUN_FIELDS = ("session_id", "request_id", "feature")

# Chatty third-party loggers, only let through when debugging
THIRD_PARTY_LOGGERS = ("LiteLLM", "httpx", "aiohttp.access", "aiohttp.client")


def run_context(record: logging.LogRecord, default_session: str) -> Dict[str, str]:
    """Session and run fields stamped on a record."""
    context = {
        name: getattr(record, name)
        for name in RUN_FIELDS
        if getattr(record, name, None)
    }
    context.setdefault("session_id", default_session)
    return context


class StructuredFormatter(logging.Formatter):
    """One JSON object per line, for CI log collectors."""

    def __init__(self, session_id: str):
        super().__init__()
        self.session_id = session_id

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        entry: Dict[str, Any] = {
            "ts": created.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            **run_context(record, self.session_id),
            "msg": record.getMessage(),
        }
        data = getattr(record, "metadata", None)
        if data:
            entry["data"] = data
        if record.exc_info:
            entry["error"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


class TextFormatter(logging.Formatter):
    """
    Compact single-line format for terminals and the rotating log file.

    ``12:00:01 INFO    [3f9a1c2e/req-5b1d User Login] runcontrol.execution.driver: ...``
    """

    def __init__(self, session_id: str):
        super().__init__()
        self.session_id = session_id

    def format(self, record: logging.LogRecord) -> str:
        context = run_context(record, self.session_id)
        scope = context["session_id"][:8]
        if "request_id" in context:
            scope += f"/{context['request_id'][:8]}"
        if "feature" in context:
            scope += f" {context['feature']}"

        stamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        text = f"{stamp} {record.levelname:<7} [{scope}] {record.name}: {record.getMessage()}"

        data = getattr(record, "metadata", None)
        if data:
            text += " | " + " ".join(f"{key}={value}" for key, value in data.items())
        if record.exc_info:
            text += "\n" + self.formatException(record.exc_info)
        return text


class RunLogger(logging.LoggerAdapter):
    """Logger adapter that stamps session and run fields onto every record."""

    def process(self, msg, kwargs):
        extra = dict(self.extra)
        extra.update(kwargs.get("extra") or {})
        kwargs["extra"] = extra
        return msg, kwargs

    def for_request(self, request) -> "RunLogger":
        """Child logger bound to one run request."""
        return RunLogger(
            self.logger,
            {
                **self.extra,
                "request_id": request.request_id,
                "feature": request.feature.title,
            },
        )


def get_logger(name: str, session_id: Optional[str] = None) -> RunLogger:
    """Logger for a Run Control module, optionally bound to a session."""
    context = {"session_id": session_id} if session_id else {}
    return RunLogger(logging.getLogger(name), context)


def setup_logging(config: Config, session_id: str) -> logging.Logger:
    """
    Install the Run Control handlers on the root logger.

    Args:
        config: Configuration with the level, format and log directory
        session_id: Default session stamped on records that carry none

    Returns:
        The root logger
    """
    level = logging.WARNING if config.log_level == "WARN" else getattr(logging, config.log_level)
    if config.log_format == "json":
        formatter: logging.Formatter = StructuredFormatter(session_id)
    else:
        formatter = TextFormatter(session_id)

    handlers: list = [logging.StreamHandler(sys.stderr)]
    log_file = None
    if not config.is_ci_mode:
        config.logs_dir.mkdir(parents=True, exist_ok=True)
        log_file = config.get_log_file_path()
        handlers.append(
            logging.handlers.RotatingFileHandler(
                log_file, maxBytes=5 * 1024 * 1024, backupCount=3, encoding="utf-8"
            )
        )

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
    for handler in handlers:
        handler.setFormatter(formatter)
        root.addHandler(handler)
    root.setLevel(level)

    third_party_level = logging.DEBUG if level == logging.DEBUG else logging.WARNING
    for name in THIRD_PARTY_LOGGERS:
        logging.getLogger(name).setLevel(third_party_level)

    get_logger(__name__, session_id).debug(
        "Logging configured",
        extra={
            "metadata": {
                "level": logging.getLevelName(level),
                "format": config.log_format,
                "log_file": str(log_file) if log_file else None,
            }
        },
    )
    return root


def log_call(
    logger: logging.LoggerAdapter,
    channel: str,
    target: str,
    started: float,
    error: Optional[Any] = None,
    **metadata,
) -> float:
    """
    Record a finished outbound call to the backend or to a model.

    Successful calls are logged at DEBUG, failed ones at WARNING.

    Args:
        logger: Logger to write to
        channel: ``backend`` or ``model``
        target: What was called, e.g. ``POST http://localhost:3001/api/run``
        started: ``time.monotonic()`` value taken before the call
        error: The failure, if the call failed
        **metadata: Extra fields for the record

    Returns:
        Seconds elapsed since ``started``
    """
    elapsed = time.monotonic() - started
    data = {"channel": channel, "target": target, "elapsed": round(elapsed, 3), **metadata}
    if error is None:
        logger.debug(f"{channel} call ok: {target} ({elapsed:.2f}s)", extra={"metadata": data})
    else:
        data["error"] = str(error)
        logger.warning(
            f"{channel} call failed: {target} ({elapsed:.2f}s): {error}",
            extra={"metadata": data},
        )
    return elapsed


def log_run_outcome(logger: logging.LoggerAdapter, record) -> None:
    """Summarize a ledger record: INFO for a pass, WARNING for a failure."""
    level = logging.INFO if record.is_success else logging.WARNING
    logger.log(
        level,
        f"Run {record.status.value}: {record.feature_title} in {record.duration}",
        extra={"metadata": record.to_summary()},
    )
