"""Structured logging for formcrypt.

formcrypt is a library, so it configures only its own ``formcrypt`` logger
namespace and leaves the host application's root logger alone. Records are
rendered by structlog, either for a terminal or as one JSON object per line.

Soft failures (unsupported algorithm, malformed envelope, provider error,
rejected form submission) are logged as warnings with a dotted event name and
the failure's details as keyword context. Values under keys that look like
secrets are redacted before rendering unless debug mode is on.

Environment Variables:
    FORMCRYPT_LOG_FORMAT: "json" or "console" (default)
    FORMCRYPT_LOG_LEVEL: DEBUG, INFO (default), WARNING or ERROR
    FORMCRYPT_SERVICE_NAME: value of the ``service`` field on every record
    FORMCRYPT_DEBUG: "true" or "1" to log secrets unredacted

Example:
    >>> configure_logging(LogSettings(log_format="json"), force=True)
    >>> get_logger("formcrypt.forms.signer").warning("form.verify.failed", code="formcrypt:form/expired")
"""

import logging
import os
import sys
from dataclasses import dataclass, replace
from typing import Any

import structlog
from structlog.typing import EventDict, Processor, WrappedLogger

LOGGER_NAMESPACE = "formcrypt"

ENV_LOG_FORMAT = "FORMCRYPT_LOG_FORMAT"
ENV_LOG_LEVEL = "FORMCRYPT_LOG_LEVEL"
ENV_SERVICE_NAME = "FORMCRYPT_SERVICE_NAME"
ENV_DEBUG = "FORMCRYPT_DEBUG"

DEFAULT_SERVICE_NAME = "formcrypt"
REDACTED_PLACEHOLDER = "***REDACTED***"

_SENSITIVE_KEY_PATTERNS = ("password", "passphrase", "secret", "token", "private")
_TRUTHY = frozenset({"true", "1", "yes", "on"})

# Keys structlog itself adds; never redacted.
_RESERVED_KEYS = frozenset({"event", "level", "logger", "timestamp", "service"})

_configured = False


def is_debug_mode() -> bool:
    """True when FORMCRYPT_DEBUG holds a truthy value."""
    return os.environ.get(ENV_DEBUG, "").strip().lower() in _TRUTHY


@dataclass(frozen=True)
class LogSettings:
    log_format: str = "console"
    log_level: str = "INFO"
    service_name: str = DEFAULT_SERVICE_NAME

    @classmethod
    def from_env(cls) -> "LogSettings":
        defaults = cls()
        return cls(
            log_format=os.environ.get(ENV_LOG_FORMAT, defaults.log_format).strip().lower(),
            log_level=os.environ.get(ENV_LOG_LEVEL, defaults.log_level).strip().upper(),
            service_name=os.environ.get(ENV_SERVICE_NAME, defaults.service_name).strip(),
        )

    @property
    def level(self) -> int:
        level = logging.getLevelName(self.log_level.upper())
        if not isinstance(level, int):
            raise ValueError(f"unknown log level {self.log_level!r}")
        return level


def _is_sensitive_key(key: str) -> bool:
    lower = key.lower()
    return any(pattern in lower for pattern in _SENSITIVE_KEY_PATTERNS)


def _redact(value: Any) -> Any:
    if isinstance(value, dict):
        return {
            k: REDACTED_PLACEHOLDER if _is_sensitive_key(str(k)) else _redact(v)
            for k, v in value.items()
        }
    if isinstance(value, list):
        return [_redact(item) for item in value]
    return value


def sanitize_for_logging(data: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of ``data`` with secret-looking values replaced.

    Matching is a case-insensitive substring test on the key (password,
    passphrase, secret, token, private) and recurses into nested dicts and
    lists. In debug mode the copy is returned unredacted.

    Example:
        >>> sanitize_for_logging({"cipher": "aes-256-cbc", "password": "hunter2"})
        {'cipher': 'aes-256-cbc', 'password': '***REDACTED***'}
    """
    if is_debug_mode():
        return dict(data)
    return _redact(dict(data))  # type: ignore[no-any-return]


def redact_sensitive(_: WrappedLogger, __: str, event_dict: EventDict) -> EventDict:
    """structlog processor applying :func:`sanitize_for_logging` to event context."""
    context = {k: v for k, v in event_dict.items() if k not in _RESERVED_KEYS}
    event_dict.update(sanitize_for_logging(context))
    return event_dict


def _shared_processors() -> list[Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        redact_sensitive,
    ]


def _renderer(log_format: str) -> Processor:
    if log_format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())


def configure_logging(settings: LogSettings | None = None, force: bool = False) -> None:
    """Install a stderr handler on the ``formcrypt`` logger.

    Args:
        settings: Defaults to :meth:`LogSettings.from_env`.
        force: Reconfigure even if logging was already set up.

    Raises:
        ValueError: If the log level name is unknown.
    """
    global _configured

    if _configured and not force:
        return
    settings = settings or LogSettings.from_env()
    level = settings.level
    shared = _shared_processors()

    structlog.configure(
        processors=[*shared, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(settings.log_format),
            ],
        )
    )

    package_logger = logging.getLogger(LOGGER_NAMESPACE)
    package_logger.handlers.clear()
    package_logger.addHandler(handler)
    package_logger.setLevel(level)
    package_logger.propagate = False

    structlog.contextvars.bind_contextvars(service=settings.service_name)
    _configured = True


def reconfigure(**changes: Any) -> None:
    """Reconfigure from the environment with selected fields overridden.

    Example:
        >>> reconfigure(log_level="DEBUG")
    """
    configure_logging(replace(LogSettings.from_env(), **changes), force=True)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Logger for ``name``; configures logging from the environment on first use."""
    if not _configured:
        configure_logging()
    return structlog.stdlib.get_logger(name)


def bind_context(**kwargs: Any) -> None:
    """Attach context (e.g. ``request_id``, ``remote_addr``) to every following record."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()
