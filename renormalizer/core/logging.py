# renormalizer/core/logging.py
"""
Logging setup for the renormalizer.

Every logger lives under the ``renormalizer`` namespace. Handlers are
attached once to that root: stdout, plus a full log and an error-only log
when a log directory is configured. Records may carry repair context
(table, row key, column, unwrap layers...) which the formatter appends
as ``key=value`` pairs.
"""

import logging
import sys
from logging import DEBUG, INFO, WARNING, ERROR, CRITICAL
from pathlib import Path
from typing import Any, Optional, Union
from datetime import datetime


ROOT_LOGGER = 'renormalizer'
LOG_FILE = 'renormalizer.log'
ERROR_LOG_FILE = 'renormalizer_errors.log'


class RenormalizerFormatter(logging.Formatter):
    CONTEXT_ATTRS = ('table', 'row_key', 'column', 'layers', 'precision_guarded',
                     'db_path', 'rows', 'error', 'exception_type')

    def __init__(self, include_context: bool = False):
        super().__init__()
        self.include_context = include_context

    @staticmethod
    def render_value(value: Any) -> str:
        # Composite keys come through as tuples
        if isinstance(value, tuple):
            return ",".join(str(part) for part in value)
        text = str(value)
        if any(ch.isspace() for ch in text):
            return '"' + text.replace('"', '\\"') + '"'
        return text

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created).strftime('%Y-%m-%d %H:%M:%S.%f')[:-3]
        line = f"{timestamp} - {record.name} - {record.levelname} - {record.getMessage()}"

        if self.include_context:
            context = [f"{attr}={self.render_value(getattr(record, attr))}"
                       for attr in self.CONTEXT_ATTRS
                       if getattr(record, attr, None) is not None]
            if context:
                line = f"{line} | {' '.join(context)}"

        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


class RenormalizerLogger:
    """Process-wide handler setup for the ``renormalizer`` logger tree"""

    _configured = False
    _log_dir: Optional[Path] = None
    _log_level = INFO

    @classmethod
    def configure(cls,
                  log_dir: Optional[Path] = None,
                  log_level: Union[str, int] = "INFO",
                  console_enabled: bool = True,
                  file_enabled: bool = True,
                  structured_format: bool = True,
                  force: bool = False) -> None:
        """
        Attach handlers to the root logger.

        Only the first call has an effect unless ``force`` is set, in which
        case the previous handlers are closed and replaced. The CLI forces
        a reconfiguration once its options are known.
        """
        if cls._configured and not force:
            return

        cls.reset()
        cls._log_level = logging.getLevelName(log_level.upper()) if isinstance(log_level, str) else log_level
        cls._log_dir = Path(log_dir) if log_dir is not None else None

        root_logger = logging.getLogger(ROOT_LOGGER)
        root_logger.setLevel(cls._log_level)

        if console_enabled:
            cls._add_handler(logging.StreamHandler(sys.stdout), cls._log_level,
                             RenormalizerFormatter(include_context=structured_format))

        if file_enabled and cls._log_dir is not None:
            cls._log_dir.mkdir(parents=True, exist_ok=True)
            file_formatter = RenormalizerFormatter(include_context=True)
            cls._add_handler(logging.FileHandler(cls._log_dir / LOG_FILE), cls._log_level, file_formatter)
            cls._add_handler(logging.FileHandler(cls._log_dir / ERROR_LOG_FILE), ERROR, file_formatter)

        cls._configured = True

    @staticmethod
    def _add_handler(handler: logging.Handler, level: int, formatter: logging.Formatter) -> None:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        logging.getLogger(ROOT_LOGGER).addHandler(handler)

    @classmethod
    def reset(cls) -> None:
        """Detach and close every handler, releasing open log files"""
        root_logger = logging.getLogger(ROOT_LOGGER)
        for handler in list(root_logger.handlers):
            root_logger.removeHandler(handler)
            handler.close()
        cls._configured = False

    @classmethod
    def get_logger(cls, name: str) -> logging.Logger:
        if not cls._configured:
            cls.configure(file_enabled=False)

        if name != ROOT_LOGGER and not name.startswith(f'{ROOT_LOGGER}.'):
            name = f'{ROOT_LOGGER}.{name}'
        return logging.getLogger(name)


def get_class_logger(instance) -> logging.Logger:
    cls = type(instance)
    return RenormalizerLogger.get_logger(f"{cls.__module__}.{cls.__name__}")


def log_with_context(logger: logging.Logger, level: int, message: str, **context) -> None:
    if not logger.isEnabledFor(level):
        return
    record = logger.makeRecord(logger.name, level, "", 0, message, (), None)
    record.__dict__.update(context)
    logger.handle(record)


class LoggingMixin:
    """Per-class logger with level helpers that take repair context as keywords"""

    @property
    def logger(self) -> logging.Logger:
        if not hasattr(self, '_logger'):
            self._logger = get_class_logger(self)
        return self._logger

    def log_debug(self, message: str, **context) -> None:
        log_with_context(self.logger, DEBUG, message, **context)

    def log_info(self, message: str, **context) -> None:
        log_with_context(self.logger, INFO, message, **context)

    def log_warning(self, message: str, **context) -> None:
        log_with_context(self.logger, WARNING, message, **context)

    def log_error(self, message: str, **context) -> None:
        log_with_context(self.logger, ERROR, message, **context)


__all__ = [
    'RenormalizerFormatter', 'RenormalizerLogger', 'LoggingMixin',
    'get_class_logger', 'log_with_context',
    'ROOT_LOGGER', 'LOG_FILE', 'ERROR_LOG_FILE',
    'DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL',
]
