import inspect
import logging
import os
from functools import wraps
from typing import Any, Callable, NamedTuple, Optional, TypeVar, cast

from classroom.helpers.config_helper import ConfigHelper

F = TypeVar("F", bound=Callable[..., Any])

LOGGER_NAME = "ClassroomLive"
DEFAULT_LOG_FILE = "classroom_live.log"
LOG_FORMAT = "%(asctime)s | %(levelname)s | %(threadName)s | %(message)s"
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


class LogSettings(NamedTuple):
    enabled: bool
    directory: str
    filename: str
    level: str

    @classmethod
    def from_config(cls) -> "LogSettings":
        return cls(
            enabled=ConfigHelper.getboolean("Logging", "enabled", fallback=False),
            directory=ConfigHelper.get("Logging", "directory", fallback="logs") or "logs",
            filename=ConfigHelper.get("Logging", "filename", fallback=DEFAULT_LOG_FILE) or DEFAULT_LOG_FILE,
            level=str(ConfigHelper.get("Logging", "level", fallback="INFO") or "INFO").upper(),
        )

    @property
    def log_path(self) -> str:
        if os.path.isabs(self.filename):
            return self.filename
        directory = self.directory if os.path.isabs(self.directory) else os.path.join(PROJECT_ROOT, self.directory)
        return os.path.join(directory, self.filename)


_logger = logging.getLogger(LOGGER_NAME)
_logger.propagate = False
_settings: Optional[LogSettings] = None


def _install_handler(settings: LogSettings) -> None:
    for handler in list(_logger.handlers):
        if getattr(handler, "_classroom_handler", False):
            _logger.removeHandler(handler)
            handler.close()

    if not settings.enabled:
        handler: logging.Handler = logging.NullHandler()
        _logger.setLevel(logging.CRITICAL)
    else:
        log_path = settings.log_path
        os.makedirs(os.path.dirname(log_path) or ".", exist_ok=True)
        level = getattr(logging, settings.level, logging.INFO)
        handler = logging.FileHandler(log_path, encoding="utf-8")
        handler.setLevel(level)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, "%Y-%m-%d %H:%M:%S"))
        _logger.setLevel(level)

    handler._classroom_handler = True  # type: ignore[attr-defined]
    _logger.addHandler(handler)
    if settings.enabled:
        _logger.info("logging_helper.configure - Writing to %s", settings.log_path)


def _active_logger() -> Optional[logging.Logger]:
    """Return the logger when logging is enabled, reconfiguring it after config edits."""

    global _settings
    settings = LogSettings.from_config()
    if settings != _settings:
        _settings = settings
        _install_handler(settings)
    return _logger if settings.enabled else None


def _caller_name(skip: int) -> str:
    frame = inspect.currentframe()
    try:
        for _ in range(skip + 1):
            if frame is None:
                return "unknown"
            frame = frame.f_back
        if frame is None:
            return "unknown"
        module = frame.f_globals.get("__name__", "")
        return f"{module}.{frame.f_code.co_name}" if module else frame.f_code.co_name
    finally:
        del frame


def _log(level: int, message: str, func_name: Optional[str], *, exc_info: bool = False) -> None:
    logger = _active_logger()
    if logger is None:
        return
    # skip _log and the public log_* wrapper
    name = func_name or _caller_name(2)
    logger.log(level, "%s - %s", name, message, exc_info=exc_info)


def log_debug(message: str, *, func_name: Optional[str] = None) -> None:
    _log(logging.DEBUG, message, func_name)


def log_info(message: str, *, func_name: Optional[str] = None) -> None:
    _log(logging.INFO, message, func_name)


def log_warning(message: str, *, func_name: Optional[str] = None) -> None:
    _log(logging.WARNING, message, func_name)


def log_exception(message: str, *, func_name: Optional[str] = None) -> None:
    _log(logging.ERROR, message, func_name, exc_info=True)


def log_module_import(module_name: str) -> None:
    _log(logging.DEBUG, "module imported", module_name)


def _log_calls(func: F) -> F:
    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        if _active_logger() is None:
            return func(*args, **kwargs)
        name = func.__qualname__
        _log(logging.DEBUG, "called", name)
        try:
            return func(*args, **kwargs)
        except Exception:
            _log(logging.ERROR, "failed", name, exc_info=True)
            raise

    return cast(F, wrapper)


def log_methods(cls: type) -> type:
    """Wrap every plain method of ``cls`` so calls and failures reach the log."""

    for name, attr in list(cls.__dict__.items()):
        if name.startswith("__") or isinstance(attr, property):
            continue
        if isinstance(attr, staticmethod):
            setattr(cls, name, staticmethod(_log_calls(attr.__func__)))
        elif isinstance(attr, classmethod):
            setattr(cls, name, classmethod(_log_calls(attr.__func__)))
        elif callable(attr):
            setattr(cls, name, _log_calls(attr))
    return cls


def initialize_logging() -> bool:
    logger = _active_logger()
    if logger is None:
        return False
    logger.info("logging_helper.initialize - Logging ready at %s", _settings.log_path)
    return True


__all__ = [
    "initialize_logging",
    "log_debug",
    "log_exception",
    "log_info",
    "log_methods",
    "log_module_import",
    "log_warning",
]
