import pathlib
import sys
from enum import Enum
from typing import Callable, Union

from twisted.logger import (
    FileLogObserver,
    LogEvent,
    LogLevel,
    formatEventAsClassicLogText,
    globalLogPublisher,
    jsonFileLogObserver,
    textFileLogObserver,
)
from twisted.logger import Logger as TwistedLogger
from twisted.python.logfile import LogFile

from taco.config.constants import (
    DEFAULT_JSON_LOG_FILENAME,
    DEFAULT_LOG_FILENAME,
    DEFAULT_LOG_LEVEL,
    USER_LOG_DIR,
)

ONE_MEGABYTE = 1_048_576
MAXIMUM_LOG_SIZE = ONE_MEGABYTE * 10
MAX_LOG_FILES = 10


class LoggingType(Enum):
    CONSOLE = "console"
    TEXT = "text"
    JSON = "json"

    @classmethod
    def values(cls):
        return [logging_type.value for logging_type in cls]


class GlobalLoggerSettings:
    """
    Process-wide log level and observers. Observers are keyed by LoggingType so that
    starting the same type twice is a no-op.
    """

    log_level = LogLevel.levelWithName(DEFAULT_LOG_LEVEL)
    _observers = dict()

    @classmethod
    def set_log_level(cls, log_level_name: str):
        cls.log_level = LogLevel.levelWithName(log_level_name)

    @classmethod
    def is_started(cls, logging_type: Union[LoggingType, str]) -> bool:
        return LoggingType(logging_type) in cls._observers

    @classmethod
    def start(cls, logging_type: Union[LoggingType, str]) -> None:
        logging_type = LoggingType(logging_type)
        if cls.is_started(logging_type):
            return

        observer_factory = _OBSERVER_FACTORIES[logging_type]
        wrapped_observer = observer_log_level_wrapper(observer_factory())

        globalLogPublisher.addObserver(wrapped_observer)
        cls._observers[logging_type] = wrapped_observer

    @classmethod
    def stop(cls, logging_type: Union[LoggingType, str]) -> None:
        observer = cls._observers.pop(LoggingType(logging_type), None)
        if observer:
            globalLogPublisher.removeObserver(observer)

    @classmethod
    def stop_all(cls) -> None:
        for logging_type in list(cls._observers):
            cls.stop(logging_type)


def _ensure_dir_exists(path):
    pathlib.Path(path).mkdir(parents=True, exist_ok=True)


def _rotating_logfile(name: str, path: pathlib.Path) -> LogFile:
    _ensure_dir_exists(path)
    return LogFile(
        name=name,
        directory=path,
        rotateLength=MAXIMUM_LOG_SIZE,
        maxRotatedFiles=MAX_LOG_FILES,
    )


def get_console_observer():
    return textFileLogObserver(sys.stdout)


def get_json_file_observer(name=DEFAULT_JSON_LOG_FILENAME, path=USER_LOG_DIR):
    return jsonFileLogObserver(outFile=_rotating_logfile(name, path))


def get_text_file_observer(name=DEFAULT_LOG_FILENAME, path=USER_LOG_DIR):
    return FileLogObserver(
        formatEvent=formatEventAsClassicLogText,
        outFile=_rotating_logfile(name, path),
    )


_OBSERVER_FACTORIES = {
    LoggingType.CONSOLE: get_console_observer,
    LoggingType.TEXT: get_text_file_observer,
    LoggingType.JSON: get_json_file_observer,
}


class Logger(TwistedLogger):
    """
    Twisted Logger that tolerates messages with curly braces (i.e. not PEP 3101 compliant).
    Condition payloads are JSON, so most messages about them contain braces.
    """

    @classmethod
    def escape_format_string(cls, string):
        """
        Escapes all curly braces from a PEP-3101's format string.
        """
        escaped_string = string.replace("{", "{{").replace("}", "}}")
        return escaped_string

    def emit(self, level, format=None, **kwargs):
        if level >= GlobalLoggerSettings.log_level:
            clean_format = self.escape_format_string(str(format))
            super().emit(level=level, format=clean_format, **kwargs)


def observer_log_level_wrapper(observer: Callable[[LogEvent], None]):
    def log_level_wrapper(event: LogEvent):
        if event["log_level"] >= GlobalLoggerSettings.log_level:
            observer(event)

    return log_level_wrapper
