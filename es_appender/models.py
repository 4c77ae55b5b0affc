"""Immutable log event snapshot captured at append time."""

import logging
import traceback
from dataclasses import dataclass
from enum import IntEnum
from typing import Optional


class Level(IntEnum):
    TRACE = 0
    DEBUG = 10
    INFO = 20
    WARN = 30
    ERROR = 40
    FATAL = 50

    @classmethod
    def from_levelno(cls, levelno: int) -> "Level":
        """Map a stdlib numeric level to the nearest member at or below it."""
        result = cls.TRACE
        for member in cls:
            if member.value <= levelno:
                result = member
        return result


@dataclass(frozen=True)
class ErrorInfo:
    type_name: str
    message: str
    stack_trace: str

    @classmethod
    def from_exc_info(cls, exc_info) -> Optional["ErrorInfo"]:
        if not exc_info or exc_info[0] is None:
            return None
        exc_type, exc_value, tb = exc_info
        return cls(
            type_name=exc_type.__name__,
            message=str(exc_value) if exc_value is not None else "",
            stack_trace="".join(traceback.format_exception(exc_type, exc_value, tb)),
        )


@dataclass(frozen=True)
class LogEvent:
    timestamp_ms: int
    level: Level
    logger_name: str
    message: str
    thread_name: str
    error: Optional[ErrorInfo] = None

    @classmethod
    def from_record(cls, record: logging.LogRecord) -> "LogEvent":
        """Snapshot a LogRecord.

        The message is rendered and the exception formatted right away so a
        buffered event never observes later mutation of the record's args.
        """
        try:
            message = record.getMessage()
        except Exception:
            message = str(record.msg)

        return cls(
            timestamp_ms=int(record.created * 1000),
            level=Level.from_levelno(record.levelno),
            logger_name=record.name,
            message=message,
            thread_name=record.threadName or "",
            error=ErrorInfo.from_exc_info(record.exc_info),
        )

    def summary(self) -> str:
        """Short one-line description used in diagnostics."""
        return f"[{self.level.name}] {self.logger_name}: {self.message[:100]}"
