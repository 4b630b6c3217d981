"""
Unified Logger System.

JSON structured logging for the granule operations Function App. Every
record carries the component that wrote it and, where known, the
granule / execution / action it concerns, so Application Insights can
filter one granule's history across the HTTP and queue paths.

Exports:
    ComponentType: Enum for component types
    LogContext: Granule correlation fields
    ContextLogger: Adapter binding a LogContext to a component logger
    JSONFormatter: One JSON object per record
    LoggerFactory: Factory for creating loggers
    log_exceptions: Exception logging decorator

Dependencies:
    Standard library only (logging, enum, dataclasses, json)
"""

from enum import Enum
from typing import Optional, Dict, Any
from datetime import datetime, timezone
from dataclasses import dataclass, asdict
import logging
import sys
import json
from functools import wraps


class ComponentType(Enum):
    """Layer a logger belongs to; becomes the logger name prefix."""
    SERVICE = "service"        # mover, lifecycle, bulk
    REPOSITORY = "repository"  # PostgreSQL records, blob objects
    FACTORY = "factory"
    TRIGGER = "trigger"        # HTTP and Service Bus entry points
    ADAPTER = "adapter"        # CMR, workflow launcher


@dataclass(frozen=True)
class LogContext:
    """
    Correlation fields bound to one call through ContextLogger.

    A granule action is correlated by granule id, the workflow execution
    that last touched it and the API action that asked for it.
    """
    granule_id: Optional[str] = None
    execution_arn: Optional[str] = None
    action: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}


class _ComponentFilter(logging.Filter):
    """Stamps the component fields onto every record."""

    def __init__(self, component_type: ComponentType, name: str):
        super().__init__()
        self._dimensions = {'component_type': component_type.value, 'component_name': name}

    def filter(self, record: logging.LogRecord) -> bool:
        extra = getattr(record, 'custom_dimensions', None) or {}
        record.custom_dimensions = {**self._dimensions, **extra}
        return True


class ContextLogger(logging.LoggerAdapter):
    """
    Component logger with one unit of work's LogContext.

    One per call; the underlying component logger is shared.
    """

    def __init__(self, logger: logging.Logger, context: LogContext):
        super().__init__(logger, context.to_dict())

    def process(self, msg, kwargs):
        extra = dict(kwargs.get('extra') or {})
        extra['custom_dimensions'] = {**self.extra, **(extra.get('custom_dimensions') or {})}
        kwargs['extra'] = extra
        return msg, kwargs


class JSONFormatter(logging.Formatter):
    """
    JSON formatter for structured logging in Azure Functions.

    Application Insights lifts customDimensions into queryable columns.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_obj = {
            'timestamp': datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            'level': record.levelname,
            'message': record.getMessage(),
            'logger': record.name,
            'function': record.funcName,
            'line': record.lineno
        }

        dimensions = getattr(record, 'custom_dimensions', None)
        if dimensions:
            log_obj['customDimensions'] = dimensions

        if record.exc_info:
            exc_type, exc_value, _ = record.exc_info
            log_obj['exception'] = {
                'type': exc_type.__name__ if exc_type else None,
                'message': str(exc_value) if exc_value else None,
                'traceback': self.formatException(record.exc_info)
            }

        return json.dumps(log_obj, default=str)


class LoggerFactory:
    """
    Factory for creating component-specific loggers.

    Example:
        logger = LoggerFactory.create_logger(ComponentType.SERVICE, "GranuleMover")
        logger.info("Moving granule")
    """

    _level = logging.INFO
    _loggers: Dict[str, logging.Logger] = {}

    @classmethod
    def configure(cls, level: str) -> None:
        """
        Set the level for every logger created so far and from now on.

        Called once from function_app.py with AppConfig.log_level.
        """
        cls._level = logging.getLevelName(level.upper())
        if not isinstance(cls._level, int):
            cls._level = logging.INFO
        for logger in cls._loggers.values():
            logger.setLevel(cls._level)

    @classmethod
    def create_logger(cls, component_type: ComponentType, name: str) -> logging.Logger:
        """
        Create (or return) the logger for a component.

        Args:
            component_type: Layer the component belongs to
            name: Component name (e.g. "GranuleMover"); a fixed name,
                never a granule or execution id

        Returns:
            Configured Python logger named "<layer>.<name>"
        """
        logger_name = f"{component_type.value}.{name}"
        logger = cls._loggers.get(logger_name)
        if logger is not None:
            return logger

        logger = logging.getLogger(logger_name)
        logger.setLevel(cls._level)
        logger.addFilter(_ComponentFilter(component_type, name))

        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(JSONFormatter())
        logger.addHandler(handler)

        # Propagate to the host's root logger for Application Insights
        logger.propagate = True

        cls._loggers[logger_name] = logger
        return logger

    @classmethod
    def create_with_context(
        cls,
        component_type: ComponentType,
        name: str,
        granule_id: Optional[str] = None,
        execution_arn: Optional[str] = None,
        action: Optional[str] = None
    ) -> ContextLogger:
        """
        Component logger with granule/execution context for one call.

        Each call gets its own adapter over the shared component logger,
        so contexts never leak between calls and no logger is created
        per granule.
        """
        context = LogContext(
            granule_id=granule_id,
            execution_arn=execution_arn,
            action=action
        )
        return ContextLogger(cls.create_logger(component_type, name), context)


def log_exceptions(logger: logging.Logger):
    """
    Decorator that logs an escaping exception with the call's context.

    The exception is always re-raised.

    Example:
        @log_exceptions(logger=logger)
        def process_workflow_event(lifecycle, body): ...
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except Exception as e:
                logger.error(
                    f"Exception in {func.__name__}: {type(e).__name__}",
                    exc_info=True,
                    extra={
                        'custom_dimensions': {
                            'function_name': func.__name__,
                            'exception_type': type(e).__name__,
                            'function_args': str(args)[:500],
                        }
                    }
                )
                raise
        return wrapper
    return decorator
