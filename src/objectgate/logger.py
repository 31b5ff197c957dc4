import json
import logging
from datetime import UTC, datetime


class StructuredLogger:
    """Emits domain events as one JSON document per log line.

    The JSON is written as the message so it flows through the handlers and
    formatters configured in ``logging_config``.
    """

    def __init__(self, name: str = "objectgate.events"):
        self._logger = logging.getLogger(name)

    def log_event(self, event: str, level: int = logging.INFO, **kwargs) -> None:
        """Emit a structured event, e.g. ``logger.log_event("object_put", user_id=..., file_path=...)``.

        Keys of an ``extra`` dict are merged at the top level of the payload.
        """
        payload = {"timestamp": datetime.now(UTC).isoformat(), "event": event}

        for k, v in kwargs.items():
            if k == "extra" and isinstance(v, dict):
                payload.update(v)
            else:
                payload[k] = v

        try:
            message = json.dumps(payload, default=str)
        except (TypeError, ValueError):
            self._logger.log(level, "%s %s", event, kwargs)
            return
        self._logger.log(level, message)

    def info(self, msg: str, *args, **kwargs):
        return self._logger.info(msg, *args, **kwargs)

    def warning(self, msg: str, *args, **kwargs):
        return self._logger.warning(msg, *args, **kwargs)

    def error(self, msg: str, *args, **kwargs):
        return self._logger.error(msg, *args, **kwargs)


# Export a single logger instance used by the project and tests
logger = StructuredLogger()

__all__ = ["logger", "StructuredLogger"]
