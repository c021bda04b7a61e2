"""Configuración de logging para la API.

Salida por consola en formato legible o JSON (LOG_FORMAT=json) bajo el
logger raíz ``prosperity``.
"""

import json
import logging
from datetime import datetime, timezone

ROOT_LOGGER = 'prosperity'

class JSONFormatter(logging.Formatter):
    """Formatea registros como una línea JSON."""

    _STANDARD_ATTRS = {
        "name", "msg", "args", "created", "filename", "funcName", "levelname",
        "levelno", "lineno", "module", "msecs", "message", "pathname", "process",
        "processName", "relativeCreated", "thread", "threadName", "exc_info",
        "exc_text", "stack_info", "taskName",
    }

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        # Campos pasados vía extra={...}
        extra = {k: v for k, v in record.__dict__.items() if k not in self._STANDARD_ATTRS}
        if extra:
            log_data["extra"] = extra
        return json.dumps(log_data, default=str)

# setup_logging: Configura (una sola vez) el logger raíz de la aplicación.
def setup_logging(settings) -> logging.Logger:
    root_logger = logging.getLogger(ROOT_LOGGER)
    root_logger.setLevel(getattr(logging, settings.log_level, logging.INFO))
    # Evitar handlers duplicados si se crea más de una app (p. ej. en pruebas).
    root_logger.handlers.clear()

    handler = logging.StreamHandler()
    if settings.log_format == 'json':
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        ))
    root_logger.addHandler(handler)
    return root_logger

# get_logger: Logger hijo para un módulo concreto.
def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")
