"""FastAPI middleware: error handling and the in-memory log buffer."""

from .error_handlers import register_error_handlers
from .log_buffer import LOG_BUFFER, install_log_buffer

__all__ = ["register_error_handlers", "LOG_BUFFER", "install_log_buffer"]
