"""
Custom logging configuration for the social backend.
Provides clear, presentable logs for GitHub-backed operations,
showing which component issued each line.
"""
import logging
import sys
import time
from datetime import datetime
from functools import wraps
from typing import Any, Awaitable, Callable, Optional, TypeVar


# ANSI color codes for terminal output
class Colors:
    """ANSI color codes for terminal formatting."""
    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"

    WHITE = "\033[37m"

    BRIGHT_RED = "\033[91m"
    BRIGHT_GREEN = "\033[92m"
    BRIGHT_YELLOW = "\033[93m"
    BRIGHT_BLUE = "\033[94m"
    BRIGHT_CYAN = "\033[96m"


# Component icons keyed by the last segment of the logger name
COMPONENT_ICONS = {
    "github_client": "🐙",
    "documents": "📄",
    "social_data": "🗂️",
    "social_service": "🔗",
    "registry": "📇",
    "security": "🛡️",
    "onboarding": "🚪",
    "webhooks": "📬",
    "oauth": "🔑",
    "main": "🚀",
    "default": "▶️",
}


class ComponentFormatter(logging.Formatter):
    """
    Custom formatter that provides clean, presentable log output.
    """

    LEVEL_FORMATS = {
        logging.DEBUG: (Colors.DIM, "DEBUG"),
        logging.INFO: (Colors.BRIGHT_CYAN, "INFO "),
        logging.WARNING: (Colors.BRIGHT_YELLOW, "WARN "),
        logging.ERROR: (Colors.BRIGHT_RED, "ERROR"),
        logging.CRITICAL: (Colors.BOLD + Colors.BRIGHT_RED, "CRIT "),
    }

    def __init__(self, use_colors: bool = True):
        super().__init__()
        self.use_colors = use_colors and sys.stdout.isatty()

    def format(self, record: logging.LogRecord) -> str:
        color, level_text = self.LEVEL_FORMATS.get(
            record.levelno,
            (Colors.WHITE, record.levelname[:5])
        )

        timestamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        component = record.name.split(".")[-1] if record.name else "root"
        icon = COMPONENT_ICONS.get(component, COMPONENT_ICONS["default"])

        if self.use_colors:
            level_str = f"{color}{level_text}{Colors.RESET}"
            time_str = f"{Colors.DIM}{timestamp}{Colors.RESET}"
            component_str = f"{Colors.BRIGHT_BLUE}{component:16}{Colors.RESET}"
            formatted = f"{time_str} │ {level_str} │ {icon} {component_str} │ {record.getMessage()}"
        else:
            # Plain text output (for file logging)
            formatted = f"{timestamp} | {level_text} | {icon} {component:16} | {record.getMessage()}"

        if record.exc_info:
            formatted += "\n" + self.formatException(record.exc_info)

        return formatted


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    use_colors: bool = True
) -> None:
    """
    Configure logging for the application.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional path to log file
        use_colors: Whether to use ANSI colors in console output
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(ComponentFormatter(use_colors=use_colors))
    root_logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(ComponentFormatter(use_colors=False))
        root_logger.addHandler(file_handler)

    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance with the specified name.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured logger instance
    """
    return logging.getLogger(name)


T = TypeVar("T")


def logged_operation(operation: Optional[str] = None):
    """
    Decorator to log entry, exit and duration of an async service operation.

    Usage:
        @logged_operation("follow_user")
        async def follow_user(self, current: str, target: str) -> OperationResult:
            ...
    """
    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        name = operation or func.__name__
        op_logger = logging.getLogger(func.__module__)

        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            start_time = time.perf_counter()
            op_logger.debug(f"▶ {name} started")
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                duration_ms = (time.perf_counter() - start_time) * 1000
                op_logger.error(f"✗ {name} failed after {duration_ms:.0f}ms: {e}")
                raise
            duration_ms = (time.perf_counter() - start_time) * 1000
            success = getattr(result, "success", True)
            status = "completed" if success else "returned failure"
            op_logger.info(f"◀ {name} {status} ({duration_ms:.0f}ms)")
            return result

        return wrapper
    return decorator
