import copy
import logging
import sys
from pathlib import Path

from .colors import Colors
from .config import SystemConfig
from .structured_logging import JSONFormatter

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class ColoredFormatter(logging.Formatter):
    """
    Custom formatter to add colors to log levels and specific messages.
    Highlights the start and end of an indexing pass, dims per-folder noise.
    """

    LEVEL_COLORS = {
        logging.DEBUG: Colors.GREY,
        logging.INFO: Colors.BLUE,
        logging.WARNING: Colors.YELLOW,
        logging.ERROR: Colors.RED,
        logging.CRITICAL: Colors.BOLD + Colors.RED
    }

    def format(self, record):
        # File handlers share the record and must not receive ANSI codes
        record = copy.copy(record)

        color = self.LEVEL_COLORS.get(record.levelno, Colors.RESET)
        record.levelname = f"{color}{record.levelname}{Colors.RESET}"

        if isinstance(record.msg, str):
            if record.msg.startswith("Indexing pass"):
                record.msg = f"{Colors.MAGENTA}{Colors.BOLD}{record.msg}{Colors.RESET}"
            elif record.msg.startswith("Indexed folder"):
                record.msg = f"{Colors.GREY}{record.msg}{Colors.RESET}"
            elif record.msg.startswith("Index built"):
                record.msg = f"{Colors.GREEN}{record.msg}{Colors.RESET}"

        return super().format(record)


def setup_logging(system: SystemConfig) -> None:
    """
    Configure root logging from the system configuration

    A file handler and a stdout handler are installed. With
    ``log_format == "json"`` both emit JSON lines; otherwise the console
    gets colored text and the file gets plain text.

    Args:
        system: System section of the loaded configuration
    """
    level_name = str(system.log_level).upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        level = logging.INFO

    handlers = []
    console = logging.StreamHandler(sys.stdout)
    handlers.append(console)

    if system.log_file:
        log_path = Path(system.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path))

    if system.log_format == "json":
        for handler in handlers:
            handler.setFormatter(JSONFormatter())
    else:
        plain = logging.Formatter(LOG_FORMAT)
        for handler in handlers[1:]:
            handler.setFormatter(plain)
        console.setFormatter(ColoredFormatter(LOG_FORMAT))

    logging.basicConfig(level=level, handlers=handlers, force=True)

    if not isinstance(logging.getLevelName(level_name), int):
        logging.getLogger("mailthread").warning(
            "Invalid log level '%s'; defaulting to INFO",
            system.log_level
        )
