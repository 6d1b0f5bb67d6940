"""
ANSI Color codes for command line output

Output is plain when stdout is not a terminal or NO_COLOR is set, so piped
listings and subjects stay grep-able.
"""

import os


class Colors:
    """ANSI color codes and the styles used for message listings"""
    RESET = "\033[0m"
    BOLD = "\033[1m"

    # Text Colors
    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    BLUE = "\033[34m"
    MAGENTA = "\033[35m"
    CYAN = "\033[36m"
    GREY = "\033[90m"

    enabled = True

    @classmethod
    def configure(cls, stream) -> bool:
        """Enable color only for an interactive ``stream`` without NO_COLOR"""
        isatty = getattr(stream, "isatty", None)
        cls.enabled = bool(isatty and isatty()) and "NO_COLOR" not in os.environ
        return cls.enabled

    @classmethod
    def colorize(cls, text: str, color: str) -> str:
        """Wrap text in color codes"""
        if not cls.enabled:
            return text
        return f"{color}{text}{cls.RESET}"

    @classmethod
    def subject(cls, text: str) -> str:
        """Message subject heading (Bold Cyan); empty subjects get a placeholder"""
        return cls.colorize(text or "(no subject)", cls.BOLD + cls.CYAN)

    @classmethod
    def label(cls, name: str, width: int = 8) -> str:
        """Field label padded so values line up"""
        return cls.colorize(name, cls.GREY) + ":" + " " * max(width - len(name), 0)

    @classmethod
    def location(cls, location) -> str:
        """folder/UID pair"""
        return cls.colorize(str(location), cls.MAGENTA)

    @classmethod
    def warning(cls, text: str) -> str:
        """Format as a warning (Yellow)"""
        return cls.colorize(text, cls.YELLOW)

    @classmethod
    def error(cls, text: str) -> str:
        """Format as an error (Red)"""
        return cls.colorize(text, cls.RED)

    @classmethod
    def success(cls, text: str) -> str:
        """Format as success (Green)"""
        return cls.colorize(text, cls.GREEN)
