"""
Structured Logging Module
JSON log lines for indexing passes and lookups

Mail context travels in ``extra={"extra_fields": {...}}`` and lands under
the "context" key:

    {"timestamp": "...", "level": "INFO", "logger": "MailboxEnumerator",
     "message": "Indexed folder INBOX: 12 messages", "source": "mailbox_enumerator:172",
     "context": {"folder": "INBOX", "messages": 12}}
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict

from .sanitization import redact_email, sanitize_for_logging


class JSONFormatter(logging.Formatter):
    """
    Formats log records as one JSON object per line

    Folder names, Message-IDs and subjects come from the server, so string
    context values are sanitized like any other logged text.
    """

    # Fields that might contain credentials - never log their values
    SENSITIVE_FIELDS = {
        'password', 'token', 'secret', 'credential'
    }

    # Fields holding the account address - logged redacted
    ACCOUNT_FIELDS = {'username', 'account', 'user'}

    def format(self, record: logging.LogRecord) -> str:
        log_data: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "source": f"{record.module}:{record.lineno}",
        }

        context = getattr(record, "extra_fields", None)
        if context:
            log_data["context"] = {
                key: self._context_value(key, value)
                for key, value in context.items()
            }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str, ensure_ascii=False)

    def _context_value(self, key: str, value: Any) -> Any:
        key_lower = key.lower()
        if any(sensitive in key_lower for sensitive in self.SENSITIVE_FIELDS):
            return "[REDACTED]"
        if key_lower in self.ACCOUNT_FIELDS:
            return redact_email(str(value))
        if isinstance(value, (bool, int, float)) or value is None:
            return value
        return sanitize_for_logging(str(value))
