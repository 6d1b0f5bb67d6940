"""
Configuration Management Module
Handles loading and validation of environment variables and settings
"""

import os
from dataclasses import dataclass
from dotenv import load_dotenv


DUPLICATE_POLICIES = ("last_wins", "first_wins", "reject")
LOG_FORMATS = ("text", "json")


class ConfigurationError(ValueError):
    """Raised when the loaded configuration cannot be used"""


@dataclass
class MailAccountConfig:
    """Connection settings for the mail store"""
    domain: str
    username: str
    password: str
    imap_port: int = 993
    use_ssl: bool = True
    verify_ssl: bool = True
    timeout: int = 30


@dataclass
class IndexingConfig:
    """Configuration for indexing, threading and parsing"""
    duplicate_policy: str = "last_wins"
    recent_limit: int = 100
    extract_attachments: bool = False
    max_attachment_bytes: int = 25 * 1024 * 1024
    max_attachment_count: int = 10


@dataclass
class SystemConfig:
    """Configuration for system settings"""
    log_level: str = "INFO"
    log_file: str = "logs/mailthread.log"
    log_format: str = "text"


class Config:
    """Main configuration class"""

    def __init__(self, env_file: str = ".env"):
        """
        Initialize configuration from environment file

        Variables already present in the process environment take precedence
        over the file, matching python-dotenv's default behaviour.

        Args:
            env_file: Path to environment file (default: .env)
        """
        load_dotenv(env_file)

        self.account = self._load_account_config()
        self.indexing = self._load_indexing_config()
        self.system = self._load_system_config()

    def _load_account_config(self) -> MailAccountConfig:
        """Load mail store credentials"""
        return MailAccountConfig(
            domain=os.getenv("DOMAIN", ""),
            username=os.getenv("USERNAME", ""),
            password=os.getenv("PASSWORD", ""),
            imap_port=self._get_int("IMAP_PORT", 993),
            use_ssl=self._get_bool("IMAP_USE_SSL", True),
            verify_ssl=self._get_bool("IMAP_VERIFY_SSL", True),
            timeout=self._get_int("IMAP_TIMEOUT", 30)
        )

    def _load_indexing_config(self) -> IndexingConfig:
        """Load indexing configuration"""
        return IndexingConfig(
            duplicate_policy=os.getenv("DUPLICATE_POLICY", "last_wins").strip().lower(),
            recent_limit=self._get_int("RECENT_LIMIT", 100),
            extract_attachments=self._get_bool("EXTRACT_ATTACHMENTS", False),
            max_attachment_bytes=self._get_int("MAX_ATTACHMENT_BYTES", 25 * 1024 * 1024),
            max_attachment_count=self._get_int("MAX_ATTACHMENT_COUNT", 10)
        )

    def _load_system_config(self) -> SystemConfig:
        """Load system configuration"""
        return SystemConfig(
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_file=os.getenv("LOG_FILE", "logs/mailthread.log"),
            log_format=os.getenv("LOG_FORMAT", "text").strip().lower()
        )

    @staticmethod
    def _get_bool(key: str, default: bool = False) -> bool:
        """Convert environment variable to boolean"""
        value = os.getenv(key, str(default)).lower()
        return value in ('true', '1', 'yes', 'on')

    @staticmethod
    def _get_int(key: str, default: int) -> int:
        """Convert environment variable to int"""
        value = os.getenv(key)
        if value is None or not value.strip():
            return default
        try:
            return int(value)
        except ValueError:
            raise ConfigurationError(f"{key} must be an integer, got {value!r}")

    def validate(self) -> bool:
        """
        Validate configuration

        Returns:
            True if configuration is valid

        Raises:
            ConfigurationError: If configuration is invalid
        """
        if not self.account.domain:
            raise ConfigurationError("DOMAIN is not set; the IMAP host is required")

        if not self.account.username or not self.account.password:
            raise ConfigurationError("Missing credentials: USERNAME and PASSWORD are required")

        if not 0 < self.account.imap_port < 65536:
            raise ConfigurationError(f"Invalid IMAP_PORT: {self.account.imap_port}")

        if self.indexing.duplicate_policy not in DUPLICATE_POLICIES:
            raise ConfigurationError(
                f"Unknown DUPLICATE_POLICY '{self.indexing.duplicate_policy}'; "
                f"expected one of {', '.join(DUPLICATE_POLICIES)}"
            )

        if self.indexing.recent_limit <= 0:
            raise ConfigurationError("RECENT_LIMIT must be positive")

        if self.system.log_format not in LOG_FORMATS:
            raise ConfigurationError(
                f"Unknown LOG_FORMAT '{self.system.log_format}'; expected text or json"
            )

        return True
