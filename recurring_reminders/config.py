"""Configuration parser for the recurring reminder system."""

import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .resolver import validate_offset

DEFAULT_TIMES = [12.0, 22.5]
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class GeneralConfig:
    """General settings for the reminder system."""
    timezone: str = "America/Chicago"
    database: str = "reminders.db"  # Relative to the config directory
    check_interval: float = 1.0  # seconds
    refresh_interval: float = 30.0  # seconds between store re-reads
    log_level: str = "INFO"
    notification_timeout: int = 10000  # milliseconds
    default_times: List[float] = field(default_factory=lambda: list(DEFAULT_TIMES))

    @classmethod
    def from_dict(cls, settings: dict) -> "GeneralConfig":
        """Create a GeneralConfig from a dictionary."""
        config = cls(
            timezone=settings.get("timezone", "America/Chicago"),
            database=settings.get("database", "reminders.db"),
            check_interval=float(settings.get("check_interval", 1.0)),
            refresh_interval=float(settings.get("refresh_interval", 30.0)),
            log_level=str(settings.get("log_level", "INFO")).upper(),
            notification_timeout=int(settings.get("notification_timeout", 10000)),
            default_times=list(settings.get("default_times", DEFAULT_TIMES)),
        )
        config.validate()
        return config

    def validate(self) -> None:
        """Raise ValueError if any setting is unusable."""
        try:
            ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Unknown timezone: {self.timezone}")
        if self.check_interval <= 0:
            raise ValueError(f"check_interval must be positive, got {self.check_interval}")
        if self.refresh_interval <= 0:
            raise ValueError(f"refresh_interval must be positive, got {self.refresh_interval}")
        if self.log_level not in LOG_LEVELS:
            raise ValueError(f"Unknown log_level: {self.log_level}")
        for offset in self.default_times:
            validate_offset(offset)

    @property
    def tzinfo(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


def parse_config_data(config_data: dict) -> GeneralConfig:
    """
    Parse configuration data into a GeneralConfig.

    Args:
        config_data: Raw parsed TOML data

    Returns:
        GeneralConfig built from the [general] table, or the defaults
    """
    settings = config_data.get("general", {})
    if not isinstance(settings, dict):
        raise ValueError("[general] must be a table")
    return GeneralConfig.from_dict(settings)


def load_config_file(config_file: Path) -> dict:
    """Load and parse a TOML configuration file."""
    if not config_file.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_file}\n"
            f"Please create a config file at {config_file}"
        )

    with open(config_file, "rb") as f:
        return tomllib.load(f)


class ConfigManager:
    """Manages loading and parsing of the reminder configuration."""

    DEFAULT_CONFIG_DIR = Path.home() / ".config" / "recurring-reminders"
    CONFIG_FILE = "config.toml"

    def __init__(self, config_dir: Optional[Path] = None):
        self.config_dir = Path(config_dir) if config_dir else self.DEFAULT_CONFIG_DIR
        self.config_file = self.config_dir / self.CONFIG_FILE
        self.general: GeneralConfig = GeneralConfig()

    @property
    def database_path(self) -> str:
        """The configured database, resolved against the config directory."""
        database = self.general.database
        if database == ":memory:" or database.startswith("sqlite"):
            return database
        return str(self.config_dir / database)

    def ensure_config_dir(self) -> None:
        """Create the config directory if it doesn't exist."""
        self.config_dir.mkdir(parents=True, exist_ok=True)

    def load_config(self) -> GeneralConfig:
        """Load and parse the configuration file."""
        config_data = load_config_file(self.config_file)
        self.general = parse_config_data(config_data)
        return self.general

    def load_from_data(self, config_data: dict) -> GeneralConfig:
        """Load settings from already-parsed config data."""
        self.general = parse_config_data(config_data)
        return self.general

    def create_example_config(self) -> None:
        """Create an example configuration file."""
        self.ensure_config_dir()

        example_config = '''# Recurring Reminders Configuration

[general]
timezone = "America/Chicago"    # Times of day are interpreted in this timezone
database = "reminders.db"       # Relative to this directory
check_interval = 1.0            # Seconds between checks for due notifications
refresh_interval = 30.0         # Seconds between picking up changes made with the CLI
log_level = "INFO"
notification_timeout = 10000    # How long tray messages stay up, in milliseconds
default_times = [12.0, 22.5]    # Times of day for new reminders (22.5 = 22:30)
'''

        with open(self.config_file, "w") as f:
            f.write(example_config)

        print(f"Created example config at: {self.config_file}")
