"""
Configuration management for SkyDispatch.

Loads settings from environment variables with sensible defaults.
All configuration is centralized here to avoid magic strings scattered
throughout the codebase.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

BUNDLED_AIRPORTS_FILE = Path(__file__).parent / 'data' / 'airports.json'


@dataclass(frozen=True)
class DatabaseConfig:
    """Database configuration."""
    url: str = field(default_factory=lambda: os.getenv('DATABASE_URL', 'sqlite:///skydispatch.db'))

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith('sqlite')

    @property
    def is_memory(self) -> bool:
        return self.is_sqlite and (':memory:' in self.url or self.url.rstrip('/') == 'sqlite:')


@dataclass(frozen=True)
class AirportsConfig:
    """Airport reference dataset location."""
    path: str = field(default_factory=lambda: os.getenv('AIRPORTS_FILE', str(BUNDLED_AIRPORTS_FILE)))


@dataclass(frozen=True)
class AdminConfig:
    """Seeded admin account."""
    username: str = field(default_factory=lambda: os.getenv('ADMIN_USERNAME', 'admin'))
    pin: str = field(default_factory=lambda: os.getenv('ADMIN_PIN', '0000'))


@dataclass(frozen=True)
class TransferConfig:
    """Ownership handoff settings."""
    timeout_ms: int = field(default_factory=lambda: int(os.getenv('TRANSFER_TIMEOUT_MS', '15000')))


@dataclass(frozen=True)
class AppConfig:
    """Main application configuration."""
    database: DatabaseConfig
    airports: AirportsConfig
    admin: AdminConfig
    transfer: TransferConfig

    # Flask settings
    secret_key: str
    debug: bool

    # Populate demo flights on an empty store
    seed_flights: bool = True


def load_config() -> AppConfig:
    """Load and validate all configuration."""
    return AppConfig(
        database=DatabaseConfig(),
        airports=AirportsConfig(),
        admin=AdminConfig(),
        transfer=TransferConfig(),
        secret_key=os.getenv('SECRET_KEY', 'dev-key-change-in-prod'),
        debug=os.getenv('FLASK_DEBUG', '0') == '1',
        seed_flights=os.getenv('SEED_FLIGHTS', '1') == '1',
    )
