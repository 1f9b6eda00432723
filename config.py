"""Configuration for the techwatch API."""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

load_dotenv()


def _parse_bool(value: Optional[str], default: bool) -> bool:
    if value is None or not value.strip():
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _parse_int(value: Optional[str], default: int) -> int:
    if not value:
        return default
    try:
        return int(value.strip())
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    """Process-wide settings. Built once at startup and passed to collaborators."""

    # Database
    database_url: str = f"sqlite+aiosqlite:///{Path(__file__).parent / 'techwatch.db'}"

    # Web auth (JWT secret, access token lifetime in minutes)
    jwt_secret: str = "change-me-in-production-use-long-random-string"
    jwt_algorithm: str = "HS256"
    access_token_expires_in: int = 15
    password_hash_rounds: int = 12

    # Front-end base URL used to build verification / reset links
    client_url: str = "http://localhost:3000"
    environment: str = "development"

    # Outbound email (unset SMTP_HOST = log instead of send)
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    smtp_use_tls: bool = True
    email_from: str = ""

    # Initial admin bootstrap
    initial_admin_email: str = ""
    initial_admin_password: str = ""
    initial_admin_pseudo: str = "admin"

    @property
    def is_production(self) -> bool:
        return self.environment.strip().lower() == "production"

    @property
    def access_token_max_age(self) -> int:
        """Access token lifetime in seconds (cookie max-age)."""
        return self.access_token_expires_in * 60

    @classmethod
    def from_env(cls) -> "Settings":
        defaults = cls()
        return cls(
            database_url=os.getenv("DATABASE_URL", defaults.database_url),
            jwt_secret=os.getenv("JWT_SECRET", defaults.jwt_secret),
            access_token_expires_in=_parse_int(
                os.getenv("ACCESS_TOKEN_EXPIRES_IN"), defaults.access_token_expires_in
            ),
            password_hash_rounds=_parse_int(os.getenv("PASSWORD_HASH_ROUNDS"), defaults.password_hash_rounds),
            client_url=os.getenv("CLIENT_URL", defaults.client_url).rstrip("/"),
            environment=os.getenv("ENVIRONMENT", defaults.environment),
            smtp_host=os.getenv("SMTP_HOST", ""),
            smtp_port=_parse_int(os.getenv("SMTP_PORT"), defaults.smtp_port),
            smtp_user=os.getenv("SMTP_USER", ""),
            smtp_password=os.getenv("SMTP_PASSWORD", ""),
            smtp_use_tls=_parse_bool(os.getenv("SMTP_USE_TLS"), defaults.smtp_use_tls),
            email_from=os.getenv("EMAIL_FROM", ""),
            initial_admin_email=os.getenv("INITIAL_ADMIN_EMAIL", ""),
            initial_admin_password=os.getenv("INITIAL_ADMIN_PASSWORD", ""),  # Set to bootstrap first admin
            initial_admin_pseudo=os.getenv("INITIAL_ADMIN_PSEUDO", defaults.initial_admin_pseudo),
        )
