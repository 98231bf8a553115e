"""Settings for the RGW admin client, the state database and the workspace.

Values come from the environment after ``load_dotenv()``. Secret-bearing
settings (the admin access and secret keys, the database URL) may instead
hold an ``aws-secret://``, ``gcp-secret://`` or ``file://`` reference,
resolved at load time by ``secrets.resolve_secret``.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from scripts.rgw_accounts.secrets import resolve_database_url, resolve_secret

_TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class DatabaseConfig:
    url: str
    min_connections: int = 1
    max_connections: int = 4


@dataclass(frozen=True)
class RgwConfig:
    endpoint: str
    access_key: str = field(repr=False)
    secret_key: str = field(repr=False)
    region: str = "us-east-1"
    admin_path: str = "admin"
    timeout_seconds: float = 30.0
    verify_tls: bool = True


@dataclass(frozen=True)
class AccountsConfig:
    rgw: RgwConfig
    database: DatabaseConfig
    workspace: str = "default"


def load_rgw_config() -> RgwConfig:
    """Build the admin-ops client settings. Raises ValueError if unset."""
    endpoint = os.environ.get("RGW_ENDPOINT", "")
    if not endpoint:
        raise ValueError("RGW_ENDPOINT environment variable is required")

    access_key_raw = os.environ.get("RGW_ACCESS_KEY", "")
    secret_key_raw = os.environ.get("RGW_SECRET_KEY", "")
    if not access_key_raw or not secret_key_raw:
        raise ValueError("RGW_ACCESS_KEY and RGW_SECRET_KEY environment variables are required")

    return RgwConfig(
        endpoint=endpoint.rstrip("/"),
        access_key=resolve_secret(access_key_raw),
        secret_key=resolve_secret(secret_key_raw),
        region=os.environ.get("RGW_REGION", "us-east-1"),
        admin_path=os.environ.get("RGW_ADMIN_PATH", "admin").strip("/"),
        timeout_seconds=float(os.environ.get("RGW_TIMEOUT_SECONDS", "30")),
        verify_tls=os.environ.get("RGW_VERIFY_TLS", "true").strip().lower() in _TRUE_VALUES,
    )


def load_config() -> AccountsConfig:
    """Load configuration from environment variables (and a .env file if present)."""
    load_dotenv()

    database = DatabaseConfig(
        url=resolve_database_url(),
        min_connections=int(os.environ.get("DB_MIN_CONNECTIONS", "1")),
        max_connections=int(os.environ.get("DB_MAX_CONNECTIONS", "4")),
    )

    return AccountsConfig(
        rgw=load_rgw_config(),
        database=database,
        workspace=os.environ.get("STATE_WORKSPACE", "default"),
    )
