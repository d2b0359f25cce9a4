# src/timed_dispatch/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app.
- No secrets required at import time (Matrix password is only needed for the first login).
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "DISPATCH"

load_dotenv(override=False)


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _first_env(*names: str, default: str | None = None) -> str | None:
    for n in names:
        v = os.getenv(n)
        if v is not None and v.strip() != "":
            return v
    return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Input files ----
    workdir: Path
    messages_file: str
    delays_file: str
    targets_file: str
    address_suffix: str

    # ---- Transport ----
    transport: str
    print_qr: bool
    console_pair_seconds: int

    # ---- HTTP (server variant) ----
    http_host: str
    http_port: int

    # ---- Matrix ----
    matrix_homeserver: str
    matrix_user_id: str
    matrix_password: str

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    credentials_path: Path
    matrix_store_path: Path

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "timed-dispatch") or "timed-dispatch"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        workdir = _env_path(_k("WORKDIR"), Path("."))
        messages_file = _env(_k("MESSAGES_FILE"), "messages.txt")
        delays_file = _env(_k("DELAYS_FILE"), "time.txt")
        targets_file = _env(_k("TARGETS_FILE"), "targets.txt")
        # Leading "@" is tolerated: "@s.whatsapp.net" and "s.whatsapp.net" mean the same.
        address_suffix = _env(_k("ADDRESS_SUFFIX"), "s.whatsapp.net").strip().lstrip("@")

        transport = _env(_k("TRANSPORT"), "console").strip() or "console"
        print_qr = _env_bool(_k("PRINT_QR"), True)
        console_pair_seconds = max(0, _env_int(_k("CONSOLE_PAIR_SECONDS"), 5))

        http_host = _env(_k("HTTP_HOST"), "0.0.0.0")
        # Hosting platforms usually hand out the port through a bare PORT variable.
        http_port = _env_int(_k("HTTP_PORT"), _env_int("PORT", 3000))

        matrix_homeserver = (_first_env(_k("MATRIX_HOMESERVER"), "MATRIX_HOMESERVER", default="") or "").strip()
        matrix_user_id = (_first_env(_k("MATRIX_USER_ID"), "MATRIX_USER_ID", default="") or "").strip()
        matrix_password = (_first_env(_k("MATRIX_PASSWORD"), "MATRIX_PASSWORD", default="") or "").strip()

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/dispatch"))
        credentials_path = _env_path(_k("CREDENTIALS_PATH"), data_dir / "auth_info.json")
        matrix_store_path = _env_path(_k("MATRIX_STORE_PATH"), data_dir / "matrix_store")

        return Settings(
            app_name=app_name,
            log_level=log_level,
            workdir=workdir,
            messages_file=messages_file,
            delays_file=delays_file,
            targets_file=targets_file,
            address_suffix=address_suffix,
            transport=transport,
            print_qr=print_qr,
            console_pair_seconds=console_pair_seconds,
            http_host=http_host,
            http_port=http_port,
            matrix_homeserver=matrix_homeserver,
            matrix_user_id=matrix_user_id,
            matrix_password=matrix_password,
            data_dir=data_dir,
            credentials_path=credentials_path,
            matrix_store_path=matrix_store_path,
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
