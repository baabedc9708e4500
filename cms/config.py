"""
cms/config.py
-----------------------------------------------------------------------------
Runtime configuration for the CMS.

Values come from environment variables; a ``.env`` file in the working
directory is loaded first (no-op if absent).

Environment variables
---------------------
CMS_DATA_DIR      – Storage root for documents (default: ``<project>/data``).
CMS_AUTH_FILE     – YAML credential registry
                    (default: ``<project>/auth/users.yaml``).
CMS_SECRET_KEY    – Key used to sign session cookies.
CMS_BCRYPT_ROUNDS – bcrypt cost factor for new password hashes (default 12).
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from cms.auth import DEFAULT_ROUNDS

# Load .env if present (no-op if the file doesn't exist)
load_dotenv()

_PROJECT_ROOT = Path(__file__).parent.parent

# Only suitable for local development; set CMS_SECRET_KEY in deployments.
_DEV_SECRET_KEY = "cms-development-secret"


@dataclass(frozen=True)
class Settings:
    data_dir: Path
    auth_file: Path
    secret_key: str
    bcrypt_rounds: int = DEFAULT_ROUNDS


def load_settings() -> Settings:
    """Build :class:`Settings` from the current environment."""
    return Settings(
        data_dir=Path(os.getenv("CMS_DATA_DIR", str(_PROJECT_ROOT / "data"))),
        auth_file=Path(os.getenv("CMS_AUTH_FILE", str(_PROJECT_ROOT / "auth" / "users.yaml"))),
        secret_key=os.getenv("CMS_SECRET_KEY", _DEV_SECRET_KEY),
        bcrypt_rounds=int(os.getenv("CMS_BCRYPT_ROUNDS", str(DEFAULT_ROUNDS))),
    )
