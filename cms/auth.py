"""
cms/auth.py
-----------------------------------------------------------------------------
Persistent credential registry with bcrypt password hashing.

The registry is a flat YAML mapping file::

    alice: '$2b$12$...'
    bob: '$2b$12$...'

It is re-read from disk on every call.  There is deliberately no in-memory
cache, so a registration made by one process is visible to every other
process on its next lookup without any invalidation step.

Exports
-------
AuthStore(registry_path, rounds=12)
    ``exists(username)``             -> bool
    ``verify(username, password)``   -> bool
    ``register(username, password)`` -> list[DiagnosticCode]

CredentialRegistryError
    Raised by ``register`` when the registry file cannot be read, parsed or
    written.

validate_username / validate_password
    The independent signup rules, exposed for unit testing.

Concurrency
-----------
``register`` rewrites the whole file through a temporary file and
``os.replace``.  Readers therefore never see a half-written registry, but two
concurrent registrations race: the last writer's view of the registry wins,
and a registration made in between can be lost.
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

import bcrypt
import yaml

from cms.diagnostics import DiagnosticCode

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8

# bcrypt only looks at the first 72 bytes of its input.
MAX_PASSWORD_BYTES = 72

DEFAULT_ROUNDS = 12


class CredentialRegistryError(RuntimeError):
    """The credential registry cannot be read or written as a username → hash map."""


# -----------------------------------------------------------------------------
# Validation rules
# -----------------------------------------------------------------------------


def validate_username(username: str, registered: dict[str, str]) -> DiagnosticCode | None:
    if not username:
        return DiagnosticCode.MISSING_USERNAME
    if username in registered:
        return DiagnosticCode.USERNAME_IN_USE
    return None


def validate_password(password: str) -> DiagnosticCode | None:
    if not password:
        return DiagnosticCode.MISSING_PASSWORD
    if len(password) < MIN_PASSWORD_LENGTH:
        return DiagnosticCode.PASSWORD_TOO_SHORT
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        return DiagnosticCode.PASSWORD_TOO_LONG
    return None


# -----------------------------------------------------------------------------
# Store
# -----------------------------------------------------------------------------


class AuthStore:
    """
    Username → bcrypt-hash registry backed by a YAML file.

    Parameters
    ----------
    registry_path : Location of the YAML registry.  A missing file is an
                    empty registry; its parent directory is created on the
                    first registration.
    rounds        : bcrypt cost factor used for new hashes.
    """

    def __init__(self, registry_path: Path, rounds: int = DEFAULT_ROUNDS) -> None:
        self.registry_path = Path(registry_path)
        self.rounds = rounds

    def exists(self, username: str) -> bool:
        try:
            return username in self._load()
        except CredentialRegistryError as exc:
            logger.warning("Credential registry unreadable: %s", exc)
            return False

    def verify(self, username: str, password: str) -> bool:
        """
        Return True when *password* matches the stored hash for *username*.

        Never raises: unknown users, wrong passwords, malformed hashes and an
        unreadable registry all yield False.
        """
        try:
            stored = self._load().get(username)
        except CredentialRegistryError as exc:
            logger.warning("Credential registry unreadable: %s", exc)
            return False
        if not stored:
            return False
        try:
            return bcrypt.checkpw(password.encode("utf-8"), str(stored).encode("utf-8"))
        except ValueError:
            # Malformed stored hash, or a password bcrypt refuses to hash.
            return False

    def register(self, username: str, password: str) -> list[DiagnosticCode]:
        """
        Validate and persist a new credential.

        The username rule and the password rule are checked independently and
        every failure is returned, so the caller can show them all at once.
        The credential is written only when the returned list is empty.

        Raises
        ------
        CredentialRegistryError
            If the existing registry file cannot be read or parsed, or the
            updated registry cannot be written.
        """
        registered = self._load()
        errors = [
            code
            for code in (
                validate_username(username, registered),
                validate_password(password),
            )
            if code is not None
        ]
        if errors:
            return errors

        hashed = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=self.rounds))
        registered[username] = hashed.decode("utf-8")
        self._write(registered)
        logger.info("Registered user %s", username)
        return []

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    def _load(self) -> dict[str, str]:
        try:
            text = self.registry_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except (OSError, UnicodeDecodeError) as exc:
            raise CredentialRegistryError(f"{self.registry_path}: {exc}") from exc
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise CredentialRegistryError(f"{self.registry_path}: {exc}") from exc
        if data is None:
            return {}
        if not isinstance(data, dict):
            raise CredentialRegistryError(
                f"{self.registry_path}: expected a mapping, got {type(data).__name__}"
            )
        return {str(key): str(value) for key, value in data.items()}

    def _write(self, registered: dict[str, str]) -> None:
        try:
            self._replace(registered)
        except OSError as exc:
            raise CredentialRegistryError(f"{self.registry_path}: {exc}") from exc

    def _replace(self, registered: dict[str, str]) -> None:
        self.registry_path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=self.registry_path.parent, prefix=".users-", suffix=".yaml"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                yaml.safe_dump(registered, fh, default_flow_style=False, allow_unicode=True)
            os.replace(tmp_name, self.registry_path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
