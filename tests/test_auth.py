"""
Tests for cms/auth.py — credential registry, signup rules and verification.

bcrypt hashing runs at the minimum cost factor (see conftest.TEST_ROUNDS).
"""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import bcrypt
import pytest
import yaml

from cms.auth import (
    AuthStore,
    CredentialRegistryError,
    validate_password,
    validate_username,
)
from cms.diagnostics import DiagnosticCode

TEST_ROUNDS = 4

# ── validation rules ────────────────────────────────────────────────────────


class TestValidateUsername:
    def test_missing(self) -> None:
        assert validate_username("", {}) is DiagnosticCode.MISSING_USERNAME

    def test_in_use(self) -> None:
        assert validate_username("bob", {"bob": "hash"}) is DiagnosticCode.USERNAME_IN_USE

    def test_ok(self) -> None:
        assert validate_username("bob", {"alice": "hash"}) is None


class TestValidatePassword:
    def test_missing(self) -> None:
        assert validate_password("") is DiagnosticCode.MISSING_PASSWORD

    def test_too_short(self) -> None:
        assert validate_password("1234567") is DiagnosticCode.PASSWORD_TOO_SHORT

    def test_minimum_length_ok(self) -> None:
        assert validate_password("12345678") is None

    def test_too_long_for_bcrypt(self) -> None:
        assert validate_password("x" * 73) is DiagnosticCode.PASSWORD_TOO_LONG


# ── register ────────────────────────────────────────────────────────────────


class TestRegister:
    def test_success_persists_hash(self, auth_store: AuthStore) -> None:
        assert auth_store.register("bob", "correct-password") == []
        stored = yaml.safe_load(auth_store.registry_path.read_text(encoding="utf-8"))
        assert set(stored) == {"bob"}
        assert stored["bob"] != "correct-password"
        assert stored["bob"].startswith(f"$2b${TEST_ROUNDS:02d}$")

    def test_missing_password_only(self, auth_store: AuthStore) -> None:
        """An unregistered username with no password reports just the password."""
        assert auth_store.register("bob", "") == [DiagnosticCode.MISSING_PASSWORD]

    def test_all_failures_collected(self, auth_store: AuthStore) -> None:
        assert auth_store.register("", "") == [
            DiagnosticCode.MISSING_USERNAME,
            DiagnosticCode.MISSING_PASSWORD,
        ]

    def test_in_use_and_short_together(self, auth_store: AuthStore) -> None:
        auth_store.register("bob", "correct-password")
        assert auth_store.register("bob", "short") == [
            DiagnosticCode.USERNAME_IN_USE,
            DiagnosticCode.PASSWORD_TOO_SHORT,
        ]

    def test_failure_writes_nothing(self, auth_store: AuthStore) -> None:
        auth_store.register("bob", "short")
        assert not auth_store.registry_path.exists()

    def test_existing_entries_preserved(self, auth_store: AuthStore) -> None:
        auth_store.register("alice", "alice-password")
        auth_store.register("bob", "bob-password")
        assert auth_store.verify("alice", "alice-password")
        assert auth_store.verify("bob", "bob-password")

    def test_no_temp_files_left(self, auth_store: AuthStore) -> None:
        auth_store.register("bob", "correct-password")
        assert [p.name for p in auth_store.registry_path.parent.iterdir()] == ["users.yaml"]

    def test_corrupt_registry_raises(self, auth_store: AuthStore) -> None:
        auth_store.registry_path.parent.mkdir(parents=True)
        auth_store.registry_path.write_text("alice: [unclosed", encoding="utf-8")
        with pytest.raises(CredentialRegistryError):
            auth_store.register("bob", "correct-password")

    def test_non_mapping_registry_raises(self, auth_store: AuthStore) -> None:
        auth_store.registry_path.parent.mkdir(parents=True)
        auth_store.registry_path.write_text("- alice\n- bob\n", encoding="utf-8")
        with pytest.raises(CredentialRegistryError):
            auth_store.register("carol", "correct-password")

    def test_unreadable_registry_raises(self, auth_store: AuthStore) -> None:
        auth_store.registry_path.mkdir(parents=True)
        with pytest.raises(CredentialRegistryError):
            auth_store.register("carol", "correct-password")

    def test_unwritable_directory_raises(self, tmp_path: Path) -> None:
        """The registry's parent is a regular file, so nothing can be written."""
        blocker = tmp_path / "auth"
        blocker.write_text("not a directory", encoding="utf-8")
        store = AuthStore(blocker / "users.yaml", rounds=TEST_ROUNDS)
        with pytest.raises(CredentialRegistryError):
            store.register("bob", "correct-password")
        assert blocker.read_text(encoding="utf-8") == "not a directory"

    def test_failed_replace_leaves_no_temp_file(self, auth_store: AuthStore) -> None:
        with patch("cms.auth.os.replace", side_effect=PermissionError(13, "Permission denied")):
            with pytest.raises(CredentialRegistryError):
                auth_store.register("bob", "correct-password")
        assert list(auth_store.registry_path.parent.iterdir()) == []


# ── verify / exists ─────────────────────────────────────────────────────────


class TestVerify:
    def test_truth_table(self, auth_store: AuthStore) -> None:
        auth_store.register("bob", "correct-password")
        assert auth_store.verify("bob", "correct-password") is True
        assert auth_store.verify("bob", "wrong") is False
        assert auth_store.verify("nobody", "x") is False

    def test_missing_registry(self, auth_store: AuthStore) -> None:
        assert auth_store.verify("bob", "correct-password") is False

    def test_corrupt_registry_is_false(self, auth_store: AuthStore) -> None:
        auth_store.registry_path.parent.mkdir(parents=True)
        auth_store.registry_path.write_text("alice: [unclosed", encoding="utf-8")
        assert auth_store.verify("alice", "anything") is False

    def test_registry_is_directory_is_false(self, auth_store: AuthStore) -> None:
        auth_store.registry_path.mkdir(parents=True)
        assert auth_store.verify("alice", "anything") is False

    def test_undecodable_registry_is_false(self, auth_store: AuthStore) -> None:
        auth_store.registry_path.parent.mkdir(parents=True)
        auth_store.registry_path.write_bytes(b"alice: \xff\xfe\n")
        assert auth_store.verify("alice", "anything") is False

    def test_permission_denied_is_false(self, auth_store: AuthStore) -> None:
        with patch.object(Path, "read_text", side_effect=PermissionError(13, "Permission denied")):
            assert auth_store.verify("alice", "anything") is False

    def test_malformed_hash_is_false(self, auth_store: AuthStore) -> None:
        auth_store.registry_path.parent.mkdir(parents=True)
        auth_store.registry_path.write_text("alice: not-a-bcrypt-hash\n", encoding="utf-8")
        assert auth_store.verify("alice", "anything") is False

    def test_reads_latest_state(self, tmp_path: Path) -> None:
        """A second store on the same file sees registrations immediately."""
        path = tmp_path / "users.yaml"
        reader = AuthStore(path, rounds=TEST_ROUNDS)
        writer = AuthStore(path, rounds=TEST_ROUNDS)
        assert reader.verify("bob", "correct-password") is False
        writer.register("bob", "correct-password")
        assert reader.verify("bob", "correct-password") is True

    def test_hand_written_entry(self, tmp_path: Path) -> None:
        """Entries added to the file outside the store are honoured."""
        hashed = bcrypt.hashpw(b"secret-pass", bcrypt.gensalt(rounds=TEST_ROUNDS)).decode()
        path = tmp_path / "users.yaml"
        path.write_text(f"admin: '{hashed}'\n", encoding="utf-8")
        assert AuthStore(path).verify("admin", "secret-pass") is True


class TestExists:
    def test_exists(self, auth_store: AuthStore) -> None:
        assert auth_store.exists("bob") is False
        auth_store.register("bob", "correct-password")
        assert auth_store.exists("bob") is True

    def test_corrupt_registry(self, auth_store: AuthStore) -> None:
        auth_store.registry_path.parent.mkdir(parents=True)
        auth_store.registry_path.write_text("alice: [unclosed", encoding="utf-8")
        assert auth_store.exists("alice") is False

    def test_registry_is_directory(self, auth_store: AuthStore) -> None:
        auth_store.registry_path.mkdir(parents=True)
        assert auth_store.exists("alice") is False


class TestConcurrentRegistration:
    def test_racing_registration_last_writer_wins(self, tmp_path: Path) -> None:
        """
        Two registrations that read the registry before either writes: the
        second write replaces the first, so one account is silently lost.
        There is no check-and-insert lock; this pins the current behaviour.
        """
        path = tmp_path / "users.yaml"
        first = AuthStore(path, rounds=TEST_ROUNDS)
        second = AuthStore(path, rounds=TEST_ROUNDS)
        stale_snapshot = second._load()

        first.register("alice", "alice-password")
        with patch.object(second, "_load", return_value=stale_snapshot):
            assert second.register("bob", "bob-password") == []

        assert first.verify("bob", "bob-password") is True
        assert first.verify("alice", "alice-password") is False
