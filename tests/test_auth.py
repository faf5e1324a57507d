import logging

import pytest

from errors import (
    AuthenticationError,
    DuplicateUsernameError,
    PermissionDeniedError,
    ValidationError,
)


class TestRegister:

    def test_register_hashes_password(self, auth):
        account = auth.register("alice", "secret123", "child")

        assert account.id is not None
        assert account.username == "alice"
        assert account.role == "child"
        assert account.hashed_password != "secret123"
        assert auth.verify_password("secret123", account.hashed_password)

    def test_password_not_in_repr(self, auth):
        account = auth.register("alice", "secret123", "child")
        assert account.hashed_password not in repr(account)

    def test_duplicate_username_rejected(self, auth):
        auth.register("alice", "secret123", "child")
        with pytest.raises(DuplicateUsernameError):
            auth.register("alice", "another123", "admin")
        assert len(auth.list_accounts()) == 1

    def test_usernames_are_case_sensitive(self, auth):
        auth.register("alice", "secret123", "child")
        auth.register("Alice", "secret123", "child")
        assert {a.username for a in auth.list_accounts()} == {"alice", "Alice"}

    @pytest.mark.parametrize("username,password,role", [
        ("alice", "secret123", "doctor"),
        ("al", "secret123", "child"),
        ("alice", "short", "child"),
    ])
    def test_invalid_input_rejected(self, auth, username, password, role):
        with pytest.raises(ValidationError):
            auth.register(username, password, role)
        assert auth.list_accounts() == []


class TestLogin:

    def test_login_success(self, auth):
        registered = auth.register("alice", "secret123", "child")
        account = auth.login("alice", "secret123")
        assert account.id == registered.id

    def test_wrong_password_and_unknown_user_look_the_same(self, auth, caplog):
        auth.register("alice", "secret123", "child")

        with caplog.at_level(logging.WARNING):
            with pytest.raises(AuthenticationError) as bad_password:
                auth.login("alice", "wrong-password")
            with pytest.raises(AuthenticationError) as unknown_user:
                auth.login("nobody", "secret123")

        assert str(bad_password.value) == str(unknown_user.value)
        assert "bad password" in caplog.text
        assert "no such user" in caplog.text
        assert "wrong-password" not in caplog.text


class TestDeleteAccount:

    def test_delete_cascades_to_avatar_and_progress(self, auth, avatars, progress, child, child_avatar):
        progress.record_test_result(child.id, 40)

        assert auth.delete_account("alice") is True
        assert auth.get_account("alice") is None
        assert avatars.get(child.id) is None
        assert progress.get_progress_history(child.id) == []

    def test_delete_unknown_user(self, auth):
        assert auth.delete_account("ghost") is False

    def test_admin_can_delete_other_user(self, auth, child):
        admin = auth.register("drsmith", "secret123", "admin")
        assert auth.delete_account("alice", requested_by=admin) is True

    def test_child_cannot_delete(self, auth, child):
        other = auth.register("bobby", "secret123", "child")
        with pytest.raises(PermissionDeniedError):
            auth.delete_account("alice", requested_by=other)
        assert auth.get_account("alice") is not None

    def test_admin_cannot_delete_self(self, auth):
        admin = auth.register("drsmith", "secret123", "admin")
        with pytest.raises(PermissionDeniedError):
            auth.delete_account("drsmith", requested_by=admin)


class TestUsernameMatching:

    @pytest.mark.parametrize("username", [" bob ", "bob ", " alice"])
    def test_surrounding_whitespace_rejected(self, auth, username):
        with pytest.raises(ValidationError):
            auth.register(username, "secret123", "child")
        assert auth.list_accounts() == []

    def test_padded_name_does_not_collide_with_existing(self, auth, child):
        with pytest.raises(ValidationError):
            auth.register(" alice", "secret123", "child")
        assert [a.username for a in auth.list_accounts()] == ["alice"]

    def test_login_requires_exact_username(self, auth, child):
        with pytest.raises(AuthenticationError):
            auth.login(" alice ", "secret123")
        assert auth.login("alice", "secret123").id == child.id

    def test_inner_spaces_allowed(self, auth):
        auth.register("bob smith", "secret123", "child")
        assert auth.login("bob smith", "secret123").username == "bob smith"
