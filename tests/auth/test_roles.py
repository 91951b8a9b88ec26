"""Tests for the closed role set."""

import pytest

from salvambiente.auth.roles import ADMIN_ONLY, MODERATOR_OR_ADMIN, Role


class TestRoleParse:
    @pytest.mark.parametrize("name", [None, ""])
    def test_missing_defaults_to_user(self, name):
        assert Role.parse(name) is Role.USER

    def test_known_names(self):
        assert Role.parse("admin") is Role.ADMIN
        assert Role.parse("moderador") is Role.MODERATOR
        assert Role.parse("usuario") is Role.USER

    def test_unknown_name_rejected(self):
        with pytest.raises(ValueError, match="Unknown role"):
            Role.parse("root")


class TestPolicies:
    def test_admin_only(self):
        assert ADMIN_ONLY == {Role.ADMIN}

    def test_moderator_or_admin(self):
        assert Role.MODERATOR in MODERATOR_OR_ADMIN
        assert Role.ADMIN in MODERATOR_OR_ADMIN
        assert Role.USER not in MODERATOR_OR_ADMIN
