"""Tests for auth permissions."""

import pytest

from coursehub.auth.permissions import UserRole, parse_role


class TestUserRole:
    def test_role_values(self) -> None:
        assert UserRole.USER.value == "user"
        assert UserRole.ADMIN.value == "admin"

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("user", UserRole.USER),
            ("admin", UserRole.ADMIN),
            (UserRole.ADMIN, UserRole.ADMIN),
            ("owner", None),
            ("", None),
        ],
    )
    def test_parse_role(self, raw, expected) -> None:
        assert parse_role(raw) is expected
