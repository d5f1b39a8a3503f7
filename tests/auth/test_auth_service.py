"""Tests for AuthService against a mocked Cassandra session."""

from datetime import UTC, datetime
from uuid import uuid4

import pytest

from coursehub.auth.permissions import UserRole
from coursehub.auth.schemas import RegisterRequest
from coursehub.auth.security import decode_access_token, hash_password
from coursehub.auth.service import (
    AuthService,
    InvalidCredentialsError,
    UserExistsError,
)


@pytest.fixture
def service(mock_session) -> AuthService:
    return AuthService(session=mock_session, keyspace="coursehub_test")


@pytest.fixture
def stored_user(row):
    user_id = uuid4()
    return row(
        id=user_id,
        name="Ana Souza",
        email="ana@example.com",
        password_hash=hash_password("s3cret"),
        created_at=datetime(2024, 1, 1, tzinfo=UTC),
    )


class TestRegisterUser:
    @pytest.mark.asyncio
    async def test_claims_email_then_inserts_user(self, service, mock_session) -> None:
        user = await service.register_user(
            RegisterRequest(name="Ana", email="Ana@Example.com", password="pw")
        )

        assert user.email == "ana@example.com"
        statements = [c.args[0] for c in mock_session.aexecute.call_args_list]
        assert "users_by_email" in statements[0]
        assert "IF NOT EXISTS" in statements[0]
        assert "INSERT INTO coursehub_test.users " in statements[1]
        params = mock_session.aexecute.call_args_list[1].args[1]
        assert params[3] != "pw"

    @pytest.mark.asyncio
    async def test_duplicate_email_rejected(
        self, service, mock_session, make_result
    ) -> None:
        mock_session.aexecute.return_value = make_result(was_applied=False)

        with pytest.raises(UserExistsError) as exc_info:
            await service.register_user(
                RegisterRequest(name="Ana", email="ana@example.com", password="pw")
            )

        assert exc_info.value.code == "user_exists"
        # The user row is never written when the claim fails
        assert mock_session.aexecute.await_count == 1

    @pytest.mark.asyncio
    async def test_failed_insert_releases_email(
        self, service, mock_session, make_result
    ) -> None:
        mock_session.aexecute.side_effect = [
            make_result(),
            RuntimeError("write timeout"),
            make_result(),
        ]

        with pytest.raises(RuntimeError, match="write timeout"):
            await service.register_user(
                RegisterRequest(name="Ana", email="ana@example.com", password="pw")
            )

        calls = mock_session.aexecute.call_args_list
        assert len(calls) == 3
        claim_params = calls[0].args[1]
        assert "DELETE FROM coursehub_test.users_by_email" in calls[2].args[0]
        assert "IF user_id = ?" in calls[2].args[0]
        assert calls[2].args[1] == claim_params


class TestAuthenticateUser:
    @pytest.mark.asyncio
    async def test_valid_credentials(
        self, service, mock_session, make_result, row, stored_user
    ) -> None:
        mock_session.aexecute.side_effect = [
            make_result([row(user_id=stored_user.id)]),
            make_result([stored_user]),
        ]

        user = await service.authenticate_user("ANA@example.com", "s3cret")

        assert user.id == stored_user.id
        lookup_params = mock_session.aexecute.call_args_list[0].args[1]
        assert lookup_params == ["ana@example.com"]

    @pytest.mark.asyncio
    async def test_unknown_email(self, service, mock_session, make_result) -> None:
        mock_session.aexecute.return_value = make_result()

        with pytest.raises(InvalidCredentialsError):
            await service.authenticate_user("nobody@example.com", "pw")

    @pytest.mark.asyncio
    async def test_wrong_password(
        self, service, mock_session, make_result, row, stored_user
    ) -> None:
        mock_session.aexecute.side_effect = [
            make_result([row(user_id=stored_user.id)]),
            make_result([stored_user]),
        ]

        with pytest.raises(InvalidCredentialsError) as exc_info:
            await service.authenticate_user("ana@example.com", "wrong")

        assert exc_info.value.message == "Invalid credentials"


class TestAdmins:
    @pytest.mark.asyncio
    async def test_authenticate_admin(
        self, service, mock_session, make_result, row
    ) -> None:
        admin_row = row(
            id=uuid4(),
            username="adm123",
            password_hash=hash_password("adm123"),
            created_at=None,
        )
        mock_session.aexecute.return_value = make_result([admin_row])

        admin = await service.authenticate_admin("adm123", "adm123")

        assert admin.id == admin_row.id
        assert admin.created_at.tzinfo is not None

    @pytest.mark.asyncio
    async def test_authenticate_admin_wrong_password(
        self, service, mock_session, make_result, row
    ) -> None:
        mock_session.aexecute.return_value = make_result(
            [
                row(
                    id=uuid4(),
                    username="adm123",
                    password_hash=hash_password("adm123"),
                    created_at=None,
                )
            ]
        )

        with pytest.raises(InvalidCredentialsError):
            await service.authenticate_admin("adm123", "nope")

    @pytest.mark.asyncio
    async def test_bootstrap_admin_created_once(
        self, service, mock_session, make_result
    ) -> None:
        mock_session.aexecute.side_effect = [
            make_result(was_applied=True),
            make_result(was_applied=False),
        ]

        assert await service.ensure_bootstrap_admin("adm123", "adm123") is True
        assert await service.ensure_bootstrap_admin("adm123", "adm123") is False
        statement = mock_session.aexecute.call_args_list[0].args[0]
        assert "admins" in statement
        assert "IF NOT EXISTS" in statement


class TestCreateToken:
    def test_user_token(self, service) -> None:
        principal_id = uuid4()
        token, expires_in = service.create_token(principal_id, UserRole.USER)

        payload = decode_access_token(token)
        assert payload["sub"] == str(principal_id)
        assert payload["role"] == "user"
        assert expires_in == 7 * 24 * 3600

    def test_admin_token(self, service) -> None:
        _, expires_in = service.create_token(uuid4(), UserRole.ADMIN)
        assert expires_in == 24 * 3600
