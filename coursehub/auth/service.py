"""Authentication service layer.

Business logic for:
- User registration (email uniqueness claimed with a lightweight transaction)
- User and admin credential verification
- Access token issuance
- Bootstrap admin provisioning
"""

from typing import TYPE_CHECKING
from uuid import UUID

from coursehub.auth.models import Admin, User, normalize_email
from coursehub.auth.permissions import UserRole
from coursehub.auth.schemas import RegisterRequest
from coursehub.auth.security import (
    create_access_token,
    hash_password,
    token_lifetime,
    verify_password,
)
from coursehub.core.logging import get_logger


if TYPE_CHECKING:
    from cassandra.cluster import Session


logger = get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class AuthError(Exception):
    """Base authentication error."""

    def __init__(self, message: str, code: str = "auth_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class InvalidCredentialsError(AuthError):
    """Unknown principal or wrong password (deliberately indistinguishable)."""

    def __init__(self, message: str = "Invalid credentials"):
        super().__init__(message, "invalid_credentials")


class UserExistsError(AuthError):
    """Email already registered."""

    def __init__(self, message: str = "Email already registered"):
        super().__init__(message, "user_exists")


# ==============================================================================
# Auth Service
# ==============================================================================


class AuthService:
    """Authentication service for user/admin accounts and token issuance."""

    def __init__(self, session: "Session", keyspace: str):
        """Initialize with Cassandra session.

        Args:
            session: Cassandra driver session (with aexecute support)
            keyspace: Keyspace name for queries
        """
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for better performance."""
        self._claim_email = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.users_by_email (email, user_id)
            VALUES (?, ?)
            IF NOT EXISTS
        """)
        self._release_email = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.users_by_email
            WHERE email = ?
            IF user_id = ?
        """)
        self._get_user_id_by_email = self.session.prepare(
            f"SELECT user_id FROM {self.keyspace}.users_by_email WHERE email = ?"
        )
        self._get_user_by_id = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.users WHERE id = ?"
        )
        self._insert_user = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.users
            (id, name, email, password_hash, created_at)
            VALUES (?, ?, ?, ?, ?)
        """)
        self._update_user_password = self.session.prepare(
            f"UPDATE {self.keyspace}.users SET password_hash = ? WHERE id = ?"
        )
        self._get_admin = self.session.prepare(
            f"SELECT * FROM {self.keyspace}.admins WHERE username = ?"
        )
        self._insert_admin = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.admins
            (username, id, password_hash, created_at)
            VALUES (?, ?, ?, ?)
            IF NOT EXISTS
        """)
        self._update_admin_password = self.session.prepare(
            f"UPDATE {self.keyspace}.admins SET password_hash = ? WHERE username = ?"
        )

    # ==========================================================================
    # Users
    # ==========================================================================

    async def get_user_by_id(self, user_id: UUID) -> User | None:
        """Find user by ID."""
        result = await self.session.aexecute(self._get_user_by_id, [user_id])
        row = result.one()
        return User.from_row(row) if row else None

    async def get_user_by_email(self, email: str) -> User | None:
        """Find user by email address (case-insensitive)."""
        result = await self.session.aexecute(
            self._get_user_id_by_email, [normalize_email(email)]
        )
        row = result.one()
        if not row:
            return None
        return await self.get_user_by_id(row.user_id)

    async def register_user(self, data: RegisterRequest) -> User:
        """Register a new user.

        The email is claimed in ``users_by_email`` with ``IF NOT EXISTS``
        before the user row is written, so two concurrent registrations for
        the same address cannot both succeed. If the user row cannot be
        written, the claim is released again.

        Raises:
            UserExistsError: If the email is already registered
        """
        user = User(
            name=data.name,
            email=data.email,
            password_hash=hash_password(data.password),
        )

        claim = await self.session.aexecute(self._claim_email, [user.email, user.id])
        if not claim.was_applied:
            raise UserExistsError

        try:
            await self.session.aexecute(
                self._insert_user,
                [user.id, user.name, user.email, user.password_hash, user.created_at],
            )
        except Exception as e:
            # Release the claim so the address can be registered again
            logger.error(
                "user_insert_failed",
                user_id=str(user.id),
                error=str(e),
            )
            await self.session.aexecute(self._release_email, [user.email, user.id])
            raise

        logger.info("user_registered", user_id=str(user.id))
        return user

    async def authenticate_user(self, email: str, password: str) -> User:
        """Authenticate user with email and password.

        Raises:
            InvalidCredentialsError: If email is unknown or password is wrong
        """
        user = await self.get_user_by_email(email)
        if not user:
            logger.info("user_login_failed", reason="unknown_email")
            raise InvalidCredentialsError

        is_valid, new_hash = verify_password(password, user.password_hash)
        if not is_valid:
            logger.info("user_login_failed", reason="bad_password", user_id=str(user.id))
            raise InvalidCredentialsError

        if new_hash:
            await self.session.aexecute(self._update_user_password, [new_hash, user.id])
            user.password_hash = new_hash

        return user

    # ==========================================================================
    # Admins
    # ==========================================================================

    async def get_admin(self, username: str) -> Admin | None:
        """Find admin by username."""
        result = await self.session.aexecute(self._get_admin, [username])
        row = result.one()
        return Admin.from_row(row) if row else None

    async def authenticate_admin(self, username: str, password: str) -> Admin:
        """Authenticate admin with username and password.

        Raises:
            InvalidCredentialsError: If username is unknown or password is wrong
        """
        admin = await self.get_admin(username)
        if not admin:
            logger.warning("admin_login_failed", reason="unknown_username")
            raise InvalidCredentialsError

        is_valid, new_hash = verify_password(password, admin.password_hash)
        if not is_valid:
            logger.warning("admin_login_failed", reason="bad_password")
            raise InvalidCredentialsError

        if new_hash:
            await self.session.aexecute(
                self._update_admin_password, [new_hash, admin.username]
            )
            admin.password_hash = new_hash

        return admin

    async def ensure_bootstrap_admin(self, username: str, password: str) -> bool:
        """Create the bootstrap admin account if it does not exist yet.

        Returns:
            True if the account was created by this call
        """
        admin = Admin(username=username, password_hash=hash_password(password))
        result = await self.session.aexecute(
            self._insert_admin,
            [admin.username, admin.id, admin.password_hash, admin.created_at],
        )
        if result.was_applied:
            logger.info("bootstrap_admin_created", username=username)
            return True
        logger.debug("bootstrap_admin_exists", username=username)
        return False

    # ==========================================================================
    # Tokens
    # ==========================================================================

    def create_token(self, principal_id: UUID, role: UserRole) -> tuple[str, int]:
        """Issue an access token for a principal.

        Returns:
            Tuple of (token, expires_in_seconds)
        """
        lifetime = token_lifetime(role)
        token = create_access_token(
            {"sub": str(principal_id), "role": role.value},
            expires_delta=lifetime,
        )
        return token, int(lifetime.total_seconds())
