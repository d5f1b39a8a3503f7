"""Application settings using Pydantic Settings."""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="coursehub", description="Application name")
    app_version: str = Field(default="0.1.0", description="Application version")
    environment: Literal["development", "staging", "production", "testing"] = Field(
        default="development", description="Environment name"
    )
    debug: bool = Field(default=True, description="Debug mode")

    # API Server
    api_host: str = Field(default="0.0.0.0", description="API host")
    api_port: int = Field(default=3000, description="API port")

    # Authentication
    auth_secret_key: str = Field(
        default="dev-jwt-secret-key-change-in-production-32chars!",
        description="JWT signing key (min 32 chars)",
    )
    auth_algorithm: str = Field(default="HS256", description="JWT algorithm")
    auth_user_token_expire_days: int = Field(
        default=7, description="User access token lifetime (days)"
    )
    auth_admin_token_expire_days: int = Field(
        default=1, description="Admin access token lifetime (days)"
    )
    bootstrap_admin_username: str = Field(
        default="adm123", description="Admin account created at first startup"
    )
    bootstrap_admin_password: str = Field(
        default="adm123", description="Password of the bootstrap admin account"
    )

    # Cassandra
    cassandra_hosts: list[str] = Field(
        default=["localhost"], description="Cassandra hosts"
    )
    cassandra_port: int = Field(default=9042, description="Cassandra port")
    cassandra_keyspace: str = Field(
        default="coursehub", description="Cassandra keyspace"
    )
    cassandra_username: str | None = Field(default=None, description="Cassandra user")
    cassandra_password: str | None = Field(
        default=None, description="Cassandra password"
    )
    cassandra_protocol_version: int = Field(default=4, description="Protocol version")
    cassandra_connect_timeout: float = Field(
        default=10.0, description="Connect timeout"
    )
    cassandra_request_timeout: float = Field(
        default=10.0, description="Request timeout"
    )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="DEBUG", description="Log level"
    )
    log_format: Literal["json", "console"] = Field(
        default="console", description="Log format"
    )
    log_include_caller_info: bool = Field(
        default=True, description="Include caller info"
    )
    log_dir: str = Field(default="logs", description="Directory for log files")
    log_file_max_bytes: int = Field(
        default=10 * 1024 * 1024, description="Max size per log file (10MB default)"
    )
    log_file_backup_count: int = Field(
        default=5, description="Number of backup log files to keep"
    )
    log_requests: bool = Field(
        default=True, description="Log HTTP request start/finish"
    )
    log_exclude_paths: list[str] = Field(
        default=["/health", "/health/live", "/health/ready"],
        description="Paths to exclude from request logging",
    )

    # CORS
    cors_origins: list[str] = Field(default=["*"], description="CORS origins")
    cors_allow_credentials: bool = Field(default=True, description="Allow credentials")
    cors_allow_methods: list[str] = Field(default=["*"], description="Allowed methods")
    cors_allow_headers: list[str] = Field(default=["*"], description="Allowed headers")
    cors_max_age: int = Field(default=600, description="CORS max age")

    # Firebase Storage
    firebase_enabled: bool = Field(
        default=False, description="Enable Firebase Storage for uploads"
    )
    firebase_credentials_path: str | None = Field(
        default=None, description="Path to Firebase service account JSON file"
    )
    firebase_storage_bucket: str | None = Field(
        default=None,
        description="Firebase Storage bucket (e.g., project-id.appspot.com)",
    )
    firebase_project_id: str | None = Field(
        default=None, description="Firebase project ID"
    )
    storage_root_folder: str = Field(
        default="cursos_online", description="Top-level folder for uploaded files"
    )

    # Upload Settings
    upload_max_image_size_mb: int = Field(
        default=10, description="Maximum course cover size in MB"
    )
    upload_max_video_size_mb: int = Field(
        default=500, description="Maximum lesson video size in MB"
    )
    upload_allowed_image_types: list[str] = Field(
        default=["image/png"],
        description="Allowed MIME types for course covers",
    )

    # Email (Gmail API)
    email_enabled: bool = Field(
        default=False, description="Enable email sending via Gmail API"
    )
    email_credentials_path: str = Field(
        default="credentials/google-service-account.json",
        description="Path to Google service account JSON file",
    )
    email_sender_address: str = Field(
        default="noreply@coursehub.dev",
        description="Sender email address (must be in Google Workspace domain)",
    )
    email_sender_name: str = Field(
        default="CourseHub", description="Sender display name"
    )
    email_admin_address: str = Field(
        default="admin@coursehub.dev",
        description="Administrator mailbox for refund notifications",
    )

    # Purchases
    refund_window_days: int = Field(
        default=7, description="Days after purchase during which refunds are allowed"
    )

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == "production"

    @property
    def is_testing(self) -> bool:
        """Check if running in testing mode."""
        return self.environment == "testing"

    @property
    def firebase_configured(self) -> bool:
        """Check if Firebase Storage is configured."""
        return bool(
            self.firebase_enabled
            and self.firebase_credentials_path
            and self.firebase_storage_bucket
        )

    @property
    def email_configured(self) -> bool:
        """Check if Gmail API email is configured."""
        return bool(
            self.email_enabled
            and self.email_sender_address
            and self.email_admin_address
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
