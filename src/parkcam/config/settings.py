"""parkcam configuration settings using pydantic-settings."""

from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Configuration settings for the parkcam agent.

    Settings are loaded from environment variables with the PARKCAM_ prefix.
    For example, PARKCAM_POLL_INTERVAL=30 sets poll_interval to 30.

    Instances are frozen: build one at startup (``Settings(**overrides)``)
    and hand it to every component.
    """

    model_config = SettingsConfigDict(
        env_prefix="PARKCAM_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # Storage destination
    bucket_name: str = "pipark2014"
    project_id: str = "pipark2014"
    object_prefix: str = "parkingspots/imgs/"

    # Coordinator
    server_host: str = "www.pipark2014.appspot.com"
    server_scheme: str = "http"
    check_path: str = "/clientcheck"
    update_path: str = "/clientupdate"
    location_name: str = "300ThirdStreet"
    request_timeout: float = 10.0
    strict_poll_responses: bool = True

    # Loop
    poll_interval: float = 10.0  # seconds between polls
    acl_max_attempts: int = 3

    # Capture
    capture_path: Path = Path("test.jpg")
    capture_command: str = "raspistill"
    capture_width: int = 640
    capture_height: int = 480
    capture_timeout: int = 30
    test_mode: bool = False

    # OAuth
    cache_file: Path = Path("cache.json")
    client_id: str | None = None
    client_secret: str | None = None
    client_secrets_file: Path | None = None
    oauth_code: str | None = None

    # Logging
    log_level: str = "INFO"
    log_file: Path | None = None

    @field_validator("poll_interval", "request_timeout")
    @classmethod
    def validate_positive(cls, v: float) -> float:
        """Ensure intervals and timeouts are positive."""
        if v <= 0:
            raise ValueError("must be greater than 0")
        return v

    @field_validator("acl_max_attempts", "capture_width", "capture_height", "capture_timeout")
    @classmethod
    def validate_at_least_one(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be at least 1")
        return v

    @field_validator("server_scheme")
    @classmethod
    def validate_scheme(cls, v: str) -> str:
        if v not in {"http", "https"}:
            raise ValueError("server_scheme must be http or https")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensure log level is valid."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid_levels:
            raise ValueError(f"log_level must be one of {valid_levels}")
        return v.upper()

    @property
    def server_base_url(self) -> str:
        """Return the coordinator base URL, e.g. http://host."""
        return f"{self.server_scheme}://{self.server_host}"

    @property
    def object_path(self) -> str:
        """Return the object name prefix for this location (trailing slash)."""
        return f"{self.object_prefix.rstrip('/')}/{self.location_name}/"

    @property
    def capture_args(self) -> list[str]:
        """Return the full capture command line."""
        return [
            self.capture_command,
            "-o",
            str(self.capture_path),
            "-w",
            str(self.capture_width),
            "-h",
            str(self.capture_height),
        ]
