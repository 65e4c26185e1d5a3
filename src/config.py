"""
Application Configuration Module.

Manages application settings using Pydantic for validation. Settings come
from three places, in increasing priority:

- Field defaults
- The JSON settings file stored in the application data directory
- Environment variables prefixed with ``MIRRORCOLLAPSE_``

Values supplied through the environment are never written back to the
settings file.

Features:
- Typed settings schema instead of free-form dictionaries
- Best-effort settings file loading (bad keys are logged and skipped)
- Secure credential handling with SecretStr
- Application data directory resolution
"""

import json
import os
import sys
from pathlib import Path
from typing import Annotated, Any, Dict, Optional, Set, Tuple, Type

from pydantic import Field, SecretStr, TypeAdapter
from pydantic import ValidationError as PydanticValidationError
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from errors import ConfigurationError
from logger import LogManager

PRODUCT_NAME = "MirrorCollapse"
PRODUCT_VERSION = "0.0.1"
SETTINGS_FILE = "MirrorCollapseSettings.json"


class Settings(BaseSettings):
    """
    Application configuration settings with validation.

    Attributes:
        github_oauth (bool): Authenticate with an OAuth token instead of user/password
        github_oauth_token (Optional[SecretStr]): GitHub OAuth token
        github_auth_user (Optional[str]): GitHub user name for basic authentication
        github_auth_pass (Optional[SecretStr]): GitHub password for basic authentication
        origin_repo (Optional[str]): Downstream repository as "owner/name"
        upstream_repo (Optional[str]): Upstream repository as "owner/name"
        pr_title_prefix (Optional[str]): Text inserted after "[MIRROR]" in PR titles
        pr_body_prefix (Optional[str]): Text inserted before the upstream PR body
        mirror_branch (str): Origin branch holding the mirror ledger
        ledger_path (str): Path of the ledger file on the mirror branch
        scan_window (int): Number of upstream PR numbers scanned per run
        dev (bool): Debug mode flag
        log_level (int): Logging level (default: info)
        log_dir (Optional[str]): Directory for log files, console only when unset
    """

    # GitHub authentication
    github_oauth: bool = Field(default=False, description="Use OAuth token auth")
    github_oauth_token: Optional[SecretStr] = Field(
        default=None, description="GitHub OAuth token"
    )
    github_auth_user: Optional[str] = Field(default=None, description="GitHub user")
    github_auth_pass: Optional[SecretStr] = Field(
        default=None, description="GitHub password"
    )

    # Repositories
    origin_repo: Optional[str] = Field(
        default=None, description="Origin repository as owner/name"
    )
    upstream_repo: Optional[str] = Field(
        default=None, description="Upstream repository as owner/name"
    )

    # Mirror pull request text
    pr_title_prefix: Optional[str] = Field(default=None, description="PR title prefix")
    pr_body_prefix: Optional[str] = Field(default=None, description="PR body prefix")

    # Mirroring behaviour
    mirror_branch: str = Field(
        default=PRODUCT_NAME, description="Branch holding the mirror ledger"
    )
    ledger_path: str = Field(default="mirrored.json", description="Ledger file path")
    scan_window: int = Field(
        default=100, gt=0, description="Upstream PR numbers scanned per run"
    )

    # Logging
    dev: bool = Field(default=False, description="Debug mode")
    log_level: int = Field(default=20, description="Logging level, default info")
    log_dir: Optional[str] = Field(default=None, description="Logging directory")

    def credentials(self) -> Tuple[str, Optional[str]]:
        """
        Get the credentials for the configured authentication mode.

        Returns:
            Tuple[str, Optional[str]]: ``(token, None)`` in OAuth mode,
                ``(user, password)`` otherwise.

        Raises:
            ConfigurationError: If the credentials for the active mode are missing.
        """
        if self.github_oauth:
            if self.github_oauth_token is None:
                raise ConfigurationError(
                    "GithubOAuth is enabled but no OAuth token is set."
                )
            return self.github_oauth_token.get_secret_value(), None

        if not self.github_auth_user or self.github_auth_pass is None:
            raise ConfigurationError(
                "GitHub user and password must be set when OAuth is disabled."
            )
        return self.github_auth_user, self.github_auth_pass.get_secret_value()

    model_config = SettingsConfigDict(
        env_prefix="MIRRORCOLLAPSE_",
        case_sensitive=False,
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        # Settings file values arrive as init kwargs; the environment beats them
        return env_settings, init_settings, dotenv_settings, file_secret_settings


def environment_keys() -> Set[str]:
    """Get the names of the settings currently supplied by the environment."""
    prefix = Settings.model_config["env_prefix"].lower()
    present = {name.lower() for name in os.environ}
    return {name for name in Settings.model_fields if f"{prefix}{name}" in present}


def default_data_dir() -> Path:
    """
    Get the application data directory.

    Resolution order: ``MIRRORCOLLAPSE_DATA_DIR``, ``%LOCALAPPDATA%`` on
    Windows, ``$XDG_DATA_HOME``, then ``~/.local/share``.

    Returns:
        Path: Directory holding the settings file.
    """
    override = os.environ.get("MIRRORCOLLAPSE_DATA_DIR")
    if override:
        return Path(override)

    if sys.platform == "win32" and os.environ.get("LOCALAPPDATA"):
        base = Path(os.environ["LOCALAPPDATA"])
    elif os.environ.get("XDG_DATA_HOME"):
        base = Path(os.environ["XDG_DATA_HOME"])
    else:
        base = Path.home() / ".local" / "share"
    return base / PRODUCT_NAME


class SettingsFile:
    """
    Loads and saves Settings as JSON inside the application data directory.
    """

    def __init__(self, data_dir: Optional[Path] = None):
        """Initialize the settings file location, creating the directory if needed.

        Args:
            data_dir (Optional[Path]): Data directory.
                Defaults to ``default_data_dir()``.
        """
        self.data_dir = Path(data_dir) if data_dir is not None else default_data_dir()
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.path = self.data_dir / SETTINGS_FILE
        self._file_values: Dict[str, Any] = {}

    def _read_values(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(
                {
                    "message": "Unreadable settings file, using defaults",
                    "file": str(self.path),
                    "error": str(e),
                }
            )
            return {}

        if not isinstance(raw, dict):
            logger.error(
                {
                    "message": "Settings file is not a JSON object, using defaults",
                    "file": str(self.path),
                }
            )
            return {}

        values = {}
        for key, value in raw.items():
            field = Settings.model_fields.get(key)
            if field is None:
                logger.warning(
                    f"Illegal Setting: '{key}' doesn't exist or is not valid."
                )
                continue

            # Keep field constraints such as gt=0 in the per-key check
            annotation = field.annotation
            if field.metadata:
                annotation = Annotated[(field.annotation, *field.metadata)]
            try:
                values[key] = TypeAdapter(annotation).validate_python(value)
            except PydanticValidationError:
                logger.warning(f"Illegal Setting: '{key}' invalid Type")

        return values

    def load(self) -> Settings:
        """
        Load settings from the file and the environment, on top of defaults.

        Environment variables take precedence over values from the file.

        Returns:
            Settings: The loaded settings.

        Raises:
            ConfigurationError: If the combined values still fail validation
                (e.g. a malformed environment variable).
        """
        values = self._read_values()
        self._file_values = values
        try:
            settings = Settings(**values)
        except PydanticValidationError as e:
            raise ConfigurationError(f"Invalid settings: {e}") from e

        logger.debug(
            {
                "message": "Settings loaded",
                "file": str(self.path),
                "keys": sorted(values),
            }
        )
        return settings

    def save(self, settings: Settings) -> None:
        """Write every setting to the file as indented JSON.

        Settings supplied by the environment keep the value last loaded from
        the file, or their default, so they never end up on disk.

        Args:
            settings (Settings): Settings to persist.
        """
        from_environment = environment_keys()
        data = {}
        for key, value in settings.model_dump().items():
            if key in from_environment:
                field = Settings.model_fields[key]
                value = self._file_values.get(key, field.get_default())
            if isinstance(value, SecretStr):
                value = value.get_secret_value()
            data[key] = value

        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)

        logger.debug({"message": "Settings saved", "file": str(self.path)})


def configure_logging(settings: Settings) -> None:
    """Apply the logging settings to the shared application logger."""
    log_manager.configure(
        log_dir=settings.log_dir,
        development=settings.dev,
        level=settings.log_level,
    )


# Initialize logging configuration
log_manager = LogManager(app_name=PRODUCT_NAME.lower())
logger = log_manager.logger
