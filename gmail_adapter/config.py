"""Configuration handling for the Gmail adapter."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml  # type: ignore
from dotenv import load_dotenv

logger = logging.getLogger(__name__)


# Load environment variables from .env file if it exists
load_dotenv()

GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"


def _as_flag(value: Any) -> bool:
    """Interpret a config value as a boolean; only the string "true" is true."""
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return bool(value)


def _env_flag(name: str, default: str = "false") -> bool:
    return _as_flag(os.environ.get(name, default))


@dataclass
class OAuth2Config:
    """OAuth2 client credentials for the Gmail REST API."""

    client_id: str
    client_secret: str
    refresh_token: Optional[str] = None
    access_token: Optional[str] = None
    token_uri: str = GOOGLE_TOKEN_URI

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Optional["OAuth2Config"]:
        """Create OAuth2 configuration from dictionary."""
        data = data or {}

        # OAuth2 credentials can be specified in environment variables
        client_id = data.get("client_id") or os.environ.get("GMAIL_CLIENT_ID")
        client_secret = data.get("client_secret") or os.environ.get(
            "GMAIL_CLIENT_SECRET"
        )
        refresh_token = data.get("refresh_token") or os.environ.get(
            "GMAIL_REFRESH_TOKEN"
        )

        if not client_id or not client_secret:
            return None

        return cls(
            client_id=client_id,
            client_secret=client_secret,
            refresh_token=refresh_token,
            access_token=data.get("access_token"),
            token_uri=data.get("token_uri", GOOGLE_TOKEN_URI),
        )


@dataclass
class ExtractionConfig:
    """Defaults for forwarded-content extraction."""

    max_depth: int = 3
    include_html: bool = False

    def __post_init__(self):
        if not (1 <= self.max_depth <= 10):
            raise ValueError(
                f"Invalid max_depth: {self.max_depth}. Must be between 1 and 10"
            )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ExtractionConfig":
        """Create ExtractionConfig from dictionary."""
        data = data or {}
        return cls(
            max_depth=int(data.get("max_depth", 3)),
            include_html=_as_flag(data.get("include_html", False)),
        )


@dataclass
class ServerConfig:
    """Gmail adapter configuration."""

    oauth2: Optional[OAuth2Config] = None
    allow_direct_send: bool = False
    default_max_results: int = 10
    user_id: str = "me"
    extraction: ExtractionConfig = field(default_factory=ExtractionConfig)

    def __post_init__(self):
        """Validate server configuration."""
        if not (1 <= self.default_max_results <= 100):
            raise ValueError(
                f"Invalid default_max_results: {self.default_max_results}. "
                "Must be between 1 and 100"
            )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ServerConfig":
        """Create configuration from dictionary."""
        return cls(
            oauth2=OAuth2Config.from_dict(data.get("oauth2", {})),
            allow_direct_send=_as_flag(data.get("allow_direct_send", False)),
            default_max_results=int(data.get("default_max_results", 10)),
            user_id=data.get("user_id", "me"),
            extraction=ExtractionConfig.from_dict(data.get("extraction", {})),
        )


def load_config(config_path: Optional[str] = None) -> ServerConfig:
    """Load configuration from file or environment variables.

    Args:
        config_path: Path to configuration file

    Returns:
        Server configuration

    Raises:
        ValueError: If no OAuth2 client credentials are configured
    """
    default_locations = [
        Path("config/config.yaml"),
        Path("config/config.yml"),
        Path("config.yaml"),
        Path("config.yml"),
        Path("~/.config/gmail-adapter/config.yaml"),
    ]

    config_data: Dict[str, Any] = {}

    if config_path:
        try:
            with open(config_path, "r") as f:
                config_data = yaml.safe_load(f) or {}
            logger.info(f"Loaded configuration from {config_path}")
        except FileNotFoundError:
            logger.warning(f"Configuration file not found: {config_path}")
    else:
        for path in default_locations:
            expanded_path = path.expanduser()
            if expanded_path.exists():
                with open(expanded_path, "r") as f:
                    config_data = yaml.safe_load(f) or {}
                logger.info(f"Loaded configuration from {expanded_path}")
                break

    if not config_data:
        logger.info("No configuration file found, using environment variables")
        config_data = {
            "oauth2": {},
            "allow_direct_send": _env_flag("GMAIL_ALLOW_DIRECT_SEND"),
            "default_max_results": int(os.environ.get("GMAIL_MAX_RESULTS", "10")),
            "extraction": {
                "max_depth": int(os.environ.get("GMAIL_FORWARD_MAX_DEPTH", "3")),
                "include_html": _env_flag("GMAIL_INCLUDE_HTML"),
            },
        }

    config = ServerConfig.from_dict(config_data)
    if config.oauth2 is None:
        raise ValueError(
            "Missing Gmail OAuth2 credentials. Set GMAIL_CLIENT_ID, "
            "GMAIL_CLIENT_SECRET and GMAIL_REFRESH_TOKEN or provide an "
            "'oauth2' section in the configuration file"
        )
    return config
