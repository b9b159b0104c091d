"""
Configuration management for clawtop.

Loads board settings from CLAWTOP_* environment variables or an optional
YAML file, and resolves where OpenClaw keeps its config and state files.
Validates all settings and provides typed access.
"""

import os
from pathlib import Path
from typing import List, Optional, Union

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Oldest OpenClaw release whose JSON output clawtop understands
MINIMUM_OPENCLAW_VERSION = "2026.2.9"

DEFAULT_ACTIVE_WINDOW_MINUTES = 60
DEFAULT_REFRESH_SECONDS = 10


class BoardConfig(BaseSettings):
    """clawtop configuration loaded from environment."""

    # ========================================================================
    # OpenClaw CLI
    # ========================================================================

    openclaw_bin: str = Field(
        default="openclaw",
        description="OpenClaw executable name or path"
    )

    minimum_openclaw_version: str = Field(
        default=MINIMUM_OPENCLAW_VERSION,
        description="Oldest supported OpenClaw version"
    )

    # ========================================================================
    # Timeouts (seconds)
    # ========================================================================

    json_timeout: float = Field(
        default=10.0,
        gt=0,
        description="Timeout for JSON-producing OpenClaw commands"
    )

    text_timeout: float = Field(
        default=8.0,
        gt=0,
        description="Timeout for quick introspection commands (--version, --help)"
    )

    git_timeout: float = Field(
        default=4.0,
        gt=0,
        description="Timeout for each git command during repo drift checks"
    )

    kill_grace: float = Field(
        default=0.25,
        ge=0,
        description="Seconds between SIGTERM and SIGKILL on timeout"
    )

    # ========================================================================
    # Board
    # ========================================================================

    active_window_minutes: int = Field(
        default=DEFAULT_ACTIVE_WINDOW_MINUTES,
        gt=0,
        description="Sessions active within this many minutes count as active"
    )

    refresh_seconds: float = Field(
        default=DEFAULT_REFRESH_SECONDS,
        gt=0,
        description="Refresh interval for the live board"
    )

    # ========================================================================
    # Logging
    # ========================================================================

    log_level: str = Field(
        default="WARNING",
        description="Log level"
    )

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v):
        v = v.upper()
        if v not in ['DEBUG', 'INFO', 'WARNING', 'ERROR']:
            raise ValueError('log_level must be DEBUG, INFO, WARNING, or ERROR')
        return v

    @field_validator('openclaw_bin')
    @classmethod
    def validate_openclaw_bin(cls, v):
        if not v.strip():
            raise ValueError('openclaw_bin must not be empty')
        return v.strip()

    model_config = SettingsConfigDict(
        env_prefix='CLAWTOP_',
        validate_assignment=True,
        extra='forbid'  # Reject unknown fields
    )

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "BoardConfig":
        """
        Load configuration from a YAML file.

        Values in the file take precedence over CLAWTOP_* environment
        variables; anything the file omits still comes from the
        environment or the defaults.

        Raises:
            FileNotFoundError: If the file does not exist
            ValueError: If the file is not a YAML mapping or has invalid values
        """
        with open(path, 'r') as f:
            data = yaml.safe_load(f) or {}

        if not isinstance(data, dict):
            raise ValueError(f'{path} must contain a YAML mapping')

        return cls(**data)


class OpenClawEnvironment(BaseSettings):
    """Environment variables OpenClaw itself uses to locate its files."""

    openclaw_config_path: Optional[str] = None
    openclaw_profile: Optional[str] = None
    openclaw_state_dir: Optional[str] = None
    xdg_config_home: Optional[str] = None
    xdg_state_home: Optional[str] = None

    model_config = SettingsConfigDict(extra='ignore')

    @property
    def profile_dir(self) -> Optional[Path]:
        if not self.openclaw_profile:
            return None
        return Path.home() / f".openclaw-{self.openclaw_profile}"

    @property
    def config_root(self) -> Path:
        return Path(self.xdg_config_home) if self.xdg_config_home else Path.home() / ".config"

    @property
    def state_root(self) -> Path:
        return Path(self.xdg_state_home) if self.xdg_state_home else Path.home() / ".local" / "state"


def _unique_paths(candidates: List[Optional[Union[str, Path]]]) -> List[Path]:
    unique: List[Path] = []
    for candidate in candidates:
        if not candidate:
            continue
        path = Path(candidate)
        if path not in unique:
            unique.append(path)
    return unique


def resolve_openclaw_config_paths(env: Optional[OpenClawEnvironment] = None) -> List[Path]:
    """
    Candidate locations of openclaw.json, highest priority first.

    Order: $OPENCLAW_CONFIG_PATH, ~/.openclaw-<profile>/openclaw.json,
    $XDG_CONFIG_HOME/openclaw/openclaw.json, ~/.openclaw/openclaw.json.
    """
    env = env or OpenClawEnvironment()
    profile_dir = env.profile_dir

    return _unique_paths([
        env.openclaw_config_path,
        profile_dir / "openclaw.json" if profile_dir else None,
        env.config_root / "openclaw" / "openclaw.json",
        Path.home() / ".openclaw" / "openclaw.json",
    ])


def resolve_openclaw_state_roots(env: Optional[OpenClawEnvironment] = None) -> List[Path]:
    """
    Candidate OpenClaw state directories, highest priority first.

    Order: $OPENCLAW_STATE_DIR, ~/.openclaw-<profile>,
    $XDG_STATE_HOME/openclaw, ~/.openclaw.
    """
    env = env or OpenClawEnvironment()

    return _unique_paths([
        env.openclaw_state_dir,
        env.profile_dir,
        env.state_root / "openclaw",
        Path.home() / ".openclaw",
    ])


def load_config(config_file: Optional[str] = None) -> BoardConfig:
    """
    Load configuration from a YAML file if given, else from environment.

    Returns:
        BoardConfig: Validated configuration

    Raises:
        ValueError: If settings are invalid
    """
    config_file = config_file or os.environ.get('CLAWTOP_CONFIG_FILE') or None
    if config_file:
        return BoardConfig.from_file(config_file)
    return BoardConfig()
