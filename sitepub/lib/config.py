"""
Configuration loader for sitepub.

Reads a KEY=value env file (publisher.env) overlaid by the process
environment, validates it against schemas/config.schema.json and returns
a PublisherConfig.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping

from . import envparse
from . import validate
from .errors import ConfigurationError

DEFAULT_ENV_FILE = "publisher.env"

REQUIRED_KEYS = [
    "GIT_REPO_PATH",
    "GIT_REPO_URL",
    "GIT_BRANCH",
    "GITHUB_TOKEN",
    "PREVIEW_PORT",
    "PREVIEW_URL",
]

OPTIONAL_KEYS = [
    "GIT_USER_NAME",
    "GIT_USER_EMAIL",
    "SITE_DIR",
    "BUILD_COMMAND",
    "BUILD_OUTPUT_DIR",
    "BUILD_CACHE_DIRS",
    "PREVIEW_COMMAND",
    "CONTENT_PROCESS_COMMAND",
    "PUBLISH_BRANCH",
    "PUBLISH_REMOTE_URL",
    "STATE_DIR",
    "NETWORK_TIMEOUT",
    "BUILD_TIMEOUT",
    "CONTENT_TIMEOUT",
    "LOCK_TIMEOUT",
]


@dataclass
class Timeouts:
    """Upper bounds (seconds) for every external process the core runs."""
    network: int = 300
    build: int = 1800
    content: int = 600
    lock: int = 600


@dataclass
class PublisherConfig:
    """Everything the deployment core needs at startup."""
    repo_path: Path
    repo_url: str
    branch: str
    token: str = field(repr=False)
    preview_port: int
    preview_url: str
    user_name: str = "Deploy Bot"
    user_email: str = "bot@example.com"
    site_dir: Path | None = None  # Defaults to repo_path
    build_command: str = "npm run build"
    build_output_dir: str = "out"  # Relative to site_dir
    build_cache_dirs: list[str] = field(default_factory=lambda: [".next"])
    preview_command: str = "npm run dev"
    content_command: str | None = None
    publish_branch: str = "gh-pages"
    publish_remote_url: str | None = None  # Defaults to repo_url
    state_dir: Path | None = None  # Defaults to <repo parent>/.sitepub
    timeouts: Timeouts = field(default_factory=Timeouts)

    def __post_init__(self):
        self.repo_path = Path(self.repo_path)
        if self.site_dir is None:
            self.site_dir = self.repo_path
        if self.state_dir is None:
            self.state_dir = self.repo_path.parent / ".sitepub"
        if self.publish_remote_url is None:
            self.publish_remote_url = self.repo_url


def _split_list(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def config_from_mapping(env: Mapping[str, str]) -> PublisherConfig:
    """
    Validate a flat KEY=value mapping and build PublisherConfig.

    Raises:
        ConfigurationError: listing every missing or invalid key
    """
    data = {k: v for k, v in env.items() if k in REQUIRED_KEYS or k in OPTIONAL_KEYS}
    try:
        errors = validate.collect_errors(data, "config")
    except validate.ValidationError as e:
        raise ConfigurationError(str(e)) from None
    if errors:
        raise ConfigurationError("Invalid configuration: " + "; ".join(errors))

    port = int(data["PREVIEW_PORT"])
    if not 0 < port < 65536:
        raise ConfigurationError(f"Invalid configuration: PREVIEW_PORT {port} out of range")

    defaults = Timeouts()
    timeouts = Timeouts(
        network=int(data.get("NETWORK_TIMEOUT", defaults.network)),
        build=int(data.get("BUILD_TIMEOUT", defaults.build)),
        content=int(data.get("CONTENT_TIMEOUT", defaults.content)),
        lock=int(data.get("LOCK_TIMEOUT", defaults.lock)),
    )

    site_dir = data.get("SITE_DIR")
    state_dir = data.get("STATE_DIR")
    cache_dirs = data.get("BUILD_CACHE_DIRS")

    return PublisherConfig(
        repo_path=Path(data["GIT_REPO_PATH"]),
        repo_url=data["GIT_REPO_URL"],
        branch=data["GIT_BRANCH"],
        token=data["GITHUB_TOKEN"],
        preview_port=port,
        preview_url=data["PREVIEW_URL"],
        user_name=data.get("GIT_USER_NAME", "Deploy Bot"),
        user_email=data.get("GIT_USER_EMAIL", "bot@example.com"),
        site_dir=Path(site_dir) if site_dir else None,
        build_command=data.get("BUILD_COMMAND", "npm run build"),
        build_output_dir=data.get("BUILD_OUTPUT_DIR", "out"),
        build_cache_dirs=_split_list(cache_dirs) if cache_dirs is not None else [".next"],
        preview_command=data.get("PREVIEW_COMMAND", "npm run dev"),
        content_command=data.get("CONTENT_PROCESS_COMMAND") or None,
        publish_branch=data.get("PUBLISH_BRANCH", "gh-pages"),
        publish_remote_url=data.get("PUBLISH_REMOTE_URL"),
        state_dir=Path(state_dir) if state_dir else None,
        timeouts=timeouts,
    )


def load_config(env_file: Path | None = None,
                environ: Mapping[str, str] | None = None) -> PublisherConfig:
    """
    Load configuration from env_file (optional) and the process environment.

    When env_file is None, ./publisher.env is used if it exists.

    Raises:
        ConfigurationError: file unreadable, malformed, or values invalid
    """
    if environ is None:
        environ = os.environ
    if env_file is None and Path(DEFAULT_ENV_FILE).exists():
        env_file = Path(DEFAULT_ENV_FILE)

    try:
        env = envparse.layered_env(REQUIRED_KEYS + OPTIONAL_KEYS, env_file, environ)
    except (FileNotFoundError, ValueError) as e:
        raise ConfigurationError(str(e)) from None

    return config_from_mapping(env)
