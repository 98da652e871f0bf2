"""Configuration loading from YAML files and environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml


def _load_dotenv(env_path: Path = Path(".env")) -> None:
    """Load a .env file if present, without overriding existing variables."""
    if not env_path.exists():
        return
    with open(env_path) as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue
            key, _, value = line.partition("=")
            os.environ.setdefault(key.strip(), value.strip())


def _split_list(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass
class BotConfig:
    instance: str = "https://dev.chatto.run"
    session: str = ""
    spaces: list[str] = field(default_factory=list)
    dms: bool = True
    # Room ids whose messages are routed as channel posts
    channels: list[str] = field(default_factory=list)
    log_level: str = "INFO"

    @classmethod
    def load(
        cls,
        config_path: str | Path | None = None,
        *,
        instance: str | None = None,
        session: str | None = None,
        spaces: list[str] | None = None,
        dms: bool | None = None,
        channels: list[str] | None = None,
        log_level: str | None = None,
    ) -> BotConfig:
        """Load config from YAML file, then overlay env vars, then explicit args."""
        data: dict = {}

        _load_dotenv()

        if config_path:
            path = Path(config_path)
            if path.exists():
                with open(path) as f:
                    data = yaml.safe_load(f) or {}

        config = cls(
            instance=data.get("instance", cls.instance),
            session=data.get("session", cls.session),
            spaces=list(data.get("spaces", [])),
            dms=data.get("dms", cls.dms),
            channels=list(data.get("channels", [])),
            log_level=str(data.get("log_level", cls.log_level)).upper(),
        )

        if env_instance := os.environ.get("CHATTO_INSTANCE"):
            config.instance = env_instance
        if env_session := os.environ.get("CHATTO_SESSION"):
            config.session = env_session
        if env_spaces := os.environ.get("CHATTO_SPACES"):
            config.spaces = _split_list(env_spaces)
        if env_dms := os.environ.get("CHATTO_DMS"):
            config.dms = env_dms.lower() not in ("0", "false", "no")
        if env_level := os.environ.get("CHATTO_LOG_LEVEL"):
            config.log_level = env_level.upper()

        # Explicit arguments (highest priority)
        if instance is not None:
            config.instance = instance
        if session is not None:
            config.session = session
        if spaces is not None:
            config.spaces = spaces
        if dms is not None:
            config.dms = dms
        if channels is not None:
            config.channels = channels
        if log_level is not None:
            config.log_level = log_level.upper()

        return config

    @property
    def all_spaces(self) -> list[str]:
        """All space IDs to subscribe to, including DM if enabled."""
        spaces = list(self.spaces)
        if self.dms and "DM" not in spaces:
            spaces.append("DM")
        return spaces

    @property
    def graphql_url(self) -> str:
        return f"{self.instance.rstrip('/')}/api/graphql"

    @property
    def ws_url(self) -> str:
        base = self.instance.rstrip("/")
        if base.startswith("https://"):
            base = "wss://" + base[8:]
        elif base.startswith("http://"):
            base = "ws://" + base[7:]
        return f"{base}/api/graphql"

    @property
    def cookie_header(self) -> str:
        return f"chatto_session={self.session}"
