from __future__ import annotations
import os
import json
import logging
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv

from rangedl.core.errors import ConfigurationError

logger = logging.getLogger("rangedl.config")

ENV_PREFIX = "RANGEDL_"


@dataclass(frozen=True)
class TransferConfig:
    host: str = "127.0.0.1"
    port: int = 8080
    chunk_size: int = 64 * 1024
    concurrency: int = 4
    max_chunk_retries: int = 2
    max_batch_retries: int = 3
    expected_checksum: Optional[str] = None
    connect_timeout: float = 3.0
    read_timeout: float = 5.0
    write_timeout: float = 2.0
    base_delay: float = 0.05

    @classmethod
    def field_names(cls) -> list:
        return [f.name for f in fields(cls)]

    @classmethod
    def from_args(cls, args: Optional[dict] = None) -> "TransferConfig":
        if args is None:
            return cls()
        data = {}
        for field_name in cls.field_names():
            if args.get(field_name) is not None:
                data[field_name] = coerce_value(field_name, args[field_name])
        return cls(**data)

    @classmethod
    def from_env(cls, environ: Optional[dict] = None) -> "TransferConfig":
        """Builds a config from RANGEDL_* variables; unset fields keep defaults."""
        return cls().merged(**env_overrides(environ))

    def merged(self, **overrides) -> "TransferConfig":
        data = {k: coerce_value(k, v) for k, v in overrides.items() if v is not None}
        return replace(self, **data)

    def validate(self) -> "TransferConfig":
        if not self.host:
            raise ConfigurationError("host must not be empty")
        if not 1 <= self.port <= 65535:
            raise ConfigurationError(f"port out of range: {self.port}")
        if self.chunk_size <= 0:
            raise ConfigurationError(f"chunk_size must be positive: {self.chunk_size}")
        if self.concurrency <= 0:
            raise ConfigurationError(f"concurrency must be positive: {self.concurrency}")
        if self.max_chunk_retries < 0 or self.max_batch_retries < 0:
            raise ConfigurationError("retry counts must not be negative")
        for name in ("connect_timeout", "read_timeout", "write_timeout"):
            if getattr(self, name) <= 0:
                raise ConfigurationError(f"{name} must be positive")
        if self.base_delay < 0:
            raise ConfigurationError("base_delay must not be negative")
        return self


_DEFAULTS = TransferConfig()


def coerce_value(name: str, value: Any) -> Any:
    """Converts a raw (usually string) value to the type of the field's default."""
    if name not in _DEFAULTS.field_names():
        raise ConfigurationError(f"Unknown config key: {name}")
    default = getattr(_DEFAULTS, name)
    try:
        if isinstance(default, int):
            return int(value)
        if isinstance(default, float):
            return float(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"Invalid value for {name}: {value!r}")
    return str(value)


def env_overrides(environ: Optional[dict] = None) -> Dict[str, Any]:
    if environ is None:
        load_dotenv()
        environ = os.environ
    overrides = {}
    for name in TransferConfig.field_names():
        raw = environ.get(ENV_PREFIX + name.upper())
        if raw not in (None, ""):
            overrides[name] = raw
    return overrides


class ConfigRepository:
    """
    Persisted user settings.
    Saves to 'config.json' inside the given directory.
    """
    def __init__(self, config_dir: Path):
        config_dir.mkdir(parents=True, exist_ok=True)
        self.config_path = config_dir / "config.json"
        self._cache: Dict[str, Any] = {}
        self._load()

    def _load(self):
        if not self.config_path.exists():
            self._cache = {}
            return

        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            # Corrupt file: start over rather than refuse to run
            logger.warning(f"Ignoring unreadable config {self.config_path}: {e}")
            data = {}
        if not isinstance(data, dict):
            logger.warning(f"Ignoring config {self.config_path}: expected a JSON object")
            data = {}
        self._cache = data

    def save(self):
        with open(self.config_path, 'w', encoding='utf-8') as f:
            json.dump(self._cache, f, indent=2, sort_keys=True)

    def get(self, key: str, default=None):
        return self._cache.get(key, default)

    def set(self, key: str, value):
        self._cache[key] = coerce_value(key, value)
        self.save()

    def unset(self, key: str):
        if self._cache.pop(key, None) is not None:
            self.save()

    def all(self) -> Dict[str, Any]:
        return dict(self._cache)


def load_config(repo: Optional[ConfigRepository] = None, environ: Optional[dict] = None, **overrides) -> TransferConfig:
    """Defaults < saved settings < environment < explicit overrides."""
    config = TransferConfig()
    if repo is not None:
        config = config.merged(**repo.all())
    config = config.merged(**env_overrides(environ))
    return config.merged(**overrides).validate()
