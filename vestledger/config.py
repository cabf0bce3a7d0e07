"""
VestLedger configuration.

Resolution order (later wins):
    1. EngineConfig defaults
    2. YAML file (explicit path, or ./vestledger.yaml if present)
    3. VESTLEDGER_* environment variables

Example vestledger.yaml:

    namespace: mainnet
    journal_path: /var/lib/vestledger/journal.jsonl
    key_path: /etc/vestledger/signer.pem
    max_id_length: 30
    log_level: INFO
"""

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Optional

import yaml


DEFAULT_CONFIG_FILE = "vestledger.yaml"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

_ENV_OVERRIDES = {
    "VESTLEDGER_NAMESPACE": "namespace",
    "VESTLEDGER_JOURNAL":   "journal_path",
    "VESTLEDGER_KEY":       "key_path",
    "VESTLEDGER_LOG_LEVEL": "log_level",
}


class ConfigError(ValueError):
    """Raised when configuration is malformed"""
    pass


@dataclass(frozen=True)
class EngineConfig:
    namespace:     str = "vestledger"
    journal_path:  str = ".vestledger/journal.jsonl"
    key_path:      str = ".vestledger/signer.pem"
    max_id_length: int = 30
    log_level:     str = "WARNING"

    def validate(self) -> "EngineConfig":
        for f in fields(self):
            value = getattr(self, f.name)
            expected = f.type
            if not isinstance(value, expected) or isinstance(value, bool):
                raise ConfigError(
                    f"{f.name} must be {expected.__name__}, got {type(value).__name__}"
                )
            if expected is str and not value:
                raise ConfigError(f"{f.name} must be non-empty")
        if self.max_id_length <= 0:
            raise ConfigError("max_id_length must be positive")
        if self.log_level.upper() not in LOG_LEVELS:
            raise ConfigError(f"log_level must be one of {list(LOG_LEVELS)}, got {self.log_level!r}")
        return self


def load_config(path: Optional[Path] = None) -> EngineConfig:
    """
    Build an EngineConfig.

    Raises:
        FileNotFoundError — an explicit path does not exist
        ConfigError       — unknown keys or wrong value types
    """
    config = EngineConfig()

    if path is None and Path(DEFAULT_CONFIG_FILE).exists():
        path = Path(DEFAULT_CONFIG_FILE)

    if path is not None:
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ConfigError(f"{path} must contain a mapping at top level")

        known   = {f.name for f in fields(EngineConfig)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"Unknown config keys in {path}: {unknown}")
        config = replace(config, **data)

    env = {
        attr: os.environ[var]
        for var, attr in _ENV_OVERRIDES.items()
        if os.environ.get(var)
    }
    if env:
        config = replace(config, **env)

    return config.validate()
