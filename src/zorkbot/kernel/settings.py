"""Bridge settings.

Sources, lowest to highest precedence:
- built-in defaults
- settings.yaml ($ZORKBOT_HOME/settings.yaml, or an explicit path)
- environment (ZORKBOT_TOKEN or `token_env`, ZORKBOT_DEBUG)
- command-line overrides

`debug` picks which Discord channel is the live session: the test channel
in debug mode, the production channel otherwise.
"""
from __future__ import annotations

import os
import re
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml  # type: ignore

from ..paths import settings_path
from ..util.conv import coerce_bool, coerce_float

DEFAULT_STORY_PATH = "./zork1.z5"
DEFAULT_SAVE_PATH = "./state.save"
DEFAULT_TEST_CHANNEL_ID = "439428368291725314"
DEFAULT_PROD_CHANNEL_ID = "439455195894906891"
DEFAULT_COMMAND_PREFIX = "!z"
DEFAULT_TOKEN_ENV = "ZORKBOT_TOKEN"


class ConfigError(ValueError):
    """Raised when settings are missing or malformed."""


def _is_env_var_name(value: str) -> bool:
    return bool(re.fullmatch(r"[A-Z_][A-Z0-9_]*", (value or "").strip()))


@dataclass
class BridgeConfig:
    token: str = ""
    token_env: str = DEFAULT_TOKEN_ENV
    debug: bool = True
    test_channel_id: str = DEFAULT_TEST_CHANNEL_ID
    prod_channel_id: str = DEFAULT_PROD_CHANNEL_ID
    story_path: str = DEFAULT_STORY_PATH
    save_path: str = DEFAULT_SAVE_PATH
    engine: str = ""
    command_prefix: str = DEFAULT_COMMAND_PREFIX
    flush_interval: float = 2.0
    save_timeout: float = 5.0
    log_level: str = "INFO"

    @property
    def channel_id(self) -> str:
        return self.test_channel_id if self.debug else self.prod_channel_id

    def validate(self) -> None:
        if not self.token:
            hint = f" (set {self.token_env} or pass -t)" if self.token_env else " (pass -t)"
            raise ConfigError("no bot token configured" + hint)
        if not self.channel_id:
            mode = "test" if self.debug else "prod"
            raise ConfigError(f"no {mode} channel id configured")
        if not self.command_prefix:
            raise ConfigError("command_prefix must not be empty")

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "BridgeConfig":
        base = cls()
        return cls(
            token=str(d.get("token") or "").strip(),
            token_env=str(d.get("token_env") if d.get("token_env") is not None else base.token_env).strip(),
            debug=coerce_bool(d.get("debug"), default=base.debug),
            test_channel_id=str(d.get("test_channel_id") or base.test_channel_id).strip(),
            prod_channel_id=str(d.get("prod_channel_id") or base.prod_channel_id).strip(),
            story_path=str(d.get("story_path") or base.story_path),
            save_path=str(d.get("save_path") or base.save_path),
            engine=str(d.get("engine") or "").strip(),
            command_prefix=str(d.get("command_prefix") or base.command_prefix),
            flush_interval=coerce_float(d.get("flush_interval"), default=base.flush_interval),
            save_timeout=coerce_float(d.get("save_timeout"), default=base.save_timeout),
            log_level=str(d.get("log_level") or base.log_level).strip().upper(),
        )

    def to_dict(self) -> Dict[str, Any]:
        out = {f.name: getattr(self, f.name) for f in fields(self)}
        out.pop("token", None)
        return out


def load_settings(path: Optional[Path] = None) -> Dict[str, Any]:
    """Read settings.yaml. A missing file means no overrides."""
    p = Path(path) if path is not None else settings_path()
    if not p.exists():
        if path is not None:
            raise ConfigError(f"settings file not found: {p}")
        return {}
    try:
        doc = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"cannot read settings {p}: {e}") from e
    if not isinstance(doc, dict):
        raise ConfigError(f"settings {p}: expected a mapping at top level")
    return doc


def load_config(
    path: Optional[Path] = None,
    *,
    overrides: Optional[Mapping[str, Any]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> BridgeConfig:
    env = os.environ if environ is None else environ
    doc: Dict[str, Any] = dict(load_settings(path))

    debug_env = str(env.get("ZORKBOT_DEBUG", "") or "").strip()
    if debug_env:
        doc["debug"] = debug_env

    for k, v in (overrides or {}).items():
        if v is not None:
            doc[k] = v

    cfg = BridgeConfig.from_dict(doc)

    cli_token = str((overrides or {}).get("token") or "").strip()
    if cli_token:
        cfg.token = cli_token
        return cfg

    token_env_raw = cfg.token_env
    env_token = ""
    if _is_env_var_name(token_env_raw):
        env_token = str(env.get(token_env_raw, "") or "").strip()
    elif token_env_raw and not cfg.token:
        # Raw token pasted into the *_env field.
        env_token = token_env_raw
    if env_token:
        cfg.token = env_token
    return cfg
