from __future__ import annotations

import os
from pathlib import Path


def zorkbot_home() -> Path:
    env = os.environ.get("ZORKBOT_HOME", "").strip()
    if env:
        return Path(env).expanduser().resolve()
    return (Path.home() / ".zorkbot").resolve()


def settings_path() -> Path:
    return zorkbot_home() / "settings.yaml"
