from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Any, Dict, Optional

from . import __version__
from .kernel.settings import BridgeConfig, ConfigError, load_config
from .kernel.snapshot import SnapshotStore
from .util.obslog import setup_root_json_logging


def _add_config_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--config", default="", help="Path to settings.yaml (default: $ZORKBOT_HOME/settings.yaml)")
    p.add_argument("--story", default=None, help="Story file (program image)")
    p.add_argument("--save", default=None, help="Snapshot file")
    p.add_argument("--log-level", default=None, help="Log level (DEBUG, INFO, ...)")


def _load(args: argparse.Namespace) -> BridgeConfig:
    overrides: Dict[str, Any] = {
        "token": getattr(args, "token", None),
        "debug": getattr(args, "debug", None),
        "engine": getattr(args, "engine", None),
        "story_path": args.story,
        "save_path": args.save,
        "log_level": args.log_level,
    }
    config_path = Path(args.config) if args.config else None
    return load_config(config_path, overrides=overrides)


def cmd_run(args: argparse.Namespace) -> int:
    from .ports.chat.bridge import start_bridge

    cfg = _load(args)
    setup_root_json_logging(component="zorkbot", level=cfg.log_level)
    return start_bridge(cfg)


def cmd_config(args: argparse.Namespace) -> int:
    cfg = _load(args)
    doc = cfg.to_dict()
    doc["channel_id"] = cfg.channel_id
    doc["token_set"] = bool(cfg.token)
    print(json.dumps(doc, ensure_ascii=False, indent=2))
    return 0


def cmd_reset(args: argparse.Namespace) -> int:
    cfg = _load(args)
    store = SnapshotStore(cfg.save_path)
    if not store.exists():
        print(f"no snapshot at {store.path}")
        return 0
    store.discard()
    print(f"removed {store.path}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="zorkbot", description="Play an interactive-fiction story over Discord")
    parser.add_argument("--version", action="version", version=f"zorkbot {__version__}")
    sub = parser.add_subparsers(dest="cmd", required=True)

    p_run = sub.add_parser("run", help="Connect to Discord and run the story")
    p_run.add_argument("-t", "--token", default=None, help="Bot token")
    mode = p_run.add_mutually_exclusive_group()
    mode.add_argument("-d", "--debug", dest="debug", action="store_const", const=True, default=None,
                      help="Use the test channel (default)")
    mode.add_argument("--prod", dest="debug", action="store_const", const=False,
                      help="Use the production channel")
    p_run.add_argument("--engine", default=None, help="Interpreter factory, as module:attr")
    _add_config_args(p_run)
    p_run.set_defaults(func=cmd_run)

    p_config = sub.add_parser("config", help="Print the resolved configuration (token hidden)")
    p_config.add_argument("--prod", dest="debug", action="store_const", const=False, default=None)
    _add_config_args(p_config)
    p_config.set_defaults(func=cmd_config)

    p_reset = sub.add_parser("reset", help="Delete the saved snapshot so the next run starts fresh")
    _add_config_args(p_reset)
    p_reset.set_defaults(func=cmd_reset)

    return parser


def main(argv: Optional[list] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        return int(args.func(args))
    except ConfigError as e:
        print(f"[error] {e}")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
