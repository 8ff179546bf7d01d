"""CLI entrypoint for stormworker."""
from __future__ import annotations
import argparse
import os
import pathlib
import sys
from importlib import import_module

from .components import Bolt, Spout
from .core.codec import FrameCodec
from .core.config_loader import load_settings
from .core.errors import ConfigError, StormWorkerError
from .core.logging import get_logger

ROLES = {"spout": Spout, "bolt": Bolt}


def build_parser():
    p = argparse.ArgumentParser(prog="stormworker", description="Multilang spout/bolt worker")
    sub = p.add_subparsers(dest="command")
    run = sub.add_parser("run", help="Run a spout or bolt class against the host pipe")
    run.add_argument("--role", choices=sorted(ROLES), required=True)
    run.add_argument("--entry", required=True, help="Component class as 'module:Class'")
    run.add_argument("--input", help="Read frames from this file instead of stdin")
    run.add_argument("--config", help="Settings file (YAML)")
    run.add_argument(
        "--log-dir",
        help="Directory to write log file (stormworker.log). If not set, only stderr is used.",
    )
    check = sub.add_parser("check-frames", help="Validate a file of framed messages")
    check.add_argument("path")
    check.add_argument("--strict", action="store_true", help="Require the sentinel line to be exactly 'end'")
    return p


def import_entry(entry: str):
    if ":" not in entry:
        raise ConfigError("entry must be 'module:Class'")
    module_name, class_name = entry.split(":", 1)
    # allow components that live next to the topology's resources dir
    if os.getcwd() not in sys.path:
        sys.path.insert(0, os.getcwd())
    try:
        mod = import_module(module_name)
    except ImportError as e:
        raise ConfigError(f"cannot import {module_name}: {e}") from e
    try:
        return getattr(mod, class_name)
    except AttributeError:
        raise ConfigError(f"{module_name} has no attribute {class_name}") from None


def _run(args) -> int:
    log = get_logger("stormworker.cli")
    settings = load_settings(args.config)
    if settings.log_level:
        get_logger("stormworker.core").setLevel(settings.log_level)
        log.setLevel(settings.log_level)
    cls = import_entry(args.entry)
    base = ROLES[args.role]
    if not (isinstance(cls, type) and issubclass(cls, base)):
        raise ConfigError(f"{args.entry} is not a {base.__name__} subclass")
    component = cls(settings=settings)
    if args.input:
        component.conn.use_input(args.input)
    log.info(f"running {args.role} {args.entry}")
    component.run()
    return 0


def _check_frames(args) -> int:
    path = pathlib.Path(args.path)
    count = 0
    with path.open("r", encoding="utf-8") as f:
        codec = FrameCodec(f, sys.stdout, strict_sentinel=args.strict)
        while True:
            payload, eof = codec.read_frame()
            if payload is not None:
                count += 1
            if eof:
                break
    print(f"{path}: {count} frame(s) OK")
    return 0


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command not in ("run", "check-frames"):
        parser.print_help()
        return 1
    # Setup log directory env before loggers attach their file handlers
    if getattr(args, "log_dir", None):
        log_dir_path = pathlib.Path(args.log_dir)
        log_dir_path.mkdir(parents=True, exist_ok=True)
        os.environ.setdefault("STORMWORKER_LOG_DIR", str(log_dir_path.resolve()))
        get_logger("stormworker.core")
        get_logger("stormworker.components")
    try:
        if args.command == "run":
            return _run(args)
        return _check_frames(args)
    except StormWorkerError as e:
        get_logger("stormworker.cli").error(f"{type(e).__name__}: {e}")
        return 1
    except OSError as e:
        get_logger("stormworker.cli").error(f"{e}")
        return 1


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
