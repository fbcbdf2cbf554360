"""CLI for atomic-replace."""

import argparse
import stat
import sys
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path

import questionary
from rich.console import Console

from . import config as cfg
from .errors import NotFoundError, UnsupportedError
from .file_io import atomic_write_bytes
from .logging_setup import configure
from .metadata import Found, read_metadata, num_hardlinks
from .tmpname import make_tmpname

console = Console(stderr=True)


class _NoTTYError(SystemExit):
    def __init__(self, flag: str) -> None:
        super().__init__(f"No TTY detected. Use {flag} to run non-interactively.")


def _is_tty() -> bool:
    return sys.stdin.isatty()


def _require_tty(flag: str) -> None:
    if not _is_tty():
        raise _NoTTYError(flag)


def _confirm(message: str, *, default: bool = False) -> bool:
    _require_tty("--yes")
    result = questionary.confirm(message, default=default).ask()
    if result is None:
        raise SystemExit(1)
    return result


def _octal(value: str) -> int:
    try:
        return int(value, 8)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not an octal mode: {value!r}")


def cmd_write(args: argparse.Namespace) -> int:
    config = cfg.load_config()
    target = Path(args.target)

    if target.exists() and not args.append and not args.yes:
        if not _confirm(f"Replace {target}?"):
            console.print("[dim]Aborted.[/dim]")
            return 1

    data = sys.stdin.buffer.read()
    scratch_dir = Path(args.scratch_dir) if args.scratch_dir else cfg.resolve_scratch_dir(config)
    try:
        written = atomic_write_bytes(
            target,
            data,
            append=args.append,
            override_mode=args.mode,
            scratch_dir=scratch_dir,
            touch=args.touch,
            fsync=args.fsync or bool(config.get("fsync", False)),
        )
    except OSError as e:
        console.print(f"[red]Failed to write {target}: {e}[/red]")
        return 1

    console.print(f"[green]Wrote[/green] {written} bytes to {target}")
    return 0


def cmd_tmpname(args: argparse.Namespace) -> int:
    basename = args.basename if args.suffix is None else (args.basename, args.suffix)
    print(make_tmpname(basename))
    return 0


def cmd_stat(args: argparse.Namespace) -> int:
    from rich.table import Table

    path = Path(args.path)
    result = read_metadata(path)
    if not isinstance(result, Found):
        console.print(f"[yellow]{path}: not found[/yellow]")
        return 1

    try:
        nlink = str(num_hardlinks(path))
    except (NotFoundError, UnsupportedError):
        nlink = "(unsupported)"

    snap = result.snapshot
    table = Table(title=str(path))
    table.add_column("Field")
    table.add_column("Value")
    table.add_row("uid", str(snap.uid))
    table.add_row("gid", str(snap.gid))
    table.add_row("mode", f"{stat.S_IMODE(snap.mode):04o}")
    table.add_row("links", nlink)
    console.print(table)
    return 0


def _resolve_scope(args: argparse.Namespace) -> cfg.Scope:
    if getattr(args, "project", False):
        return cfg.Scope.PROJECT
    return cfg.Scope.GLOBAL


def cmd_config(args: argparse.Namespace) -> int:
    from rich.table import Table

    if args.set:
        scope = _resolve_scope(args)
        data = cfg.load_raw_config(scope)
        for item in args.set:
            key, sep, value = item.partition("=")
            if not sep or not key:
                console.print(f"[red]Expected KEY=VALUE, got {item!r}[/red]")
                return 1
            parsed = cfg.parse_bool(value) if key in ("debug", "fsync") else value
            if parsed is None:
                console.print(f"[red]Invalid boolean for {key}: {value!r}[/red]")
                return 1
            data[key] = parsed
        cfg.save_config(data, scope)
        console.print(f"[green]Saved.[/green] {cfg.config_path(scope)}")
        return 0

    merged = cfg.load_config()
    table = Table(title="atomic-replace config")
    table.add_column("Key")
    table.add_column("Value")
    table.add_row("scratch_dir", str(cfg.resolve_scratch_dir(merged)))
    table.add_row("log_file", str(cfg.resolve_log_file(merged)))
    table.add_row("debug", str(bool(merged.get("debug", False))))
    table.add_row("fsync", str(bool(merged.get("fsync", False))))
    console.print(table)
    return 0


def cmd_version(_args: argparse.Namespace) -> int:
    try:
        console.print(version("atomic-replace"))
    except PackageNotFoundError:
        console.print("(not installed)")
    return 0


def _add_scope_flags(parser: argparse.ArgumentParser) -> None:
    group = parser.add_mutually_exclusive_group()
    group.add_argument("--global", dest="global_", action="store_true",
                       help="Use global scope")
    group.add_argument("--project", action="store_true",
                       help="Use project scope")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="atomic-replace",
        description="Atomically replace files while keeping owner and permissions",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command")

    p_write = sub.add_parser("write", help="Atomically write stdin to a file")
    p_write.add_argument("target", help="File to replace")
    p_write.add_argument("--append", "-a", action="store_true",
                         help="Append to the current content instead of replacing it")
    p_write.add_argument("--mode", type=_octal,
                         help="Permission bits for the result (octal, masked with 0666)")
    p_write.add_argument("--scratch-dir", help="Directory for the temporary file")
    p_write.add_argument("--touch", action="store_true",
                         help="Create an empty placeholder while writing a new file")
    p_write.add_argument("--fsync", action="store_true", help="fsync before installing")
    p_write.add_argument("--yes", "-y", action="store_true",
                         help="Replace an existing file without confirmation")

    p_tmpname = sub.add_parser("tmpname", help="Print a temporary file name")
    p_tmpname.add_argument("basename")
    p_tmpname.add_argument("--suffix", help="Explicit suffix; BASENAME becomes the prefix")

    p_stat = sub.add_parser("stat", help="Show owner, mode and link count")
    p_stat.add_argument("path")

    p_config = sub.add_parser("config", help="Show or update configuration")
    _add_scope_flags(p_config)
    p_config.add_argument("--set", action="append", metavar="KEY=VALUE",
                          help="Set a config value (repeatable)")

    sub.add_parser("version", help="Show version")
    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        sys.exit(0)

    config = cfg.load_config()
    configure(config, debug=args.debug)

    commands = {
        "write": cmd_write,
        "tmpname": cmd_tmpname,
        "stat": cmd_stat,
        "config": cmd_config,
        "version": cmd_version,
    }
    sys.exit(commands[args.command](args))


if __name__ == "__main__":
    main()
