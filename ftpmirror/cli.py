#!/usr/bin/env python3
"""
ftpmirror  —  one-way FTP/SFTP mirror with a live terminal dashboard
=====================================================================

Subcommands:
  init      Create a .ftpmirror config file in the current directory.
  run       Open the dashboard for the nearest .ftpmirror config.
  sync      Run one headless sync and print a summary.

Run 'ftpmirror <subcommand> --help' for more details.
"""
import argparse
import sys
from pathlib import Path


# ── init ─────────────────────────────────────────────────────────────────────

def cmd_init(args):
    """Create a .ftpmirror profile file in the current directory."""
    from ftpmirror import config as _cfg

    target = Path.cwd() / _cfg.CONFIG_FILE

    if target.exists() and not args.force:
        print(f"error: {_cfg.CONFIG_FILE} already exists in {Path.cwd()}", file=sys.stderr)
        print("Use --force to overwrite.", file=sys.stderr)
        sys.exit(1)

    g_defaults = _cfg.load_global_config().get("defaults", {}) or {}
    interactive = sys.stdin.isatty()

    def resolve(value, key, label, default):
        value = value or g_defaults.get(key, default)
        if not getattr(args, key, None) and interactive:
            entered = input(f"{label} [{value}]: ").strip()
            if entered:
                value = entered
        return value

    protocol = (args.protocol or g_defaults.get("protocol", _cfg.DEFAULT_PROTOCOL)).lower()
    if protocol not in _cfg.PROTOCOLS:
        print(f"error: protocol must be one of {', '.join(_cfg.PROTOCOLS)}.", file=sys.stderr)
        sys.exit(1)

    host = resolve(args.host, "host", "Server hostname", "ftp.example.com")
    user = resolve(args.user, "user", "User", "anonymous")
    port = resolve(args.port, "port", "Port", _cfg.DEFAULT_PORTS[protocol])
    try:
        port = int(port)
    except ValueError:
        print("error: port must be a number.", file=sys.stderr)
        sys.exit(1)

    local_root = str(Path(args.local or Path.cwd()).expanduser())
    remote_root = resolve(args.remote, "remote", "Remote path", "/")
    staging_root = args.staging or str(Path(local_root) / "patch")

    # Always use forward slashes in paths to avoid YAML backslash escape issues
    local_root_yaml = local_root.replace("\\", "/")
    staging_root_yaml = staging_root.replace("\\", "/")

    def _yq(value) -> str:
        """Wrap a string in YAML single quotes, escaping embedded single quotes."""
        return "'" + str(value).replace("'", "''") + "'"

    lines = [
        "# .ftpmirror — ftpmirror project configuration",
        "#",
        "# profiles: list of mirror profiles for this project.",
        "# Files under remote_root are downloaded into staging_root when missing",
        "# or different from the copy in local_root.",
        "profiles:",
        f"  - name: {args.profile or 'default'}",
        f"    protocol: {protocol}",
        f"    host: {_yq(host)}",
        f"    port: {port}",
        f"    user: {_yq(user)}",
        "    password: ''",
        f"    encoding: {_cfg.DEFAULT_ENCODING}",
        f"    local_root: {_yq(local_root_yaml)}",
        f"    remote_root: {_yq(remote_root)}",
        f"    staging_root: {_yq(staging_root_yaml)}",
    ]
    content = "\n".join(lines) + "\n"

    if args.dry_run:
        print(f"[dry-run] Would write {target}:")
        print(content)
        return

    target.write_text(content, encoding="utf-8")
    print(f"Created {target}")
    if args.verbose:
        print(content)


def _load(args):
    from ftpmirror.config import load_config
    from ftpmirror.errors import ConfigError

    try:
        return load_config(Path(args.config) if args.config else None, args.profile)
    except ConfigError as exc:
        print(f"error: {exc}", file=sys.stderr)
        if not args.config:
            print("Run 'ftpmirror init' to create one.", file=sys.stderr)
        sys.exit(1)


# ── run ──────────────────────────────────────────────────────────────────────

def cmd_run(args):
    """Open the dashboard."""
    from ftpmirror.core.controller import SyncController
    from ftpmirror.ui.dashboard import Dashboard
    from ftpmirror.utils.logging import set_verbose

    set_verbose(args.verbose)
    config = _load(args)
    dashboard = Dashboard(config)
    controller = SyncController(config, observer=dashboard)
    dashboard.run(controller)


# ── sync ─────────────────────────────────────────────────────────────────────

def cmd_sync(args):
    """Run one traversal without the dashboard."""
    from ftpmirror.core.controller import SyncController
    from ftpmirror.utils.logging import error, log, set_verbose, warn

    set_verbose(args.verbose)
    config = _load(args)

    print(f"\n{'=' * 64}")
    print(f"  Mirror  {config.endpoint}:{config.remote_root}")
    print(f"   →   {config.staging_root}  (compared with {config.local_root})")
    print(f"{'=' * 64}\n")

    controller = SyncController(config)
    controller.start()
    try:
        controller.wait()
    except KeyboardInterrupt:
        print()
        warn("Interrupted by user.")
        controller.quit()
        sys.exit(130)

    snap = controller.snapshot()
    print()
    print(f"{'─' * 64}")
    print(" SUMMARY")
    print(f"  Elapsed      : {snap.elapsed_time}")
    print(f"  Processed    : {snap.file_counter} ({snap.processing_rate})")
    print(f"  Synchronized : {snap.sync_counter}")
    print(f"{'─' * 64}")

    if controller.last_error is not None:
        error(f"Sync aborted: {controller.last_error}")
        sys.exit(1)
    log("done ✓")


# ── main ──────────────────────────────────────────────────────────────────────

def main(argv=None):
    """CLI entry point for ftpmirror"""
    parser = argparse.ArgumentParser(
        prog="ftpmirror",
        description="One-way FTP/SFTP mirror with a live terminal dashboard",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")

    # ── init ──────────────────────────────────────────────────────────────────
    init_p = subparsers.add_parser(
        "init",
        help="Create a .ftpmirror config file in the current directory",
        description="Create a .ftpmirror YAML config file for this project.",
    )
    init_p.add_argument("--host", metavar="HOST", help="Remote server hostname or IP")
    init_p.add_argument("--port", type=int, metavar="N",
                        help="Server port (default: 21, 22 for sftp)")
    init_p.add_argument("--user", metavar="NAME", help="Login name (default: anonymous)")
    init_p.add_argument("--protocol", choices=["ftp", "ftps", "sftp"],
                        help="Transfer protocol (default: ftp)")
    init_p.add_argument("--local", metavar="PATH",
                        help="Local root directory (default: current directory)")
    init_p.add_argument("--remote", metavar="PATH", help="Remote root path")
    init_p.add_argument("--staging", metavar="PATH",
                        help="Staging directory (default: <local>/patch)")
    init_p.add_argument("--profile", metavar="NAME", default="default",
                        help="Profile name to create (default: default)")
    init_p.add_argument("--force", action="store_true",
                        help="Overwrite existing .ftpmirror")
    init_p.add_argument("-n", "--dry-run", action="store_true",
                        help="Preview without writing files")
    init_p.add_argument("-v", "--verbose", action="store_true",
                        help="Show extra output")

    for name, help_text in (("run", "Open the sync dashboard"),
                            ("sync", "Run one sync without the dashboard")):
        p = subparsers.add_parser(name, help=help_text, description=help_text + ".")
        p.add_argument("--config", metavar="PATH",
                       help="Config file (default: nearest .ftpmirror)")
        p.add_argument("--profile", metavar="NAME", default="default",
                       help="Profile to use (default: default)")
        p.add_argument("-v", "--verbose", action="store_true",
                       help="Log every directory entered")

    args = parser.parse_args(argv)

    if args.command == "init":
        cmd_init(args)
    elif args.command == "run":
        cmd_run(args)
    elif args.command == "sync":
        cmd_sync(args)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
