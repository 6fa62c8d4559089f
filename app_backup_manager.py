"""Command line interface for the Cloudways application backup tool."""
from __future__ import annotations

import argparse
import logging
import os
import sys
from getpass import getpass
from pathlib import Path
from typing import FrozenSet, Iterable, Optional, Tuple

from app_backup.backup import BackupRunner
from app_backup.cloud import CloudwaysAPIError, CloudwaysClient
from app_backup.config import AppConfig, ConfigError, load_config, save_config
from app_backup.domains import DomainInputError, normalize_domains
from app_backup.scanner import ApplicationScanner, ScanResult
from app_backup.sizing import (
    InsufficientSpaceError,
    check_capacity,
    disk_usage,
    render_disk_usage,
    render_summary,
    storage_target,
)
from app_backup.tools import MySQLClient, WordPressCLI


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Back up Cloudways applications (files and database) selected by domain.",
    )
    parser.add_argument("--config", default="config.yaml", help="Path to the configuration file.")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="Increase logging verbosity.")

    subparsers = parser.add_subparsers(dest="command")

    parser_init = subparsers.add_parser("init-config", help="Write a configuration file with default values.")
    parser_init.add_argument("--force", action="store_true", help="Overwrite an existing file.")

    selection = argparse.ArgumentParser(add_help=False)
    selection.add_argument(
        "-d",
        "--domain",
        action="append",
        dest="domains",
        help="Target domain, any format (can be given several times). Read from stdin when omitted.",
    )
    selection.add_argument(
        "--all", action="store_true", help="Select every application instead of filtering by domain."
    )
    selection.add_argument("--wp-only", action="store_true", help="Only select WordPress applications.")

    subparsers.add_parser(
        "scan", parents=[selection], help="Report sizes of the selected applications and check disk space."
    )

    parser_run = subparsers.add_parser(
        "run", parents=[selection], help="Reset permissions, export databases and zip the selected applications."
    )
    parser_run.add_argument("--email", help="Cloudways account email (default: $CLOUDWAYS_EMAIL).")
    parser_run.add_argument(
        "--skip-permissions", action="store_true", help="Do not call the Cloudways permission reset API."
    )
    parser_run.add_argument("--dry-run", action="store_true", help="Stop after the size report.")

    return parser


def configure_logging(level: int) -> None:
    if level >= 2:
        log_level = logging.DEBUG
    elif level == 1:
        log_level = logging.INFO
    else:
        log_level = logging.WARNING
    logging.basicConfig(level=log_level, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")


def fail(message: str) -> None:
    print(f"❌ {message}", file=sys.stderr)
    sys.exit(1)


def load_application_config(path: Path) -> AppConfig:
    try:
        return load_config(path)
    except ConfigError as exc:
        fail(f"Error reading configuration: {exc}")


def read_target_domains(domains: Optional[Iterable[str]]) -> FrozenSet[str]:
    if domains:
        raw = "\n".join(domains)
    else:
        print("Paste target domain(s) (any format: commas, spaces, newlines, with/without http[s]:// or www.):")
        print("(Press Ctrl-D when done)")
        raw = sys.stdin.read()
    try:
        targets = normalize_domains(raw)
    except DomainInputError as exc:
        fail(f"{exc} Exiting.")
    print(f"Target domains ({len(targets)}):")
    for domain in sorted(targets):
        print(f" • {domain}")
    print()
    return targets


def prompt_cloudways_credentials(email: Optional[str]) -> Tuple[str, str]:
    email = email or os.environ.get("CLOUDWAYS_EMAIL") or input("Cloudways email: ")
    api_key = os.environ.get("CLOUDWAYS_API_KEY") or getpass("Cloudways API key: ")
    return email.strip(), api_key.strip()


def scan_and_report(args: argparse.Namespace, config: AppConfig) -> ScanResult:
    """Select applications, print the size report and enforce the space check."""

    targets = None if args.all else read_target_domains(args.domains)

    usage = disk_usage(storage_target(config.storage))
    print(render_disk_usage(usage))
    print()

    scanner = ApplicationScanner(
        config=config,
        wp=WordPressCLI(config.tools.wp),
        mysql=MySQLClient(config.tools.mysql, config.tools.mysqldump),
        targets=targets,
        wordpress_only=args.wp_only,
    )
    print("Discovering applications...")
    result = scanner.scan()
    for record in result:
        print(f" • {record.app.name} → {record.domain or '-'} ({record.kind.value}, DB={record.db_name or 'unknown'})")
    print()

    if not result and targets is not None:
        fail("No applications matched the supplied domains.")
    print(f"Applications selected: {len(result)}")
    if result:
        print(render_summary(result))
        print()
    try:
        check_capacity(result.grand_total, usage)
    except InsufficientSpaceError as exc:
        fail(str(exc))
    print(f"✅ Backup can fit on {usage.mount}")
    print()
    return result


def handle_init_config(config_path: Path, force: bool) -> None:
    if config_path.exists() and not force:
        fail(f"'{config_path}' already exists (use --force to overwrite).")
    save_config(AppConfig(), config_path)
    print(f"Default configuration written to {config_path}.")


def handle_run(args: argparse.Namespace, config: AppConfig) -> None:
    credentials = None
    if not (args.dry_run or args.skip_permissions):
        credentials = prompt_cloudways_credentials(args.email)

    result = scan_and_report(args, config)
    if args.dry_run or not result:
        return

    runner = BackupRunner(
        config=config,
        wp=WordPressCLI(config.tools.wp),
        mysql=MySQLClient(config.tools.mysql, config.tools.mysqldump),
    )
    if credentials is not None:
        client = CloudwaysClient(config.cloudways)
        print("Getting Cloudways OAuth token...")
        try:
            client.authenticate(*credentials)
        except CloudwaysAPIError as exc:
            fail(str(exc))
        print("✅ Token acquired.")
        runner.reset_permissions(result, client)
        print()

    outcomes = runner.run_all(result)
    print()
    print("Backup process completed.")
    print()
    for outcome in outcomes:
        if outcome.url:
            print(outcome.url)


def main(argv: Optional[Iterable[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return

    configure_logging(args.verbose)
    config_path = Path(args.config)

    if args.command == "init-config":
        handle_init_config(config_path, args.force)
        return

    config = load_application_config(config_path)

    if args.command == "scan":
        scan_and_report(args, config)
    elif args.command == "run":
        handle_run(args, config)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
