# src/apkresolver/cli.py

import argparse
import asyncio
import json
import sys
from dataclasses import replace
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from apkresolver import log_utils, menu_apps
from apkresolver.config import Settings, build_settings, load_config
from apkresolver.exceptions import ConfigurationError, UnknownApplicationError
from apkresolver.resolve.catalog import AppCatalog, build_default_catalog
from apkresolver.resolve.device import StaticDeviceProfileProvider
from apkresolver.resolve.models import ABI, Success, UpdateCheck
from apkresolver.resolve.orchestrator import (
    ResolutionEngine,
    evaluate_update,
)
from apkresolver.resolve.transport import AiohttpTransport
from apkresolver.utils import check_download_available

EXIT_OK = 0
EXIT_FAILURES = 1
EXIT_USAGE = 2


def _parse_installed(values: Optional[Sequence[str]]) -> Dict[str, str]:
    """
    Parse ``APP=VERSION`` pairs from ``--installed``.

    Raises:
        ValueError: If a value is not of the form APP=VERSION.
    """
    installed: Dict[str, str] = {}
    for value in values or []:
        app_id, sep, version = value.partition("=")
        if not sep or not app_id.strip() or not version.strip():
            raise ValueError(f"expected APP=VERSION, got {value!r}")
        installed[app_id.strip()] = version.strip()
    return installed


def _apply_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
    """Layer command-line flags over the configured settings."""
    device = settings.device
    if args.abi:
        try:
            abi = ABI.parse(args.abi)
        except ValueError as e:
            raise ConfigurationError(str(e)) from e
        device = replace(device, abi=abi, supported_abis=())
    if args.prefer_32bit:
        device = replace(device, prefer_32bit=True)
    if args.sdk is not None:
        if args.sdk <= 0:
            raise ConfigurationError("--sdk must be a positive integer")
        device = replace(device, sdk_int=args.sdk)

    engine = settings.engine
    if args.max_concurrent is not None:
        if args.max_concurrent <= 0:
            raise ConfigurationError("--max-concurrent must be a positive integer")
        engine = replace(engine, max_concurrent=args.max_concurrent)
    if args.global_max_age is not None:
        if args.global_max_age <= 0:
            raise ConfigurationError("--global-max-age must be a positive integer")
        engine = replace(engine, global_max_age_days=args.global_max_age)
    return replace(settings, device=device, engine=engine)


def _prepare_settings(args: argparse.Namespace) -> Settings:
    config = load_config(args.config)
    settings = _apply_overrides(build_settings(config), args)
    level = args.log_level or settings.log_level
    if level:
        log_utils.set_log_level(level)
    if getattr(args, "log_dir", None):
        log_utils.add_file_logging(Path(args.log_dir), level or "INFO")
    return settings


def _select_app_ids(
    args: argparse.Namespace, catalog: AppCatalog
) -> Optional[List[str]]:
    if args.all:
        return catalog.app_ids
    if args.interactive:
        return menu_apps.run_menu(catalog)
    return list(args.apps)


async def _run_checks(
    catalog: AppCatalog,
    settings: Settings,
    app_ids: List[str],
    installed: Dict[str, str],
) -> Dict[str, UpdateCheck]:
    async with AiohttpTransport(**settings.transport_kwargs()) as transport:
        engine = ResolutionEngine(
            catalog,
            transport,
            StaticDeviceProfileProvider(settings.device),
            settings=settings.engine,
        )
        outcomes = await engine.resolve_many(app_ids)
    return {
        app_id: evaluate_update(app_id, outcome, installed.get(app_id))
        for app_id, outcome in outcomes.items()
    }


def _format_line(app_id: str, check: UpdateCheck, verified: Optional[bool]) -> str:
    outcome = check.outcome
    if isinstance(outcome, Success):
        line = f"{app_id:<20} {outcome.result.version.version_text:<24} {outcome.result.download_url}"
        if check.installed_version is not None:
            if check.update_available:
                line += f"  (update from {check.installed_version})"
            elif check.update_available is False:
                line += "  (up to date)"
        if verified is False:
            line += "  [download unavailable]"
        return line
    details = outcome.to_dict()
    details.pop("status")
    detail_text = ", ".join(f"{k}={v}" for k, v in details.items())
    return f"{app_id:<20} {outcome.status.upper():<24} {detail_text}"


def run_list(catalog: AppCatalog) -> int:
    for entry in catalog:
        max_age = entry.descriptor.max_age_days
        print(
            f"{entry.app_id:<20} {entry.descriptor.display_name:<24} "
            f"{entry.strategy.describe():<40} {max_age if max_age is not None else '-'}"
        )
    return EXIT_OK


def run_check(args: argparse.Namespace, parser: argparse.ArgumentParser) -> int:
    """
    Resolve the requested applications and report one result per app.

    Returns:
        int: EXIT_OK when every outcome is a success (and verified, with --verify), EXIT_FAILURES otherwise, EXIT_USAGE for configuration or usage errors.
    """
    try:
        installed = _parse_installed(args.installed)
    except ValueError as e:
        parser.error(f"--installed: {e}")

    try:
        settings = _prepare_settings(args)
        catalog = build_default_catalog().with_policy_overrides(
            settings.app_policy_overrides
        )
    except ConfigurationError as e:
        log_utils.logger.error(f"Configuration error: {e}")
        return EXIT_USAGE

    selected = _select_app_ids(args, catalog) or []
    # Apps given only through --installed are checked as well
    app_ids = list(dict.fromkeys(list(selected) + list(installed)))
    if not app_ids:
        log_utils.logger.error(
            "No applications to check. Name apps, or use --all or --interactive."
        )
        return EXIT_USAGE

    try:
        for app_id in app_ids:
            catalog.get(app_id)
    except UnknownApplicationError as e:
        log_utils.logger.error(f"{e}. Run 'apkresolver list' to see cataloged apps.")
        return EXIT_USAGE

    checks = asyncio.run(_run_checks(catalog, settings, app_ids, installed))

    verified: Dict[str, Optional[bool]] = {}
    for app_id, check in checks.items():
        verified[app_id] = None
        if args.verify and isinstance(check.outcome, Success):
            verified[app_id] = check_download_available(
                check.outcome.result.download_url
            )

    if args.json:
        report = {}
        for app_id, check in checks.items():
            report[app_id] = check.to_dict()
            if verified[app_id] is not None:
                report[app_id]["download_available"] = verified[app_id]
        print(json.dumps(report, indent=2))
    else:
        for app_id, check in checks.items():
            print(_format_line(app_id, check, verified[app_id]))

    all_ok = all(
        check.outcome.ok and verified[app_id] is not False
        for app_id, check in checks.items()
    )
    return EXIT_OK if all_ok else EXIT_FAILURES


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="apkresolver",
        description="apkresolver - find the latest release and device-compatible download of Android apps",
    )
    subparsers = parser.add_subparsers(dest="command")

    # Command to list cataloged apps
    subparsers.add_parser("list", help="List cataloged applications")

    # Command to resolve apps
    check_parser = subparsers.add_parser(
        "check", help="Resolve the latest release of applications"
    )
    check_parser.add_argument(
        "apps", nargs="*", metavar="APP", help="App ids to resolve (see 'list')"
    )
    selection_group = check_parser.add_mutually_exclusive_group()
    selection_group.add_argument(
        "--all", action="store_true", help="Resolve every cataloged application"
    )
    selection_group.add_argument(
        "--interactive",
        "-i",
        action="store_true",
        help="Pick applications from an interactive menu",
    )
    check_parser.add_argument("--abi", help="Primary device ABI (e.g. arm64-v8a)")
    check_parser.add_argument(
        "--prefer-32bit",
        dest="prefer_32bit",
        action="store_true",
        help="Prefer 32-bit builds on 64-bit devices",
    )
    check_parser.add_argument("--sdk", type=int, help="Device Android API level")
    check_parser.add_argument(
        "--max-concurrent",
        dest="max_concurrent",
        type=int,
        help="Maximum resolutions in flight at once",
    )
    check_parser.add_argument(
        "--global-max-age",
        dest="global_max_age",
        type=int,
        help="Global release age ceiling in days",
    )
    check_parser.add_argument(
        "--verify",
        action="store_true",
        help="Probe each resolved download URL with a HEAD request",
    )
    check_parser.add_argument(
        "--json", action="store_true", help="Print results as JSON"
    )
    check_parser.add_argument(
        "--installed",
        action="append",
        metavar="APP=VERSION",
        help="Installed version of an app, to report whether an update is available (repeatable)",
    )
    check_parser.add_argument(
        "--log-level",
        dest="log_level",
        help="Log level (DEBUG, INFO, WARNING, ERROR)",
    )
    check_parser.add_argument(
        "--log-dir", dest="log_dir", help="Also write a rotating log file to this directory"
    )
    check_parser.add_argument("--config", help="Path to an apkresolver.yaml file")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> None:
    # Logging is automatically initialized by importing log_utils

    """
    Entry point for the apkresolver command-line interface.

    Dispatches the `list` and `check` subcommands and exits with the command's
    status code (0 all succeeded, 1 some resolution failed, 2 usage or
    configuration error).
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "list":
        sys.exit(run_list(build_default_catalog()))
    elif args.command == "check":
        sys.exit(run_check(args, parser))
    else:
        parser.print_help()
        sys.exit(EXIT_USAGE)


if __name__ == "__main__":
    main()
