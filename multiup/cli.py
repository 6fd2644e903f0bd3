"""Command line interface for multiup package."""
from __future__ import annotations

import argparse
import asyncio
import logging
import os
import signal
import sys
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Set

from rich.logging import RichHandler

from . import __version__
from .cli_progress import (
    BatchProgressDisplay,
    console,
    render_configuration_summary,
    render_destinations,
    render_history_totals,
    render_notification,
    render_upload_logs,
)
from .errors import ArchiveError, BatchInProgressError, ConfigurationError, ValidationError
from .models import BUILTIN_DESTINATION_ID, UPLOAD_LOGS, EngineConfig, FileItem, Notification, S3Destination
from .orchestrator import BatchRun, UploadOrchestrator
from .services.history import HISTORY_WINDOW, STATUSES, filter_upload_logs, summarize_upload_logs
from .services.validator import FileValidator

DEFAULT_LOG_LIMIT = 20
PAUSE_SIGNAL = getattr(signal, "SIGUSR1", None)


class CLIError(RuntimeError):
    """Raised when CLI validation/execution fails."""


def _setup_logging(debug: bool, silent: bool, log_level: Optional[str]) -> str:
    """
    Configure logging.

    Default behavior is silent unless --debug or --log-level is provided.
    Returns a string describing effective mode.
    """
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    logging.disable(logging.NOTSET)

    if silent or (not debug and not log_level):
        logging.disable(logging.CRITICAL)
        root_logger.setLevel(logging.CRITICAL + 1)
        return "silent"

    if debug:
        level = logging.DEBUG
    else:
        level = getattr(logging, log_level.upper(), logging.INFO)

    handler = RichHandler(
        rich_tracebacks=True,
        markup=False,
        show_time=False,
        show_path=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    # botocore is chatty at DEBUG and can echo request headers
    logging.getLogger("botocore").setLevel(max(level, logging.WARNING))
    return logging.getLevelName(level)


def _strip_optional_quotes(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in {"'", '"'}:
        return value[1:-1]
    return value


def _load_env_file(path: Path, override: bool = False) -> None:
    if not path.exists():
        raise CLIError(f"env file not found: {path}")
    if not path.is_file():
        raise CLIError(f"env path is not a file: {path}")

    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise CLIError(f"could not read env file {path}: {exc}") from exc

    for raw_line in content.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if line.startswith("export "):
            line = line[len("export ") :].strip()
        if "=" not in line:
            continue

        key, value = line.split("=", 1)
        key = key.strip()
        if not key:
            continue

        value = _strip_optional_quotes(value.strip())
        if override or key not in os.environ:
            os.environ[key] = value


def _resolve_default_env_file() -> Optional[Path]:
    default_env = Path(".env")
    return default_env if default_env.exists() and default_env.is_file() else None


def _collect_files(paths: Sequence[Path], validator: FileValidator) -> List[FileItem]:
    """Turn CLI paths into accepted FileItems, reporting rejections."""
    items: List[FileItem] = []
    for raw in paths:
        path = Path(raw).expanduser()
        if not path.is_file():
            raise CLIError(f"not a file: {path}")
        items.append(FileItem.from_path(path))

    results = validator.validate_batch(items)
    for result in results:
        if not result.accepted:
            render_notification(Notification("warning", f"{result.file.name} rejected: {', '.join(result.reasons)}"))

    accepted = validator.accepted_files(results)
    if not accepted:
        reasons = sorted({reason for result in results for reason in result.reasons})
        raise ValidationError("no files passed validation", reasons=reasons)
    return accepted


async def _resolve_selection(orchestrator: UploadOrchestrator, dest: Optional[Sequence[str]]) -> List[str]:
    if dest:
        return list(dest)
    previous = await orchestrator.last_selection()
    return previous or [BUILTIN_DESTINATION_ID]


def _install_pause_toggle(run: BatchRun) -> Callable[[], None]:
    """Toggle pause on PAUSE_SIGNAL (``kill -USR1 <pid>``). Returns an uninstall callback."""
    if PAUSE_SIGNAL is None:
        return lambda: None

    loop = asyncio.get_running_loop()
    pending: Set[asyncio.Task] = set()

    def _toggle() -> None:
        task = loop.create_task(run.toggle_pause())
        pending.add(task)
        task.add_done_callback(pending.discard)

    try:
        loop.add_signal_handler(PAUSE_SIGNAL, _toggle)
    except (NotImplementedError, RuntimeError, ValueError):
        # Not on the main thread or no signal support in this loop
        return lambda: None
    return lambda: loop.remove_signal_handler(PAUSE_SIGNAL)


async def _run_upload(config: EngineConfig, paths: Sequence[Path], dest: Optional[Sequence[str]], archive_dir: Optional[Path]) -> int:
    files = _collect_files(paths, FileValidator.from_config(config))

    async with UploadOrchestrator(config) as orchestrator:
        selection = await _resolve_selection(orchestrator, dest)
        try:
            run = await orchestrator.start_batch(files, selection)
        except (ValueError, BatchInProgressError) as exc:
            raise CLIError(str(exc)) from exc

        display = BatchProgressDisplay(len(files))
        run.on_file_start(display.on_file_start)
        run.on_task_progress(display.on_task_progress)
        run.on_task_complete(display.on_task_complete)
        run.on_task_fail(display.on_task_fail)
        run.on_file_complete(display.on_file_complete)
        run.on_notify(display.on_notify)
        run.on_pause(display.on_pause)
        run.on_resume(display.on_resume)
        run.on_finish(display.on_finish)
        run.on_error(display.on_error)

        await run.start()
        uninstall_toggle = _install_pause_toggle(run)
        try:
            result = await run.wait()
        except asyncio.CancelledError:
            await run.stop()
            raise
        finally:
            uninstall_toggle()

        if run.error is not None:
            raise CLIError("batch run failed")

        if archive_dir is not None:
            if run.can_download_archive:
                try:
                    archive = await orchestrator.build_archive(run)
                except ArchiveError as exc:
                    render_notification(Notification("error", exc.user_message))
                else:
                    target = archive.write_to(archive_dir)
                    render_notification(
                        Notification("success", f"Archive with {archive.file_count} file(s) written to {target}")
                    )
                    render_notification(Notification("warning", archive.notice))
            else:
                render_notification(Notification("info", "Nothing to archive"))

        return 1 if result.fully_failed else 0


async def _run_destinations(config: EngineConfig, args: argparse.Namespace) -> int:
    async with UploadOrchestrator(config) as orchestrator:
        service = orchestrator.destinations
        try:
            if args.dest_command == "add":
                destination = await service.add(
                    name=args.name,
                    endpoint=args.endpoint,
                    bucket_name=args.bucket,
                    access_key_id=args.access_key_id,
                    secret_access_key=args.secret_access_key or os.getenv("MULTIUP_SECRET_ACCESS_KEY", ""),
                    is_active=not args.inactive,
                )
                console.print(f"[green]Added destination[/green] {destination.id} ({destination.name})")
                return 0

            if args.dest_command == "remove":
                await service.remove(args.id)
                console.print(f"[green]Removed destination[/green] {args.id}")
                return 0

            if args.dest_command == "test":
                for destination in await service.list():
                    if destination.id == args.id and isinstance(destination, S3Destination):
                        ok = await service.test_connection(destination)
                        render_notification(
                            Notification("success", f"{destination.name} is reachable")
                            if ok
                            else Notification("error", f"{destination.name}: destination unreachable")
                        )
                        return 0 if ok else 1
                raise CLIError(f"unknown destination: {args.id}")
        except ConfigurationError as exc:
            raise CLIError(str(exc)) from exc
        except KeyError as exc:
            raise CLIError(f"unknown destination: {args.id}") from exc

        rows = []
        for destination in await service.list():
            rows.append(
                {
                    "id": destination.id,
                    "name": destination.name,
                    "kind": destination.kind.value,
                    "endpoint": getattr(destination, "endpoint", None),
                    "bucket": getattr(destination, "bucket", None),
                    "is_active": destination.is_active,
                }
            )
        render_destinations(rows)
        return 0


async def _run_logs(config: EngineConfig, args: argparse.Namespace) -> int:
    async with UploadOrchestrator(config) as orchestrator:
        records = await orchestrator.store.list(UPLOAD_LOGS, "-created_date", HISTORY_WINDOW)
    if not records:
        console.print("No uploads recorded yet.")
        return 0

    matched = filter_upload_logs(records, search=args.search, status=args.status, destination=args.dest)
    if matched:
        render_upload_logs(matched[: args.limit])
    else:
        console.print("No uploads match the filters.")
    render_history_totals(summarize_upload_logs(records), shown=min(len(matched), args.limit))
    return 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="multiup",
        description="Upload files to several storage destinations at once.",
    )
    parser.add_argument(
        "--env-file",
        type=Path,
        default=None,
        help="Load environment variables from this .env file",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logs")
    parser.add_argument("--silent", action="store_true", help="Only print errors")
    parser.add_argument(
        "--log-level",
        default=None,
        help="Explicit log level (DEBUG/INFO/WARNING/ERROR)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"multiup {__version__}",
    )

    sub = parser.add_subparsers(dest="command")

    upload = sub.add_parser("upload", help="Upload files to the selected destinations")
    upload.add_argument("files", nargs="+", type=Path, help="Files to upload")
    upload.add_argument(
        "-d",
        "--dest",
        action="append",
        default=None,
        help=f"Destination id, repeatable (default: last selection or '{BUILTIN_DESTINATION_ID}')",
    )
    upload.add_argument(
        "--archive",
        type=Path,
        default=None,
        metavar="DIR",
        help="Write a zip of the uploaded files to DIR",
    )

    dest = sub.add_parser("destinations", help="Manage destinations")
    dest_sub = dest.add_subparsers(dest="dest_command")
    dest_sub.add_parser("list", help="List destinations")

    add = dest_sub.add_parser("add", help="Add an S3-compatible destination")
    add.add_argument("--name", required=True)
    add.add_argument("--endpoint", required=True, help="e.g. https://s3.us-west-1.idrivee2.com")
    add.add_argument("--bucket", required=True)
    add.add_argument("--access-key-id", required=True)
    add.add_argument(
        "--secret-access-key",
        default=None,
        help="Secret key (default from MULTIUP_SECRET_ACCESS_KEY)",
    )
    add.add_argument("--inactive", action="store_true", help="Add the destination disabled")

    remove = dest_sub.add_parser("remove", help="Remove a destination")
    remove.add_argument("id")

    test = dest_sub.add_parser("test", help="Check a destination's credentials")
    test.add_argument("id")

    logs = sub.add_parser("logs", help="Show recent upload history")
    logs.add_argument("--limit", type=int, default=DEFAULT_LOG_LIMIT)
    logs.add_argument("--search", default=None, help="Only files whose name contains this text")
    logs.add_argument("--status", choices=STATUSES, default=None, help="Only uploads with this outcome")
    logs.add_argument("--dest", default=None, metavar="ID", help="Only uploads sent to this destination")

    return parser


def run_cli(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    used_env_file = args.env_file or _resolve_default_env_file()
    if used_env_file is not None:
        try:
            _load_env_file(Path(used_env_file))
        except CLIError as exc:
            print(f"ERROR: {exc}", file=sys.stderr)
            return 1

    effective_log_mode = _setup_logging(
        debug=args.debug,
        silent=args.silent,
        log_level=args.log_level,
    )

    if args.command is None:
        parser.print_help()
        return 0

    config = EngineConfig.from_env()

    try:
        if args.command == "upload":
            render_configuration_summary(
                {
                    "Files": len(args.files),
                    "Destinations": ", ".join(args.dest) if args.dest else "(last selection)",
                    "Built-in store": config.builtin_url or "(not configured)",
                    "Record store": config.records_url or str(config.records_path or "(local default)"),
                    "Transfer timeout": f"{config.transfer_timeout:g}s",
                    "Archive": str(args.archive) if args.archive else "-",
                    "Pause/resume": f"kill -USR1 {os.getpid()}" if PAUSE_SIGNAL is not None else "-",
                    "Env File": str(used_env_file) if used_env_file else "-",
                    "Logging": effective_log_mode,
                }
            )
            return asyncio.run(_run_upload(config, args.files, args.dest, args.archive))
        if args.command == "destinations":
            return asyncio.run(_run_destinations(config, args))
        if args.command == "logs":
            return asyncio.run(_run_logs(config, args))
    except (CLIError, ValidationError) as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("Cancelled.", file=sys.stderr)
        return 130

    parser.print_help()
    return 0


def main() -> None:
    raise SystemExit(run_cli())


if __name__ == "__main__":
    main()
