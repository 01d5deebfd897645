"""CLI entrypoint for wpp-live."""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
import sys
from collections.abc import AsyncIterator
from dataclasses import dataclass
from pathlib import Path

from wpp_live.csv_export import write_csv_export
from wpp_live.display import render_result
from wpp_live.errors import WPPError
from wpp_live.fetch import FetchOrchestrator, FetchResult
from wpp_live.params import METRICS, RefreshParameters
from wpp_live.rows import TIERS, Tier, tier_label
from wpp_live.scheduler import MIN_INTERVAL_S, RefreshScheduler
from wpp_live.settings import Settings
from wpp_live.sorting import DEFAULT_SORT_KEY, SORT_KEYS, SortState
from wpp_live.util.parsing import safe_float
from wpp_live.wpp_client import WPPClient

logger = logging.getLogger(__name__)


class CLIError(RuntimeError):
    """User-facing CLI error."""


def _make_client(settings: Settings) -> WPPClient:
    return WPPClient(settings)


def _settings_from_args(args: argparse.Namespace) -> Settings:
    settings = Settings()
    overrides: dict[str, object] = {}
    if args.base_url:
        overrides["base_url"] = args.base_url
    if args.timeout is not None:
        overrides["timeout_s"] = args.timeout
    return settings.model_copy(update=overrides) if overrides else settings


def _params_from_args(args: argparse.Namespace, settings: Settings) -> RefreshParameters:
    metric = args.metric or settings.default_metric
    target = args.target_prob if args.target_prob is not None else settings.default_target_prob
    return RefreshParameters.build(metric, target)


def _sort_from_args(args: argparse.Namespace) -> SortState:
    return SortState(key=args.sort_key, direction="desc" if args.desc else "asc")


async def _fetch_once(settings: Settings, params: RefreshParameters) -> FetchResult:
    async with _make_client(settings) as client:
        orchestrator = FetchOrchestrator(client, garbage_n=settings.garbage_n)
        return await orchestrator.refresh(params)


def _cmd_report(args: argparse.Namespace) -> int:
    settings = _settings_from_args(args)
    params = _params_from_args(args, settings)
    result = asyncio.run(_fetch_once(settings, params))
    print(render_result(result, sort=_sort_from_args(args)))
    return 0


def _cmd_export(args: argparse.Namespace) -> int:
    settings = _settings_from_args(args)
    params = _params_from_args(args, settings)
    tiers: tuple[Tier, ...] = (tier_label(args.tier),) if args.tier else TIERS
    out_dir = Path(args.out_dir).expanduser()
    result = asyncio.run(_fetch_once(settings, params))
    sort = _sort_from_args(args) if args.sorted else None
    for tier in tiers:
        rows = result.rows_for(tier)
        ordered = sort.apply(rows) if sort is not None else rows
        path = write_csv_export(ordered, tier=tier, params=params, out_dir=out_dir)
        print(f"{tier}: {len(rows)} rows -> {path}")
    return 0


WATCH_HELP = (
    "commands: r | metric <spread|ml|total> | target <p> | auto on|off | "
    "interval <seconds> | sort <column> | export <tier> | q"
)


@dataclass
class _WatchView:
    sort: SortState
    out_dir: Path
    finished: asyncio.Event


async def _stdin_lines() -> AsyncIterator[str]:
    """Yield command lines typed on stdin until EOF."""
    loop = asyncio.get_running_loop()
    reader = asyncio.StreamReader()
    try:
        transport, _ = await loop.connect_read_pipe(
            lambda: asyncio.StreamReaderProtocol(reader), sys.stdin
        )
    except (OSError, ValueError) as exc:
        logger.warning("stdin cannot be streamed (%s); watch commands disabled", exc)
        return
    try:
        while line := await reader.readline():
            yield line.decode("utf-8", errors="replace")
    finally:
        transport.close()


def _one_arg(command: str, args: list[str]) -> str:
    if len(args) != 1:
        raise CLIError(f"usage: {command} <value> ({WATCH_HELP})")
    return args[0]


def _print_view(scheduler: RefreshScheduler, view: _WatchView) -> None:
    if scheduler.result is not None:
        print(render_result(scheduler.result, sort=view.sort, last_updated=scheduler.last_updated))


def _export_current(scheduler: RefreshScheduler, view: _WatchView, tier_name: str) -> None:
    result = scheduler.result
    if result is None:
        raise CLIError("nothing to export yet")
    tier = tier_label(tier_name)
    rows = result.rows_for(tier)
    path = write_csv_export(rows, tier=tier, params=result.params, out_dir=view.out_dir)
    print(f"{tier}: {len(rows)} rows -> {path}")


def _run_command(line: str, scheduler: RefreshScheduler, view: _WatchView) -> None:
    """Apply one interactive watch command to the scheduler or the view."""
    parts = line.split()
    if not parts:
        return
    command, args = parts[0].lower(), parts[1:]
    if command in {"r", "refresh"}:
        scheduler.refresh_now()
    elif command in {"q", "quit"}:
        view.finished.set()
    elif command in {"h", "help", "?"}:
        print(WATCH_HELP)
    elif command == "metric":
        scheduler.set_metric(_one_arg(command, args))
    elif command == "target":
        value = safe_float(_one_arg(command, args))
        if value is None:
            raise CLIError("target must be a number")
        scheduler.set_target_prob(value)
    elif command == "auto":
        flag = _one_arg(command, args).lower()
        if flag not in {"on", "off"}:
            raise CLIError("usage: auto on|off")
        scheduler.set_auto_refresh(flag == "on")
        print(f"Auto refresh: {flag}")
    elif command == "interval":
        seconds = safe_float(_one_arg(command, args))
        if seconds is None or seconds < MIN_INTERVAL_S:
            raise CLIError(f"interval must be at least {MIN_INTERVAL_S:g} seconds")
        scheduler.set_interval(seconds)
        print(f"Interval: {scheduler.interval_s:g}s")
    elif command == "sort":
        view.sort = view.sort.toggle(_one_arg(command, args))
        print(f"Sort: {view.sort.key} {view.sort.direction}")
        _print_view(scheduler, view)
    elif command == "export":
        _export_current(scheduler, view, _one_arg(command, args))
    else:
        raise CLIError(f"unknown command: {command!r} ({WATCH_HELP})")


async def _read_commands(scheduler: RefreshScheduler, view: _WatchView) -> None:
    async for line in _stdin_lines():
        try:
            _run_command(line, scheduler, view)
        except (CLIError, ValueError) as exc:
            print(str(exc), file=sys.stderr)
        if view.finished.is_set():
            return


async def _watch(args: argparse.Namespace, settings: Settings, params: RefreshParameters) -> int:
    view = _WatchView(
        sort=_sort_from_args(args),
        out_dir=Path(args.out_dir).expanduser(),
        finished=asyncio.Event(),
    )
    updates = 0

    def on_change(scheduler: RefreshScheduler) -> None:
        nonlocal updates
        if scheduler.state == "error":
            print(f"Error: {scheduler.error}", file=sys.stderr)
        else:
            _print_view(scheduler, view)
        updates += 1
        if args.max_updates and updates >= args.max_updates:
            view.finished.set()

    interval_s = args.interval if args.interval is not None else settings.refresh_interval_s
    async with _make_client(settings) as client:
        scheduler = RefreshScheduler(
            FetchOrchestrator(client, garbage_n=settings.garbage_n),
            params=params,
            debounce_s=settings.debounce_s,
            interval_s=interval_s,
            auto_refresh=settings.auto_refresh and not args.no_auto_refresh,
            on_change=on_change,
        )
        scheduler.start()
        commands = None if args.no_input else asyncio.create_task(_read_commands(scheduler, view))
        try:
            await view.finished.wait()
        finally:
            if commands is not None:
                commands.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await commands
            await scheduler.aclose()
    return 0


def _cmd_watch(args: argparse.Namespace) -> int:
    settings = _settings_from_args(args)
    params = _params_from_args(args, settings)
    if args.interval is not None and args.interval < MIN_INTERVAL_S:
        raise CLIError(f"--interval must be at least {MIN_INTERVAL_S:g} seconds")
    try:
        return asyncio.run(_watch(args, settings, params))
    except KeyboardInterrupt:
        return 0


def _add_sort_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--sort-key", choices=SORT_KEYS, default=DEFAULT_SORT_KEY)
    parser.add_argument("--desc", action="store_true", help="Sort descending.")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="wpp-live")
    parser.add_argument("--base-url", default="", help="WPP backend base URL.")
    parser.add_argument("--timeout", type=float, default=None, help="HTTP timeout in seconds.")
    parser.add_argument("--metric", choices=METRICS, default="")
    parser.add_argument(
        "--target-prob",
        type=float,
        default=None,
        help="Target probability, clamped into [0.55, 0.75].",
    )
    parser.add_argument("--verbose", action="store_true")
    subparsers = parser.add_subparsers(dest="command")

    report = subparsers.add_parser("report", help="Fetch once and print the tier tables.")
    _add_sort_args(report)
    report.set_defaults(func=_cmd_report)

    export = subparsers.add_parser("export", help="Fetch once and write CSV exports.")
    export.add_argument("--tier", default="", help="Fire, Watch or Garbage (default: all).")
    export.add_argument("--out-dir", default=".")
    export.add_argument("--sorted", action="store_true", help="Apply --sort-key before export.")
    _add_sort_args(export)
    export.set_defaults(func=_cmd_export)

    watch = subparsers.add_parser(
        "watch",
        help="Poll the feed, print every update and take commands on stdin.",
    )
    watch.add_argument("--interval", type=float, default=None, help="Seconds between ticks.")
    watch.add_argument("--no-auto-refresh", action="store_true")
    watch.add_argument("--max-updates", type=int, default=0, help="Stop after N updates.")
    watch.add_argument("--out-dir", default=".", help="Directory for `export` commands.")
    watch.add_argument("--no-input", action="store_true", help="Ignore stdin commands.")
    _add_sort_args(watch)
    watch.set_defaults(func=_cmd_watch)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Run the CLI."""
    parser = _build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    func = getattr(args, "func", None)
    if func is None:
        parser.print_help()
        return 0
    try:
        return int(func(args))
    except (CLIError, WPPError, ValueError) as exc:
        print(str(exc), file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
