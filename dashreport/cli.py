"""Command-line entry point for dashboard report runs."""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import dataclasses
import signal
import sys
import typing as typ

import msgspec

from dashreport.delivery import create_delivery_sink
from dashreport.errors import DashReportError
from dashreport.logging import configure_logging, get_logger, log_error, log_warning
from dashreport.metadata import DashboardCache, GrafanaMetadataClient, MetadataResolver
from dashreport.render import ReportJobClient
from dashreport.reporting import ReportingService, ReportingServiceDependencies
from dashreport.settings import Settings, load_settings

if typ.TYPE_CHECKING:
    import httpx

    from dashreport.reporting import OrganizationResolution, RunSummary

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_FAILURES = 1
EXIT_UNAVAILABLE = 2


def build_parser() -> argparse.ArgumentParser:
    """Return the argument parser for ``dashreport``."""
    parser = argparse.ArgumentParser(
        prog="dashreport",
        description="Render and deliver a report for every dashboard.",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="YAML settings file (default: reporter.yaml when present)",
    )
    parser.add_argument("--metadata-url", help="Metadata service API URL")
    parser.add_argument("--metadata-user", help="Metadata service user")
    parser.add_argument("--metadata-pass", help="Metadata service password")
    parser.add_argument("--metadata-token", help="Metadata service API token")
    parser.add_argument("--reports-url", help="Report service root URL")
    parser.add_argument("--template", help="Report template identifier")
    parser.add_argument("--recipient", help="Delivery recipient")
    parser.add_argument("--output-dir", help="Directory for filesystem delivery")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Resolve dashboards and variables without submitting jobs",
    )
    parser.add_argument("--log-level", default=None, help="Log level name")
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging"
    )
    return parser


def _replace_set(obj: typ.Any, **changes: str | None) -> typ.Any:
    present = {key: value for key, value in changes.items() if value is not None}
    return dataclasses.replace(obj, **present) if present else obj


def apply_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
    """Return ``settings`` with command-line values taking precedence."""
    metadata = _replace_set(
        settings.metadata,
        url=args.metadata_url,
        username=args.metadata_user,
        password=args.metadata_pass,
        api_token=args.metadata_token,
    )
    reports = _replace_set(settings.reports, url=args.reports_url)
    reporting = _replace_set(
        settings.reporting, template=args.template, recipient=args.recipient
    )
    delivery = _replace_set(settings.delivery, output_dir=args.output_dir)
    return msgspec.structs.replace(
        settings,
        metadata=metadata,
        reports=reports,
        reporting=reporting,
        delivery=delivery,
        log_level=args.log_level or settings.log_level,
    )


def _print_summary(summary: RunSummary) -> None:
    if summary.error is not None:
        print(f"run failed: {summary.error}")
        return
    for org in summary.organizations:
        status = "ok" if org.ok else "FAILED"
        print(
            f"{org.organization.name} ({org.organization.id}): "
            f"{org.delivered}/{len(org.outcomes)} delivered [{status}]"
        )
        if org.error is not None:
            print(f"  error: {org.error}")
        if org.interrupted is not None:
            print(f"  interrupted: {org.interrupted}")
        for outcome in org.outcomes:
            if not outcome.ok:
                print(f"  - {outcome.dashboard_uid} {outcome.state}: {outcome.error}")


def _print_resolution(resolutions: list[OrganizationResolution]) -> None:
    for resolution in resolutions:
        org = resolution.organization
        if resolution.error is not None:
            print(f"{org.name} ({org.id}): FAILED {resolution.error}")
            continue
        print(f"{org.name} ({org.id}): {len(resolution.dashboards)} dashboard(s)")
        for resolved in resolution.dashboards:
            pairs = ", ".join(f"{k}={v}" for k, v in resolved.variables.items())
            print(f"  - {resolved.dashboard.uid} {resolved.dashboard.title!r} {pairs}")


async def run_reporter(
    settings: Settings,
    *,
    dry_run: bool = False,
    stop: asyncio.Event | None = None,
    metadata_http: httpx.AsyncClient | None = None,
    reports_http: httpx.AsyncClient | None = None,
) -> int:
    """Run one reporting pass and return the process exit code.

    Parameters
    ----------
    settings
        Validated settings.
    dry_run
        Resolve and print dashboards without submitting jobs.
    stop
        Optional event that ends the run early when set.
    metadata_http, reports_http
        Optional pre-built HTTP clients, for testing.

    """
    metadata = GrafanaMetadataClient(settings.metadata, http_client=metadata_http)
    reports = ReportJobClient(settings.reports, http_client=reports_http)
    try:
        if not await metadata.health():
            log_error(
                logger,
                "Metadata service at %s is not healthy",
                settings.metadata.url,
            )
            print(f"metadata service unavailable: {settings.metadata.url}")
            return EXIT_UNAVAILABLE

        service = ReportingService(
            ReportingServiceDependencies(
                resolver=MetadataResolver(metadata, DashboardCache()),
                report_client=reports,
                delivery=create_delivery_sink(settings.delivery),
            ),
            config=settings.reporting,
        )
        if dry_run:
            try:
                resolutions = await service.resolve_only()
            except DashReportError as exc:
                print(f"run failed: {exc}")
                return EXIT_UNAVAILABLE
            _print_resolution(resolutions)
            failed = any(resolution.error for resolution in resolutions)
            return EXIT_FAILURES if failed else EXIT_OK

        summary = await service.run(stop=stop)
        _print_summary(summary)
        return EXIT_OK if summary.ok else EXIT_FAILURES
    finally:
        await reports.aclose()
        await metadata.aclose()


async def _run_with_signals(settings: Settings, *, dry_run: bool) -> int:
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    installed: list[signal.Signals] = []
    for signum in (signal.SIGINT, signal.SIGTERM):
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(signum, stop.set)
            installed.append(signum)
    try:
        return await run_reporter(settings, dry_run=dry_run, stop=stop)
    finally:
        for signum in installed:
            loop.remove_signal_handler(signum)


def main(argv: list[str] | None = None) -> int:
    """Run the reporter from the command line.

    Parameters
    ----------
    argv : list[str] | None, optional
        Command-line arguments. ``None`` defaults to ``sys.argv``.

    Returns
    -------
    int
        Exit code: 0 on success, 1 when any organisation failed, 2 when
        configuration is invalid or the metadata service is unavailable.

    """
    args = build_parser().parse_args(argv)
    try:
        settings = apply_overrides(load_settings(args.config), args)
    except (DashReportError, ValueError) as exc:
        print(f"invalid configuration: {exc}", file=sys.stderr)
        return EXIT_UNAVAILABLE

    level, invalid = configure_logging(settings.log_level, verbose=args.verbose)
    if invalid:
        log_warning(
            logger,
            "Invalid log level %r, falling back to %s",
            settings.log_level,
            level,
        )

    try:
        return asyncio.run(_run_with_signals(settings, dry_run=args.dry_run))
    except DashReportError as exc:
        print(f"invalid configuration: {exc}", file=sys.stderr)
        return EXIT_UNAVAILABLE


if __name__ == "__main__":
    raise SystemExit(main())
