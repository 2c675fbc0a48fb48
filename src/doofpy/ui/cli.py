from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING, Any

from dotenv import load_dotenv

from doofpy.adapters.area_file import load_areas, load_builtin_areas
from doofpy.app import build_service
from doofpy.config import ConfigurationError, configure_logging
from doofpy.domain.errors import ReconciliationError
from doofpy.domain.ingest import BatchCancellation, parse_pending_records
from doofpy.domain.model import EntityCategory

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from types import FrameType

    from doofpy.app import CatalogReconciliationService
    from doofpy.domain.ingest import BatchResult
    from doofpy.domain.model import (
        AnalysisReport,
        LedgerResult,
        LocationResolution,
        PendingRecord,
    )

log = logging.getLogger(__name__)


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Reconcile and bulk-ingest catalog data")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    categories = [category.value for category in EntityCategory]

    analyze = subparsers.add_parser("analyze", help="Propose data-quality fixes for a category")
    analyze.add_argument("category", choices=categories)

    apply = subparsers.add_parser("apply", help="Apply proposed changes by id")
    apply.add_argument("category", choices=categories)
    apply.add_argument("change_ids", nargs="+", metavar="CHANGE_ID")

    reject = subparsers.add_parser("reject", help="Reject proposed changes by id")
    reject.add_argument("category", choices=categories)
    reject.add_argument("change_ids", nargs="+", metavar="CHANGE_ID")

    ingest = subparsers.add_parser("ingest", help="Resolve and de-duplicate a bulk text file")
    ingest.add_argument("file", help="Text file with one record per line ('-' for stdin)")
    ingest.add_argument(
        "--concurrency",
        type=int,
        default=None,
        help="Number of concurrent workers (defaults to config)",
    )
    ingest.add_argument(
        "--offline",
        action="store_true",
        help="Skip Google Maps lookups; only the local postal code index is used",
    )

    resolve = subparsers.add_parser("resolve", help="Resolve a postal code to an area")
    resolve.add_argument("postal_code")
    resolve.add_argument("--offline", action="store_true", help="Skip Google Maps lookups")

    areas = subparsers.add_parser("areas", help="Administrative area management")
    areas_sub = areas.add_subparsers(dest="areas_command", required=True)
    areas_import = areas_sub.add_parser("import", help="Import areas from a JSON file")
    source = areas_import.add_mutually_exclusive_group(required=True)
    source.add_argument("file", nargs="?", help="JSON list of areas")
    source.add_argument(
        "--builtin",
        action="store_true",
        help="Import the bundled New York City neighborhoods",
    )

    return parser.parse_args(list(argv))


def _read_text(path: str) -> str:
    if path == "-":
        return sys.stdin.read()
    try:
        return Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise ValueError(f"Cannot read {path}: {exc}") from exc


def _emit(payload: object) -> None:
    sys.stdout.write(json.dumps(payload, indent=2, default=str, ensure_ascii=False))
    sys.stdout.write("\n")


def report_payload(report: AnalysisReport) -> dict[str, Any]:
    return {
        "category": report.category.value,
        "changes": [change.snapshot() for change in report.changes],
        "diagnostics": [
            {"entity_id": item.entity_id, "detector": item.detector, "message": item.message}
            for item in report.diagnostics
        ],
    }


def ledger_payload(result: LedgerResult) -> dict[str, Any]:
    return {
        "category": result.category.value,
        "applied_count": result.applied_count,
        "rejected_count": result.rejected_count,
        "failed_count": result.failed_count,
        "results": [
            {"id": item.change_id, "outcome": item.outcome.value, "error": item.error}
            for item in result.results
        ],
    }


def resolution_payload(resolution: LocationResolution) -> dict[str, Any]:
    return {
        "area_id": resolution.area.id,
        "area": resolution.area.name,
        "parent_id": resolution.area.parent_id,
        "source": resolution.source.value,
    }


def record_payload(record: PendingRecord) -> dict[str, Any]:
    match = record.match
    return {
        "line": record.line_number,
        "name": record.name,
        "category": record.category.value if record.category else record.category_text,
        "status": record.status.value,
        "postal_code": record.postal_code,
        "area": resolution_payload(record.resolution) if record.resolution else None,
        "match": (
            {
                "confidence": match.confidence.value,
                "entity_id": match.match.id if match.match else None,
                "similarity": round(match.similarity, 3),
            }
            if match
            else None
        ),
        "duplicate_of_line": record.duplicate_of_line,
        "error": record.error,
    }


def batch_payload(result: BatchResult) -> dict[str, Any]:
    return {
        "cancelled": result.cancelled,
        "counts": {status.value: count for status, count in result.counts().items()},
        "records": [record_payload(record) for record in result.records],
    }


def _run_ingest(service: CatalogReconciliationService, args: argparse.Namespace) -> BatchResult:
    records = parse_pending_records(_read_text(args.file))
    cancellation = BatchCancellation()

    def cancel_batch(_signal_received: int, _frame: FrameType | None) -> None:
        log.info("Stopping after in-flight records finish (Ctrl+C)")
        cancellation.cancel()

    previous = signal(SIGINT, cancel_batch)
    try:
        return service.process_batch(records, args.concurrency, cancellation=cancellation)
    finally:
        signal(SIGINT, previous)


def _dispatch(
    args: argparse.Namespace,
    service_factory: Callable[..., CatalogReconciliationService],
) -> object:
    offline = bool(getattr(args, "offline", False))
    command = args.command

    if command == "areas" and args.areas_command == "import":
        areas = load_builtin_areas() if args.builtin else load_areas(Path(args.file))
        count = service_factory(use_google=False).import_areas(areas)
        return {"imported": count}

    service = service_factory(use_google=not offline and command in {"ingest", "resolve"})
    if command == "analyze":
        return report_payload(service.analyze_data_for_cleanup(args.category))
    if command == "apply":
        return ledger_payload(service.apply_cleanup_changes(args.category, args.change_ids))
    if command == "reject":
        return ledger_payload(service.reject_cleanup_changes(args.category, args.change_ids))
    if command == "ingest":
        return batch_payload(_run_ingest(service, args))
    if command == "resolve":
        return resolution_payload(service.resolve_location(args.postal_code))
    raise ValueError(f"Unsupported command: {command}")


def main(
    argv: Sequence[str] | None = None,
    *,
    service_factory: Callable[..., CatalogReconciliationService] = build_service,
) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    parsed_args = _parse_args(args_list)
    configure_logging(level=logging.DEBUG if parsed_args.verbose else logging.INFO)

    try:
        payload = _dispatch(parsed_args, service_factory)
    except (ValueError, ReconciliationError, ConfigurationError):
        log.exception("CLI validation error")
        sys.exit(2)
    except Exception:
        log.exception("Fatal error")
        sys.exit(1)

    _emit(payload)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


if __name__ == "__main__":
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()
