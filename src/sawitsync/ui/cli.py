from __future__ import annotations

import argparse
import dataclasses
import logging
import sys
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from sawitsync.app import (
    Backend,
    alias_history,
    confirm_alias,
    create_master,
    import_file,
    list_aliases,
    list_masters,
)
from sawitsync.config import ConfigurationError, configure_logging, get_import_config
from sawitsync.domain.model import EntityType, ImportState, RecordType, UnresolvedPolicy
from sawitsync.domain.reconciliation import CancellationToken
from sawitsync.domain.similarity import SimilarityMetric

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from sawitsync.config import ImportConfig
    from sawitsync.domain.reconciliation import ImportProgress, ImportRun

log = logging.getLogger(__name__)

_IMPORT_COMMANDS = {
    "import-transport": RecordType.TRANSPORT,
    "import-harvest": RecordType.HARVEST,
}
_REPORT_LIMIT = 20

_cancellation: CancellationToken | None = None


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Reconcile SawiTrack spreadsheet imports")
    subparsers = parser.add_subparsers(dest="command", required=True)

    for command, record_type in _IMPORT_COMMANDS.items():
        sub = subparsers.add_parser(command, help=f"Import a {record_type} spreadsheet")
        sub.add_argument("path", type=Path, help="CSV or Excel file to import")
        sub.add_argument(
            "--backend",
            type=Backend,
            choices=list(Backend),
            default=Backend.SQLITE,
            help="Where master data and records live (default: %(default)s)",
        )
        sub.add_argument(
            "--policy",
            type=UnresolvedPolicy,
            choices=list(UnresolvedPolicy),
            help="What to do with unresolved identifiers (defaults to config)",
        )
        sub.add_argument(
            "--chunk-size",
            type=int,
            help="Records written per chunk (defaults to config)",
        )
        sub.add_argument(
            "--concurrency",
            type=int,
            help="Writes in flight inside a chunk (defaults to config)",
        )
        sub.add_argument(
            "--threshold",
            type=float,
            help="Minimum fuzzy similarity in [0, 1] (defaults to config)",
        )
        sub.add_argument(
            "--metric",
            type=SimilarityMetric,
            choices=list(SimilarityMetric),
            help="Fuzzy similarity metric (defaults to config)",
        )

    aliases = subparsers.add_parser("aliases", help="Alias memory commands")
    aliases_sub = aliases.add_subparsers(dest="aliases_command", required=True)
    aliases_list = aliases_sub.add_parser("list", help="List confirmed aliases")
    aliases_list.add_argument("--entity-type", type=EntityType, choices=list(EntityType))
    aliases_history = aliases_sub.add_parser("history", help="Show how an alias was repointed")
    aliases_history.add_argument(
        "--entity-type",
        type=EntityType,
        choices=list(EntityType),
        required=True,
    )
    aliases_history.add_argument("--name", required=True, help="Alias spelling")
    aliases_confirm = aliases_sub.add_parser("confirm", help="Map a raw spelling to a master")
    aliases_confirm.add_argument(
        "--entity-type",
        type=EntityType,
        choices=list(EntityType),
        required=True,
    )
    aliases_confirm.add_argument("--name", required=True, help="Raw spelling from a sheet")
    aliases_confirm.add_argument("--master-id", required=True, help="Target master id")
    aliases_confirm.add_argument("--by", required=True, help="Operator confirming the alias")
    aliases_confirm.add_argument(
        "--overwrite",
        action="store_true",
        help="Repoint an alias that already maps elsewhere",
    )

    masters = subparsers.add_parser("masters", help="Master data commands")
    masters_sub = masters.add_subparsers(dest="masters_command", required=True)
    masters_list = masters_sub.add_parser("list", help="List master entities")
    masters_list.add_argument(
        "--entity-type",
        type=EntityType,
        choices=list(EntityType),
        required=True,
    )
    masters_create = masters_sub.add_parser(
        "create",
        help="Create a master and alias the given spellings to it",
    )
    masters_create.add_argument(
        "--entity-type",
        type=EntityType,
        choices=list(EntityType),
        required=True,
    )
    masters_create.add_argument("--by", required=True, help="Operator creating the master")
    masters_create.add_argument("--name", help="Master name (defaults to the first spelling)")
    masters_create.add_argument("spellings", nargs="*", help="Raw spellings to alias")

    return parser.parse_args(list(argv))


def _import_config(args: argparse.Namespace) -> ImportConfig:
    config = get_import_config()
    overrides: dict[str, object] = {}
    if args.chunk_size is not None:
        if args.chunk_size < 1:
            raise ValueError("Chunk size must be positive")
        overrides["chunk_size"] = args.chunk_size
    if args.concurrency is not None:
        if args.concurrency < 1:
            raise ValueError("Concurrency must be positive")
        overrides["concurrency"] = args.concurrency
    if args.threshold is not None:
        if not 0.0 <= args.threshold <= 1.0:
            raise ValueError("Threshold must be within [0, 1]")
        overrides["similarity_threshold"] = args.threshold
    if args.metric is not None:
        overrides["similarity_metric"] = args.metric
    return dataclasses.replace(config, **overrides)  # pyright: ignore[reportArgumentType]


def _log_progress(progress: ImportProgress) -> None:
    log.info(
        "%s: %s/%s (%s%%)",
        progress.stage,
        progress.processed,
        progress.total,
        progress.percentage,
    )


def _log_run(run: ImportRun) -> None:
    log.info("%s", run.summary())
    for invalid in run.invalid_rows[:_REPORT_LIMIT]:
        log.warning("Row %s skipped: %s", invalid.row_number, invalid.reason)
    for group in run.unresolved:
        names = ", ".join(repr(name) for name in group.raw_names)
        if group.suggestion is not None:
            log.warning(
                "Unresolved %s %s (closest: %r %s, score %.2f)",
                group.entity_type,
                names,
                group.suggestion.master_name,
                group.suggestion.master_id,
                group.suggestion.score,
            )
        else:
            log.warning("Unresolved %s %s", group.entity_type, names)
    for warning in run.warnings:
        log.warning("Check aliases: %s", warning)
    for failure in run.failures[:_REPORT_LIMIT]:
        log.warning(
            "Row %s (%s) failed: %s",
            failure.row_number,
            "|".join(failure.natural_key),
            failure.message,
        )
    hidden = max(len(run.failures), len(run.invalid_rows)) - _REPORT_LIMIT
    if hidden > 0:
        log.warning("... %s more row(s) not shown", hidden)


def _run_import(args: argparse.Namespace, config: ImportConfig) -> ImportRun:
    global _cancellation  # noqa: PLW0603
    _cancellation = CancellationToken()
    try:
        return import_file(
            args.path,
            _IMPORT_COMMANDS[args.command],
            backend=args.backend,
            policy=args.policy,
            config=config,
            on_progress=_log_progress,
            cancellation=_cancellation,
        )
    finally:
        _cancellation = None


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    configure_logging()
    parsed_args: argparse.Namespace
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    config: ImportConfig | None = None
    try:
        parsed_args = _parse_args(args_list)
        if parsed_args.command in _IMPORT_COMMANDS:
            config = _import_config(parsed_args)
    except (ValueError, ConfigurationError):
        log.exception("CLI validation error")
        sys.exit(2)

    try:
        if parsed_args.command in _IMPORT_COMMANDS and config is not None:
            run = _run_import(parsed_args, config)
            _log_run(run)
            if run.state is ImportState.FAILED:
                sys.exit(1)
        elif parsed_args.command == "aliases" and parsed_args.aliases_command == "list":
            for alias in list_aliases(parsed_args.entity_type):
                print(  # noqa: T201
                    f"{alias.entity_type}\t{alias.alias_name}\t{alias.master_id}\t"
                    f"{alias.confirmed_by or '-'}"
                )
        elif parsed_args.command == "aliases" and parsed_args.aliases_command == "history":
            for change in alias_history(parsed_args.entity_type, parsed_args.name):
                print(  # noqa: T201
                    f"{change.changed_at.isoformat()}\t{change.previous_master_id or '-'}\t"
                    f"{change.master_id}\t{change.changed_by or '-'}"
                )
        elif parsed_args.command == "aliases" and parsed_args.aliases_command == "confirm":
            result = confirm_alias(
                parsed_args.entity_type,
                parsed_args.name,
                parsed_args.master_id,
                confirmed_by=parsed_args.by,
                overwrite=parsed_args.overwrite,
            )
            if not result.ok:
                raise ValueError(result.errors[0].error)  # noqa: TRY301
            log.info("Alias %r now points to %s", parsed_args.name, parsed_args.master_id)
        elif parsed_args.command == "masters" and parsed_args.masters_command == "list":
            for entity in list_masters(parsed_args.entity_type):
                print(f"{entity.id}\t{entity.name}")  # noqa: T201
        elif parsed_args.command == "masters" and parsed_args.masters_command == "create":
            entity, result = create_master(
                parsed_args.entity_type,
                parsed_args.spellings,
                confirmed_by=parsed_args.by,
                name=parsed_args.name,
            )
            log.info(
                "Created %s %r (%s) with %s alias(es)",
                entity.entity_type,
                entity.name,
                entity.id,
                len(result.saved),
            )
            for error in result.errors:
                log.warning("Alias %r not saved: %s", error.alias_name, error.error)
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301

    except Exception:
        log.exception("Fatal error")
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully.

    During an import the first Ctrl+C stops the run after the current chunk;
    a second one exits immediately.
    """
    if _cancellation is not None and not _cancellation.cancelled:
        log.info("Cancelling after the current chunk (Ctrl+C again to quit)")
        _cancellation.cancel()
        return
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    """Console script entry point."""
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
