"""Command-line interface router for specdelta."""

from __future__ import annotations

import argparse
import json
import sys
import uuid
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from specdelta.archive import ArchiveOptions, AtomicSpecWriter, ChangeArchiver, FileSpecReader
from specdelta.config import (
    ConfigLoadError,
    ConfigValidationError,
    dump_effective_config,
    load_config,
)
from specdelta.constants import CHANGES_DIR, SPEC_FILENAME, SPECS_DIR
from specdelta.errors import SpecMergeError
from specdelta.merge import merge_delta
from specdelta.observability import LoggingConfig, setup_structured_logging, shutdown_logging
from specdelta.ui.render import CLIRenderer, create_renderer, format_counts
from specdelta.validation import ItemType, Validator, run_bulk_validation


@dataclass(frozen=True, slots=True)
class CLIError(RuntimeError):
    """Typed CLI failure with an explicit process exit code."""

    message: str
    exit_code: int = 1

    def __str__(self) -> str:
        return self.message


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse command router."""

    parser = argparse.ArgumentParser(
        prog="specdelta",
        description=(
            "specdelta — merge delta specifications into capability specs.\n\n"
            "Common workflows:\n"
            "  specdelta validate --all        Validate every change and spec\n"
            "  specdelta archive add-2fa       Merge a change's deltas and archive it\n"
            "  specdelta merge delta.md --base spec.md\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--root",
        default=None,
        help="Workspace root holding specs/ and changes/ (default: paths.workspace_root).",
    )
    common.add_argument(
        "--config",
        dest="config_path",
        default=None,
        help="Path to specdelta TOML config (default: ./specdelta.toml if present).",
    )
    common.add_argument("--profile", default=None, help="Config profile overlay name.")
    common.add_argument(
        "--verbose", "-v", action="store_true", default=False, help="Show detailed output."
    )
    common.add_argument(
        "--no-color",
        action="store_true",
        default=False,
        help="Disable colored output (also respects NO_COLOR env var).",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # archive -------------------------------------------------------------
    archive_parser = subparsers.add_parser(
        "archive",
        parents=[common],
        help="Merge a change's delta specs and move it to changes/archive/",
    )
    archive_parser.add_argument("change_id", help="Change directory name under changes/")
    archive_parser.add_argument(
        "--skip-specs", action="store_true", default=None, help="Archive without updating specs"
    )
    archive_parser.add_argument(
        "--no-validate",
        dest="skip_validation",
        action="store_true",
        default=None,
        help="Skip validation of deltas and rebuilt specs",
    )
    archive_parser.add_argument(
        "--strict", action="store_true", default=None, help="Treat warnings as failures"
    )
    archive_parser.add_argument("--json", action="store_true", help="Emit JSON output")
    archive_parser.set_defaults(handler=_cmd_archive)

    # validate ------------------------------------------------------------
    validate_parser = subparsers.add_parser(
        "validate",
        parents=[common],
        help="Validate one change or spec, or many in bulk",
    )
    validate_parser.add_argument("item", nargs="?", default=None, help="Change or spec name")
    scope = validate_parser.add_mutually_exclusive_group()
    scope.add_argument("--all", action="store_true", help="Validate all changes and specs")
    scope.add_argument("--changes", action="store_true", help="Validate all changes")
    scope.add_argument("--specs", action="store_true", help="Validate all specs")
    validate_parser.add_argument(
        "--type",
        dest="item_type",
        choices=[kind.value for kind in ItemType],
        default=None,
        help="Disambiguate when a change and a spec share a name",
    )
    validate_parser.add_argument(
        "--strict", action="store_true", default=None, help="Treat warnings as failures"
    )
    validate_parser.add_argument(
        "--concurrency", type=int, default=None, help="Bulk validation worker limit"
    )
    validate_parser.add_argument("--json", action="store_true", help="Emit JSON output")
    validate_parser.set_defaults(handler=_cmd_validate)

    # merge ---------------------------------------------------------------
    merge_parser = subparsers.add_parser(
        "merge",
        parents=[common],
        help="Apply one delta document to one base spec",
    )
    merge_parser.add_argument("delta", help="Delta document path")
    merge_parser.add_argument("--base", default=None, help="Base spec path (omit for a new spec)")
    merge_parser.add_argument("--name", default=None, help="Capability name for messages")
    merge_parser.add_argument("--change", dest="change_id", default="manual", help="Change id")
    merge_parser.add_argument(
        "--write", action="store_true", help="Write the rebuilt document back to --base"
    )
    merge_parser.set_defaults(handler=_cmd_merge)

    # config --------------------------------------------------------------
    config_parser = subparsers.add_parser(
        "config", parents=[common], help="Print the effective configuration"
    )
    config_parser.add_argument("--json", action="store_true", help="Emit compact JSON output")
    config_parser.set_defaults(handler=_cmd_config)

    return parser


# ---------------------------------------------------------------------------
# Entrypoints
# ---------------------------------------------------------------------------


def run_cli(argv: Sequence[str] | None = None) -> int:
    """Parse argv, route to a command handler, and return the process exit code."""

    parser = build_parser()
    namespace = parser.parse_args(list(argv) if argv is not None else None)
    handler = getattr(namespace, "handler", None)
    if not callable(handler):
        parser.print_help(sys.stderr)
        return 2

    try:
        config = load_cli_config(namespace)
        handle = setup_structured_logging(_logging_config(config))
        try:
            result = handler(namespace, config)
        finally:
            shutdown_logging(handle)
    except CLIError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return exc.exit_code
    return int(result)


def load_cli_config(args: argparse.Namespace) -> dict[str, Any]:
    """Load config, layering the namespace's explicit flags on top."""

    overrides: dict[str, object] = {
        "paths.workspace_root": getattr(args, "root", None),
        "validation.strict": getattr(args, "strict", None),
        "validation.concurrency": getattr(args, "concurrency", None),
        "archive.skip_validation": getattr(args, "skip_validation", None),
        "archive.skip_specs": getattr(args, "skip_specs", None),
    }
    if overrides["paths.workspace_root"] is not None:
        overrides["paths.workspace_root"] = str(Path(args.root).expanduser().resolve())
    try:
        return load_config(
            getattr(args, "config_path", None),
            profile=getattr(args, "profile", None),
            cli_overrides=overrides,
        )
    except (ConfigLoadError, ConfigValidationError) as exc:
        raise CLIError(str(exc), exit_code=2) from exc


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


def _cmd_archive(args: argparse.Namespace, config: Mapping[str, Any]) -> int:
    archive_cfg = config["archive"]
    archiver = ChangeArchiver(
        _workspace_root(config),
        ArchiveOptions(
            skip_validation=archive_cfg["skip_validation"],
            strict=config["validation"]["strict"],
        ),
        AtomicSpecWriter(),
    )
    outcome = archiver.archive(args.change_id, skip_specs=archive_cfg["skip_specs"])

    if args.json:
        _emit_json(outcome.to_dict())
    else:
        _get_renderer(args).archive_outcome(outcome)
    return 0 if outcome.succeeded else 1


def _cmd_validate(args: argparse.Namespace, config: Mapping[str, Any]) -> int:
    root = _workspace_root(config)
    validator = Validator(strict=config["validation"]["strict"])
    renderer = _get_renderer(args)

    if args.all or args.changes or args.specs or args.item is None:
        summary = run_bulk_validation(
            root,
            validator,
            include_changes=not args.specs,
            include_specs=not args.changes,
            concurrency=config["validation"]["concurrency"],
        )
        if args.json:
            _emit_json(summary.to_dict())
        else:
            renderer.bulk_summary(summary)
        return 0 if summary.all_valid else 1

    kind, path = _resolve_item(root, args.item, args.item_type)
    if kind is ItemType.CHANGE:
        report = validator.validate_change(path)
    else:
        report = validator.validate_spec_file(path)

    if args.json:
        _emit_json({"id": args.item, "type": kind.value, **report.to_dict()})
    else:
        renderer.report(report, label=f"{kind.value}/{args.item}")
    return 0 if report.valid else 1


def _cmd_merge(args: argparse.Namespace, config: Mapping[str, Any]) -> int:
    reader = FileSpecReader()
    delta_path = Path(args.delta).expanduser()
    delta_document = reader.read(delta_path)
    if delta_document is None:
        raise CLIError(f"delta file not found: {delta_path}", exit_code=2)

    base_path = Path(args.base).expanduser() if args.base else None
    base_document = reader.read(base_path) if base_path is not None else None
    if args.write and base_path is None:
        raise CLIError("--write requires --base", exit_code=2)
    name = args.name or (base_path or delta_path).resolve().parent.name

    try:
        result = merge_delta(base_document, delta_document, name, args.change_id)
    except SpecMergeError as exc:
        print(f"error: {exc}", file=sys.stderr)
        print("Aborted. No files were changed.", file=sys.stderr)
        return 1

    renderer = _get_renderer(args)
    for warning in result.warnings:
        print(f"Warning: {warning}", file=sys.stderr)
    if args.write and base_path is not None:
        AtomicSpecWriter().write(base_path, result.rebuilt_document)
        renderer.text(f"Applying changes to {base_path}:")
        renderer.items(format_counts(result.counts), prefix="")
    else:
        sys.stdout.write(result.rebuilt_document)
    return 0


def _cmd_config(args: argparse.Namespace, config: Mapping[str, Any]) -> int:
    if args.json:
        _emit_json(config)
        return 0

    renderer = _get_renderer(args)
    renderer.kv("Active profile", args.profile or "(default)")
    renderer.text(dump_effective_config(config))
    return 0


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _emit_json(payload: Mapping[str, object]) -> None:
    """Emit a JSON payload to stdout with deterministic formatting."""

    print(json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False))


def _get_renderer(args: argparse.Namespace) -> CLIRenderer:
    return create_renderer(
        no_color=bool(getattr(args, "no_color", False)),
        verbose=bool(getattr(args, "verbose", False)),
    )


def _logging_config(config: Mapping[str, Any]) -> LoggingConfig:
    observability = config["observability"]
    run_id = datetime.now(tz=UTC).strftime("%Y%m%dT%H%M%SZ") + "-" + uuid.uuid4().hex[:8]
    return LoggingConfig(
        run_id=run_id,
        base_log_dir=config["paths"]["log_dir"],
        level=observability["log_level"],
        log_to_stdout=observability["log_to_stdout"],
    )


def _workspace_root(config: Mapping[str, Any]) -> Path:
    root = Path(config["paths"]["workspace_root"])
    if not root.is_dir():
        raise CLIError(f"workspace root is not a directory: {root}", exit_code=2)
    return root


def _resolve_item(root: Path, item: str, item_type: str | None) -> tuple[ItemType, Path]:
    change_path = root / CHANGES_DIR / item
    spec_path = root / SPECS_DIR / item / SPEC_FILENAME
    candidates: list[tuple[ItemType, Path]] = []
    if item_type in (None, ItemType.CHANGE.value) and change_path.is_dir():
        candidates.append((ItemType.CHANGE, change_path))
    if item_type in (None, ItemType.SPEC.value) and spec_path.is_file():
        candidates.append((ItemType.SPEC, spec_path))

    if not candidates:
        raise CLIError(f"unknown item '{item}'", exit_code=2)
    if len(candidates) > 1:
        raise CLIError(
            f"ambiguous item '{item}' is both a change and a spec; pass --type",
            exit_code=2,
        )
    return candidates[0]


__all__ = ["CLIError", "build_parser", "load_cli_config", "run_cli"]
