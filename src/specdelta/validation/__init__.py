"""Validation plane: structural gate, reports, and bulk validation."""

from specdelta.validation.bulk import (
    BulkItem,
    BulkItemResult,
    BulkValidationSummary,
    ItemType,
    discover_items,
    run_bulk_validation,
    validate_items,
)
from specdelta.validation.report import IssueLevel, ValidationIssue, ValidationReport
from specdelta.validation.validator import Validator, has_scenario

__all__ = [
    "BulkItem",
    "BulkItemResult",
    "BulkValidationSummary",
    "IssueLevel",
    "ItemType",
    "ValidationIssue",
    "ValidationReport",
    "Validator",
    "discover_items",
    "has_scenario",
    "run_bulk_validation",
    "validate_items",
]
