"""Merge plane: delta planning, application, and document recomposition."""

from specdelta.merge.planner import (
    MergeCounts,
    MergePlanResult,
    MergeResult,
    check_delta,
    merge_delta,
    plan_merge,
)
from specdelta.merge.recomposer import build_spec_skeleton, recompose_spec

__all__ = [
    "MergeCounts",
    "MergePlanResult",
    "MergeResult",
    "build_spec_skeleton",
    "check_delta",
    "merge_delta",
    "plan_merge",
    "recompose_spec",
]
