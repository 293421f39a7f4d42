"""Filter expressions: ``(today | overdue) & p1 & #Work``."""

from todoist_cache.filter.evaluator import (
    FilterContext,
    FilterEvaluator,
    evaluate,
    filter_collection,
)
from todoist_cache.filter.parser import parse

__all__ = ["FilterContext", "FilterEvaluator", "evaluate", "filter_collection", "parse"]
