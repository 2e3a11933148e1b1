"""Option evaluation, declaration cleanup and serialization."""

from .aggregate import OptionsAggregator, OptionsDocument, aggregate
from .evaluate import EvaluationContext, evaluate_module_set
from .locations import PathNormalizer, UrlTemplate, strip_any_prefixes

__all__ = [
    "EvaluationContext",
    "OptionsAggregator",
    "OptionsDocument",
    "PathNormalizer",
    "UrlTemplate",
    "aggregate",
    "evaluate_module_set",
    "strip_any_prefixes",
]
