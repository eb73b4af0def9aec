"""
BOQ pricing engine and services.
"""
from .normalizer import normalize, normalize_all
from .aggregator import aggregate, summarize_by_type
from .diff_engine import diff
from .boq_service import BOQService

__all__ = [
    "normalize",
    "normalize_all",
    "aggregate",
    "summarize_by_type",
    "diff",
    "BOQService",
]
