"""Data model, errors and the merge pipeline."""

from .models import MergeResult, MergeStrategy, OverlayMode, Quote
from .exceptions import QuoteMergeError

__all__ = ["MergeResult", "MergeStrategy", "OverlayMode", "Quote", "QuoteMergeError"]
