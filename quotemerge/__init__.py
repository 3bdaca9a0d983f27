"""
QuoteMerge: quote data merged into PDF agreement templates

Templates are copied page for page without re-rendering; only the regions
that carry quote data are repainted. Multi-page agreements keep every page
except the target byte-for-byte in content.

Usage:
    from quotemerge import MergeEngine, MergeConfig, TemplateHint

    engine = MergeEngine(MergeConfig())
    result = engine.merge(template_bytes, quote, "Q-1001",
                          hint=TemplateHint(category="sow", target_page=2))
    open("agreement.pdf", "wb").write(result.pdf_bytes)
"""

__version__ = "1.0.0"
__author__ = "QuoteMerge Team"
__license__ = "MIT"

__all__ = [
    "__version__",
    "__author__",
    "__license__",
]

from quotemerge.core.models import (
    Branding,
    BoundingBox,
    Calculation,
    Configuration,
    DealData,
    FallbackOutcome,
    MergeResult,
    MergeStrategy,
    OverlayMode,
    PricingTier,
    Quote,
    SignatureBlock,
    TokenMatch,
    TokenRequirement
)
__all__.extend([
    "Branding", "BoundingBox", "Calculation", "Configuration", "DealData",
    "FallbackOutcome", "MergeResult", "MergeStrategy", "OverlayMode",
    "PricingTier", "Quote", "SignatureBlock", "TokenMatch", "TokenRequirement"
])

from quotemerge.core.exceptions import (
    QuoteMergeError,
    InvalidFormat,
    CorruptDocument,
    FontEmbedFailure,
    RenderingError,
    MergeIntegrityError,
    ConfigurationError,
    StorageError
)
__all__.extend([
    "QuoteMergeError", "InvalidFormat", "CorruptDocument", "FontEmbedFailure",
    "RenderingError", "MergeIntegrityError", "ConfigurationError", "StorageError"
])

from quotemerge.core.pipeline import MergeEngine, MergeConfig, merge_template
from quotemerge.core.strategy import TemplateHint, select_strategy
__all__.extend(["MergeEngine", "MergeConfig", "merge_template", "TemplateHint", "select_strategy"])

from quotemerge.text.sanitizer import sanitize
from quotemerge.extraction.loader import load_template
from quotemerge.extraction.token_locator import TokenLocator, Found, NotFound
from quotemerge.rendering.overlay import render_quote_document
__all__.extend([
    "sanitize", "load_template", "TokenLocator", "Found", "NotFound", "render_quote_document"
])
