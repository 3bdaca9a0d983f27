"""Template classification: which merge strategy a template gets."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from .exceptions import ConfigurationError
from .models import MergeStrategy, TokenRequirement

logger = logging.getLogger(__name__)

PAGE_REPLACE_CATEGORIES = frozenset({
    "sow",
    "statement_of_work",
    "statement of work",
    "multi_page_agreement",
    "multi-page agreement",
    "agreement",
})
GENERIC_CATEGORIES = frozenset({"generic", "quote"})

_PAGE_REPLACE_NAME = re.compile(
    r"(?<![a-z0-9])(sow|statement[\s_-]*of[\s_-]*work|agreement|msa)(?![a-z0-9])",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class TemplateHint:
    """
    What the template catalog tells the engine about a template.

    Attributes:
        category: Catalog category ("generic", "sow", "multi_page_agreement", ...)
        filename: Upload filename, used when no category is given
        target_page: Page repainted by the page-replace strategy
        required_tokens: Pages that must receive a value, found or not
        signature_page: Page carrying the vendor/client signature fields
    """
    category: Optional[str] = None
    filename: Optional[str] = None
    target_page: Optional[int] = None
    required_tokens: Tuple[TokenRequirement, ...] = field(default_factory=tuple)
    signature_page: Optional[int] = None

    @classmethod
    def for_filename(cls, filename: str, **kwargs) -> TemplateHint:
        return cls(filename=filename, **kwargs)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> TemplateHint:
        required = tuple(
            TokenRequirement(**item) if isinstance(item, dict) else item
            for item in data.get("required_tokens", ())
        )
        return cls(
            category=data.get("category"),
            filename=data.get("filename"),
            target_page=data.get("target_page"),
            required_tokens=required,
            signature_page=data.get("signature_page"),
        )


def select_strategy(hint: Optional[TemplateHint], page_count: int) -> MergeStrategy:
    """
    Classify a template once, at merge start.

    An explicit category wins; otherwise the filename decides; otherwise the
    template is treated as generic.
    """
    if hint is None:
        return MergeStrategy.GENERIC_OVERLAY

    if hint.category:
        category = hint.category.strip().lower()
        if category in PAGE_REPLACE_CATEGORIES:
            return MergeStrategy.PAGE_REPLACE
        if category in GENERIC_CATEGORIES:
            return MergeStrategy.GENERIC_OVERLAY
        raise ConfigurationError(
            f"Unknown template category: {hint.category}",
            config_key="category",
            invalid_value=hint.category,
            valid_values=sorted(PAGE_REPLACE_CATEGORIES | GENERIC_CATEGORIES),
        )

    if hint.filename and _PAGE_REPLACE_NAME.search(hint.filename):
        logger.debug(f"Filename {hint.filename!r} looks like a multi-page agreement ({page_count} page(s))")
        return MergeStrategy.PAGE_REPLACE

    return MergeStrategy.GENERIC_OVERLAY


def resolve_target_page(hint: Optional[TemplateHint], page_count: int, default: int = 0) -> int:
    """Target page for page-replace, validated against the document."""
    target = default if hint is None or hint.target_page is None else hint.target_page
    if not 0 <= target < page_count:
        raise ConfigurationError(
            f"Target page {target} outside {page_count}-page template",
            config_key="target_page",
            invalid_value=target,
        )
    return target
