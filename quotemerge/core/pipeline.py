"""
Merge pipeline for QuoteMerge.

This module ties the loader, strategy selector, page copier, overlay and token
replacement together into one call that turns a template plus a quote into
agreement bytes. Every call builds its own fonts and documents; the engine
itself only holds configuration.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import List, Dict, Optional, Callable, Any, Union, Set
from collections import defaultdict
from pathlib import Path
import time
import logging

import fitz  # PyMuPDF

from quotemerge.core.exceptions import (
    QuoteMergeError, ConfigurationError, MergeIntegrityError, RenderingError
)
from quotemerge.core.models import (
    Branding, MergeResult, MergeStrategy, OverlayMode, Quote, TokenMatch, TokenRequirement
)
from quotemerge.core.placeholders import PlaceholderMap, build_placeholder_map
from quotemerge.core.strategy import TemplateHint, select_strategy, resolve_target_page
from quotemerge.core.validator import MergeOutputValidator
from quotemerge.extraction.loader import OutputDocument, TemplateDocument, load_template
from quotemerge.extraction.token_locator import TokenLocator
from quotemerge.rendering.fonts import FontSet
from quotemerge.rendering.layout import TABLE_STYLES
from quotemerge.rendering.overlay import OverlayRenderer
from quotemerge.rendering.page_copier import copy_all_pages
from quotemerge.rendering.signatures import SignatureRenderer
from quotemerge.rendering.token_replacer import (
    DEFAULT_FALLBACK_CANDIDATES, TokenReplacer, apply_fallback
)

logger = logging.getLogger(__name__)


@dataclass
class MergeConfig:
    """Complete configuration for the merge engine."""

    # Vendor identity and wording
    branding: Branding = field(default_factory=Branding)

    # Pricing table
    table_style: str = "four_column"        # four_column, two_column
    two_column_max_width: float = 420.0      # narrower pages switch to two columns

    # Token search
    x_tolerance: float = 1.5
    y_tolerance: float = 2.0
    word_gap_ratio: float = 0.6

    # Token replacement
    redact_tokens: bool = True
    min_font_size: float = 6.0

    # Degraded mode: [x, top, width, height] on the 612 x 792 reference page
    fallback_candidates: List[List[float]] = field(
        default_factory=lambda: [list(c) for c in DEFAULT_FALLBACK_CANDIDATES]
    )
    fallback_font_size: float = 12.0

    # Page-replace target when the template catalog gives none
    default_target_page: int = 0

    # Optional TrueType files; base-14 Helvetica when unset
    regular_font_file: Optional[str] = None
    bold_font_file: Optional[str] = None

    # Output
    verify_output: bool = True
    garbage_level: int = 3

    def validate(self) -> List[str]:
        """Validate configuration and return any issues."""
        issues = []

        if self.table_style not in TABLE_STYLES:
            issues.append(f"table_style must be one of {sorted(TABLE_STYLES)}")

        if self.two_column_max_width <= 0:
            issues.append("two_column_max_width must be positive")

        if self.x_tolerance < 0 or self.y_tolerance < 0:
            issues.append("x_tolerance and y_tolerance must not be negative")

        if self.word_gap_ratio < 0:
            issues.append("word_gap_ratio must not be negative")

        if self.min_font_size <= 0:
            issues.append("min_font_size must be positive")

        if self.fallback_font_size < self.min_font_size:
            issues.append("fallback_font_size must be at least min_font_size")

        if not self.fallback_candidates:
            issues.append("fallback_candidates must list at least one position")
        for i, candidate in enumerate(self.fallback_candidates):
            if len(candidate) != 4:
                issues.append(f"fallback_candidates[{i}] must be [x, top, width, height]")
            elif candidate[2] <= 0 or candidate[3] <= 0:
                issues.append(f"fallback_candidates[{i}] needs a positive width and height")

        if self.default_target_page < 0:
            issues.append("default_target_page must not be negative")

        if not 0 <= self.garbage_level <= 4:
            issues.append("garbage_level must be between 0 and 4")

        for name in ("regular_font_file", "bold_font_file"):
            path = getattr(self, name)
            if path and not Path(path).is_file():
                issues.append(f"{name} not found: {path}")

        for name, render in (("title_template", self.branding.title), ("intro_template", self.branding.intro)):
            try:
                render("Example")
            except (KeyError, IndexError, ValueError) as e:
                issues.append(f"branding.{name} is not a valid template: {e}")

        return issues

    def to_dict(self) -> Dict[str, Any]:
        return {
            "branding": self.branding.to_dict(),
            "table_style": self.table_style,
            "two_column_max_width": self.two_column_max_width,
            "x_tolerance": self.x_tolerance,
            "y_tolerance": self.y_tolerance,
            "word_gap_ratio": self.word_gap_ratio,
            "redact_tokens": self.redact_tokens,
            "min_font_size": self.min_font_size,
            "fallback_candidates": [list(c) for c in self.fallback_candidates],
            "fallback_font_size": self.fallback_font_size,
            "default_target_page": self.default_target_page,
            "regular_font_file": self.regular_font_file,
            "bold_font_file": self.bold_font_file,
            "verify_output": self.verify_output,
            "garbage_level": self.garbage_level,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> MergeConfig:
        """
        Build a config from a flat mapping (the ``merge`` section of a YAML
        config). Unknown keys are ignored with a warning.
        """
        data = dict(data or {})
        known = set(cls.__dataclass_fields__)
        unknown = sorted(set(data) - known)
        if unknown:
            logger.warning(f"Ignoring unknown merge config keys: {', '.join(unknown)}")

        kwargs = {k: v for k, v in data.items() if k in known}
        branding = kwargs.pop("branding", None)
        if isinstance(branding, dict):
            kwargs["branding"] = Branding.from_dict(branding)
        elif isinstance(branding, Branding):
            kwargs["branding"] = branding
        if "fallback_candidates" in kwargs:
            kwargs["fallback_candidates"] = [list(c) for c in kwargs["fallback_candidates"]]
        return cls(**kwargs)

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> MergeConfig:
        """Load ``merge`` and ``branding`` sections from a YAML config file."""
        from quotemerge.utils.config_loader import load_config

        config = load_config(path)
        data = dict(config.get("merge", {}))
        if "branding" in config:
            data["branding"] = config["branding"]
        return cls.from_dict(data)


class MergeEngine:
    """
    Merges quote data into PDF templates.

    The engine holds configuration and a font factory only. Fonts, the
    template and the output document are created inside each ``merge`` call
    and closed before it returns.
    """

    def __init__(self, config: Optional[MergeConfig] = None, font_factory: Optional[Callable[[], FontSet]] = None):
        self.config = config or MergeConfig()

        issues = self.config.validate()
        if issues:
            raise ValueError(f"Configuration issues: {', '.join(issues)}")

        self.font_factory = font_factory or self._default_fonts
        self.locator = TokenLocator(
            x_tolerance=self.config.x_tolerance,
            y_tolerance=self.config.y_tolerance,
            word_gap_ratio=self.config.word_gap_ratio,
        )
        self.validator = MergeOutputValidator()

    def _default_fonts(self) -> FontSet:
        return FontSet.from_files(self.config.regular_font_file, self.config.bold_font_file)

    def merge(
        self,
        template_bytes: bytes,
        quote: Union[Quote, Dict[str, Any]],
        quote_number: str,
        hint: Optional[TemplateHint] = None
    ) -> MergeResult:
        """
        Merge ``quote`` into the template.

        Args:
            template_bytes: Template PDF; never modified
            quote: Quote, or the JSON dict a front-end sends
            quote_number: Document reference printed on the agreement
            hint: What the template catalog knows about this template

        Returns:
            MergeResult carrying the output bytes

        Raises:
            InvalidFormat, CorruptDocument: Unusable template
            ConfigurationError: Bad category or page index in ``hint``
            FontEmbedFailure: A font could not be registered (retry is safe)
            RenderingError: Drawing failed
            MergeIntegrityError: Output failed verification
        """
        start_time = time.time()
        quote_number = str(quote_number)
        name = hint.filename if hint is not None and hint.filename else None

        template: Optional[TemplateDocument] = None
        try:
            if isinstance(quote, dict):
                quote = Quote.from_dict(quote)
            template = load_template(template_bytes, name=name)
            result = self._merge(template, quote, quote_number, hint)
        except QuoteMergeError as e:
            logger.error(f"Merge failed for quote {quote_number}: {e.message} {e.details or ''}".rstrip())
            raise
        finally:
            if template is not None:
                template.close()

        result.processing_time = time.time() - start_time
        logger.info(
            f"Merged quote {quote_number}: {result.strategy.name}, {result.page_count} page(s), "
            f"{result.replaced_tokens} token(s) replaced, degraded={result.degraded} "
            f"in {result.processing_time:.2f}s"
        )
        return result

    def _merge(self, template: TemplateDocument, quote: Quote, quote_number: str,
               hint: Optional[TemplateHint]) -> MergeResult:
        page_count = template.page_count()
        strategy = select_strategy(hint, page_count)
        target = 0
        if strategy is MergeStrategy.PAGE_REPLACE:
            target = resolve_target_page(hint, page_count, self.config.default_target_page)
        logger.info(f"Merging quote {quote_number} into {page_count}-page template ({strategy.name})")

        fonts = self.font_factory()
        result = MergeResult(pdf_bytes=b"", strategy=strategy, page_count=page_count, target_page=target)
        touched: Set[int] = set()

        # Tokens are located on the pristine template; the overlay may cover some of them.
        required = list(hint.required_tokens) if hint is not None else []
        located = self._locate_required(template, required)

        output = OutputDocument(name=template.name, garbage=self.config.garbage_level)
        try:
            copy_all_pages(template, output)

            renderer = OverlayRenderer(
                fonts,
                self.config.branding,
                table_style=self.config.table_style,
                two_column_max_width=self.config.two_column_max_width,
                min_font_size=self.config.min_font_size,
            )
            if strategy is MergeStrategy.GENERIC_OVERLAY:
                result.sanitization_loss += renderer.render_overlay(
                    output.get_page(0), quote, quote_number,
                    mode=OverlayMode.PATCH, page_total=page_count,
                )
            else:
                result.sanitization_loss += renderer.render_page_replace(
                    output.get_page(target), quote, quote_number
                )
            touched.add(target)

            if required:
                placeholder_map = build_placeholder_map(quote, quote_number)
                self._substitute_required(output, required, located, renderer.painted,
                                          placeholder_map, fonts, result, touched)

            if hint is not None and hint.signature_page is not None and quote.has_signatures:
                page_index = self._check_page(hint.signature_page, page_count, "signature_page")
                signer = SignatureRenderer(fonts, min_font_size=self.config.min_font_size)
                result.sanitization_loss += signer.render(output.get_page(page_index), quote)
                touched.add(page_index)

            pdf_bytes = output.serialize()
        except RuntimeError as e:
            raise RenderingError(f"Unexpected PDF engine error: {e}", operation="merge") from e
        finally:
            output.close()

        if self.config.verify_output:
            check = self.validator.validate(template, pdf_bytes, touched)
            if not check.is_valid:
                raise MergeIntegrityError("Merged output failed verification", errors=check.errors)

        if result.sanitization_loss:
            logger.debug(f"Sanitizer dropped {result.sanitization_loss} character(s) for quote {quote_number}")

        result.pdf_bytes = pdf_bytes
        result.touched_pages = sorted(touched)
        return result

    def _locate_required(
        self,
        template: TemplateDocument,
        requirements: List[TokenRequirement]
    ) -> Dict[int, List[TokenMatch]]:
        """Find each required page's tokens before anything is drawn."""
        keys_by_page: Dict[int, List[str]] = defaultdict(list)
        for requirement in requirements:
            self._check_page(requirement.page_index, template.page_count(), "required_tokens.page_index")
            keys_by_page[requirement.page_index].append(requirement.key)
        return {
            page_index: self.locator.find_tokens_on_page(template, page_index, keys)
            for page_index, keys in keys_by_page.items()
        }

    def _substitute_required(
        self,
        output: OutputDocument,
        requirements: List[TokenRequirement],
        located: Dict[int, List[TokenMatch]],
        painted: Dict[int, List[fitz.Rect]],
        placeholder_map: PlaceholderMap,
        fonts: FontSet,
        result: MergeResult,
        touched: Set[int]
    ) -> None:
        """
        Replace located tokens page by page; write fallbacks for the rest.

        A match that overlaps anything the overlay drew is not replaced:
        redacting it would erase overlay text. Its requirement goes to the
        fallback, which also keeps clear of the overlay.
        """
        by_page: Dict[int, List[TokenRequirement]] = defaultdict(list)
        for requirement in requirements:
            by_page[requirement.page_index].append(requirement)

        replacer = TokenReplacer(fonts, redact_text=self.config.redact_tokens,
                                 min_font_size=self.config.min_font_size)

        for page_index in sorted(by_page):
            page_requirements = by_page[page_index]
            drawn = painted.get(page_index, [])

            matches: List[TokenMatch] = []
            for match in located.get(page_index, []):
                box = fitz.Rect(match.bbox.to_tuple())
                if any(box.intersects(area) for area in drawn):
                    result.warnings.append(
                        f"{match.matched_text} on page {page_index} is covered by the quote overlay"
                    )
                    logger.warning(f"Token {match.token!r} on page {page_index} lies under the overlay; not replaced")
                    continue
                matches.append(match)

            found = {m.token for m in matches}
            if matches:
                replaced = replacer.replace_tokens(output, matches, placeholder_map)
                result.token_matches.extend(matches)
                result.replaced_tokens += replaced.count
                result.sanitization_loss += replaced.chars_dropped
                touched.add(page_index)
                logger.debug(f"Page {page_index}: replaced {replaced.count} token(s)")

            for requirement in page_requirements:
                if self.locator.canonical(requirement.key) in found:
                    continue
                outcome = apply_fallback(
                    output, page_index, requirement, placeholder_map, fonts,
                    candidates=self.config.fallback_candidates,
                    font_size=self.config.fallback_font_size,
                    avoid=drawn,
                )
                touched.add(page_index)
                result.fallbacks.append(outcome)
                result.degraded = True
                if page_index not in result.degraded_pages:
                    result.degraded_pages.append(page_index)
                result.warnings.append(
                    f"{requirement.key} not found on page {page_index}; "
                    f"wrote '{outcome.text}' at fallback position {outcome.candidate_index}"
                )

    @staticmethod
    def _check_page(page_index: int, page_count: int, key: str) -> int:
        if not 0 <= page_index < page_count:
            raise ConfigurationError(
                f"Page {page_index} outside {page_count}-page template",
                config_key=key,
                invalid_value=page_index,
            )
        return page_index


def merge_template(
    template_bytes: bytes,
    quote: Union[Quote, Dict[str, Any]],
    quote_number: str,
    hint: Optional[TemplateHint] = None,
    config: Optional[MergeConfig] = None
) -> bytes:
    """
    Merge with a fresh engine and return only the PDF bytes.

    Being a plain module-level function, this can be submitted to a
    ``ProcessPoolExecutor``.
    """
    return MergeEngine(config).merge(template_bytes, quote, quote_number, hint).pdf_bytes
