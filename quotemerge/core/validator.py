"""
Output verification.

After serialization the output is reopened and checked against the template
it came from:
1. Same page count
2. Every page the merge did not draw on is unchanged
3. Every page the merge drew on still opens
"""

from dataclasses import dataclass, field
from typing import Iterable, List
import logging

import fitz  # PyMuPDF

from quotemerge.evaluation.diff import page_content_digest
from quotemerge.extraction.loader import TemplateDocument

logger = logging.getLogger(__name__)


@dataclass
class ValidationResult:
    """Result of output verification."""
    is_valid: bool = True
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    template_pages: int = 0
    output_pages: int = 0
    unchanged_pages: List[int] = field(default_factory=list)
    modified_pages: List[int] = field(default_factory=list)


class MergeOutputValidator:
    """Checks serialized merge output against its template."""

    def __init__(self, require_untouched_identical: bool = True):
        self.require_untouched_identical = require_untouched_identical

    def validate(self, template: TemplateDocument, output_bytes: bytes, touched_pages: Iterable[int]) -> ValidationResult:
        """
        Validate merge output.

        Args:
            template: The open template the output was built from
            output_bytes: Serialized output
            touched_pages: Pages the merge drew on

        Returns:
            ValidationResult
        """
        result = ValidationResult(template_pages=template.page_count())
        touched = set(touched_pages)

        try:
            output = fitz.open(stream=output_bytes, filetype="pdf")
        except (RuntimeError, ValueError) as e:
            result.is_valid = False
            result.errors.append(f"Output cannot be reopened: {e}")
            return result

        with output:
            result.output_pages = output.page_count
            if output.page_count != template.page_count():
                result.errors.append(
                    f"Page count changed: template {template.page_count()}, output {output.page_count}"
                )
                result.is_valid = False
                return result

            for index in range(output.page_count):
                if index in touched:
                    try:
                        output[index].get_text("text")
                    except (RuntimeError, ValueError) as e:
                        result.errors.append(f"Page {index} unreadable after drawing: {e}")
                    result.modified_pages.append(index)
                    continue

                same = page_content_digest(template.get_page(index)) == page_content_digest(output[index])
                if same:
                    result.unchanged_pages.append(index)
                elif self.require_untouched_identical:
                    result.errors.append(f"Page {index} changed although the merge did not draw on it")
                else:
                    result.warnings.append(f"Page {index} differs from the template")

        result.is_valid = not result.errors
        if not result.is_valid:
            logger.error(f"Output verification failed: {result.errors}")
        return result
