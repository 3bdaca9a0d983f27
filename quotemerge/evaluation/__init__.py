"""Page digests and pixel diffs for checking merged output."""

from .diff import page_content_digest, masked_pixel_diff, changed_pages

__all__ = ['page_content_digest', 'masked_pixel_diff', 'changed_pages']
