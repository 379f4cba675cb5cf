"""
HTTP transport for Kagane page images.
"""

from .http import ChapterRef, PageRef, PageFetcher, RetryState, TokenStore, build_page_refs

__all__ = [
    'ChapterRef',
    'PageRef',
    'PageFetcher',
    'RetryState',
    'TokenStore',
    'build_page_refs',
]
