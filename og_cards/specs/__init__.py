"""Render job providers and selection."""

from og_cards.specs.base import BaseSpecProvider
from og_cards.specs.docs import DocsSpecProvider
from og_cards.specs.selection import JobSelection, select_jobs
from og_cards.specs.static import StaticSpecProvider

__all__ = [
    "BaseSpecProvider",
    "DocsSpecProvider",
    "JobSelection",
    "StaticSpecProvider",
    "select_jobs",
]
