"""Data models."""

from og_cards.models.job import CaptureResult, CaptureSummary, RenderJob

__all__ = ["CaptureResult", "CaptureSummary", "RenderJob"]
