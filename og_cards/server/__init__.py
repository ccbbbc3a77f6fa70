"""Template server discovery, launch and readiness."""

from og_cards.server.locator import RenderTargetHandle, TemplateServerLocator, join_url
from og_cards.server.probe import ReadinessProbe

__all__ = ["ReadinessProbe", "RenderTargetHandle", "TemplateServerLocator", "join_url"]
