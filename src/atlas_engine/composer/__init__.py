"""Deterministic description composition."""

from atlas_engine.composer.renderer import MarkdownRenderer
from atlas_engine.composer.service import DescriptionComposer

__all__ = ["DescriptionComposer", "MarkdownRenderer"]
