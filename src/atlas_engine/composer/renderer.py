"""Markdown renderer for composed descriptions.

``MarkdownRenderer`` is the only place in the composer that turns text into
markup. It raises :class:`~atlas_engine.errors.RenderError` on failure; the
composer catches every rendering failure and falls back to the raw text, so
a broken extension never costs a player their room description.

Layer values are authored content, not player input, and are passed through
Python-Markdown unchanged.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Protocol

import markdown

from atlas_engine.errors import RenderError

logger = logging.getLogger(__name__)


class MarkupRenderer(Protocol):
    def render(self, text: str) -> str: ...


class MarkdownRenderer:
    """Render description text to HTML with Python-Markdown.

    A fresh converter is built per call, so one renderer instance can be
    shared across threads.
    """

    def __init__(self, *, extensions: Sequence[str] = ()) -> None:
        self._extensions = list(extensions)

    def render(self, text: str) -> str:
        """Return ``text`` as HTML; empty text renders to an empty string.

        Raises:
            RenderError: Python-Markdown or one of its extensions failed.
        """
        if not text:
            return ""
        try:
            return markdown.markdown(text, extensions=self._extensions)
        except Exception as exc:
            logger.debug("Markdown conversion failed (extensions=%s)", self._extensions)
            raise RenderError(f"markdown rendering failed: {exc}") from exc
