"""
cms/renderer.py
-----------------------------------------------------------------------------
Kind-dispatched rendering of stored file content.

- ``FileKind.MARKDOWN`` → HTML fragment from markdown-it-py's CommonMark
  preset, meant to be embedded in a page template.
- ``FileKind.TEXT``     → the content unchanged, served as ``text/plain``.

Raw HTML blocks inside markdown are not passed through; they are rendered as
escaped text.
"""

from __future__ import annotations

from dataclasses import dataclass

from markdown_it import MarkdownIt

from cms.paths import FileKind

_markdown = MarkdownIt("commonmark", {"html": False})


@dataclass(frozen=True)
class RenderedOutput:
    body: str
    media_type: str
    is_fragment: bool


def render_markdown(content: str) -> str:
    return _markdown.render(content)


def render(content: str, kind: FileKind) -> RenderedOutput:
    """Render *content* according to *kind*."""
    match kind:
        case FileKind.MARKDOWN:
            return RenderedOutput(
                body=render_markdown(content), media_type="text/html", is_fragment=True
            )
        case FileKind.TEXT:
            return RenderedOutput(body=content, media_type="text/plain", is_fragment=False)
