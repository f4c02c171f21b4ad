"""Content renderer — source file to HTML string.

Dispatches on the file extension:

- ``.md`` / ``.markdown`` -> Patitas Markdown with Rosettes-highlighted code
- anything else (``.html``, ``.htm``, plain text) -> passed through unchanged

Rendering is a pure function of the file contents, so the same renderer is
shared by every index build.

Thread Safety:
    Patitas' ``Markdown`` keeps per-call parse config in a ContextVar, so one
    renderer may be used from the reload worker thread while another build
    (e.g. ``mew check``) runs elsewhere.

"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

from mew._errors import RenderError, SourceReadError

# Extensions routed through the markdown pipeline
MARKDOWN_SUFFIXES: frozenset[str] = frozenset({".md", ".markdown"})

# Patitas plugins roughly matching a "everything on" CommonMark+GFM dialect
_MARKDOWN_PLUGINS = ["table", "strikethrough", "task_lists", "footnotes"]


def create_markdown(*, highlight: bool = True) -> Callable[[str], str]:
    """Create the Patitas markdown callable used for ``.md`` sources.

    Code fences are highlighted through Rosettes when ``highlight`` is set
    (Patitas picks Rosettes up automatically via ``patitas[syntax]``).

    """
    from patitas import Markdown

    return Markdown(highlight=highlight, plugins=list(_MARKDOWN_PLUGINS))


class ContentRenderer:
    """Renders content source files to HTML.

    Args:
        markdown: Callable turning markdown text into HTML.  Defaults to the
            Patitas pipeline from :func:`create_markdown`.

    """

    __slots__ = ("_markdown",)

    def __init__(self, markdown: Callable[[str], str] | None = None) -> None:
        self._markdown = markdown if markdown is not None else create_markdown()

    def render(self, path: Path) -> str:
        """Read ``path`` and return its HTML.

        Raises:
            SourceReadError: The file is missing, unreadable, or not UTF-8.
            RenderError: The markdown pipeline failed on the file's content.

        """
        try:
            raw = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise SourceReadError(path, exc) from exc

        if path.suffix.lower() not in MARKDOWN_SUFFIXES:
            return raw

        try:
            return self._markdown(raw)
        except Exception as exc:
            raise RenderError(path, exc) from exc

    __call__ = render
