"""Mew — a small blog server that rebuilds itself as you edit.

Pages and dated posts are listed in YAML, rendered from Markdown or HTML,
and served through Kida templates.  Every edit to the content, the records,
or the templates triggers one debounced rebuild; the finished index is
swapped in atomically while requests keep being answered.

Quick start::

    import mew

    mew.serve("my-blog/")         # Serve and reload on change
    mew.check("my-blog/")         # Build once and report

Built on:

    pounce      ASGI server       (serves apps)
    chirp       Web framework     (routes requests)
    kida        Template engine   (renders HTML)
    patitas     Markdown parser   (parses content)
    rosettes    Syntax highlighter (highlights code)

"""

# PEP 703: Declare this module as free-threading safe
_Py_mod_gil = 0

__version__ = "0.1.0"
__all__ = [
    "ServerConfig",
    "__version__",
    "check",
    "create_app",
    "load_site",
    "serve",
]


def __getattr__(name: str) -> object:
    """Lazy imports for the public API.

    Keeps ``import mew`` fast; Chirp and Patitas load on first use.
    """
    if name == "ServerConfig":
        from mew.config import ServerConfig

        return ServerConfig

    if name in {"check", "create_app", "load_site", "serve"}:
        from mew import app

        return getattr(app, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
