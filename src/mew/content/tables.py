"""Lookup tables built once per index build — redirects and tags.

Each table comes as a pair: a small mutable builder used only inside one
build pass, and the frozen table it produces.  The frozen tables wrap their
dicts in ``MappingProxyType`` so a published snapshot cannot be edited.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from mew._errors import DuplicateURLError
from mew._types import Tag, UrlPath


def normalize_url(url: str) -> UrlPath:
    """Drop a trailing slash so ``/about/`` and ``/about`` route the same.

    The root path ``/`` is left alone.

    """
    if len(url) > 1 and url.endswith("/"):
        return url.rstrip("/") or "/"
    return url


def _empty_mapping() -> Mapping:
    return MappingProxyType({})


# ---------------------------------------------------------------------------
# Redirects
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class RedirectTable:
    """Alternate (legacy) URL -> canonical URL."""

    mapping: Mapping[UrlPath, UrlPath] = field(default_factory=_empty_mapping)

    def get(self, url: UrlPath) -> UrlPath | None:
        """Return the canonical URL an alternate URL redirects to, if any."""
        return self.mapping.get(url)

    def items(self) -> Iterator[tuple[UrlPath, UrlPath]]:
        return iter(self.mapping.items())

    def __contains__(self, url: object) -> bool:
        return url in self.mapping

    def __len__(self) -> int:
        return len(self.mapping)


class RedirectTableBuilder:
    """Accumulates redirects during a build."""

    __slots__ = ("_mapping",)

    def __init__(self) -> None:
        self._mapping: dict[UrlPath, UrlPath] = {}

    def add(self, alternate_url: str, current_url: UrlPath) -> None:
        """Map ``alternate_url`` to ``current_url``.

        Re-adding an identical mapping is a no-op.

        Raises:
            DuplicateURLError: The alternate URL already redirects elsewhere.

        """
        alternate = normalize_url(alternate_url)
        existing = self._mapping.get(alternate)
        if existing is not None and existing != current_url:
            raise DuplicateURLError(
                (alternate,),
                f"alternate URL redirects to both {existing} and {current_url}",
            )
        self._mapping[alternate] = current_url

    def add_many(self, alternate_urls: Iterable[str], current_url: UrlPath) -> None:
        for url in alternate_urls:
            self.add(url, current_url)

    def build(self) -> RedirectTable:
        return RedirectTable(mapping=MappingProxyType(dict(self._mapping)))


# ---------------------------------------------------------------------------
# Tags
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class TagIndex:
    """Tag -> positions of its posts in the date-ordered post list.

    Positions are ascending, so resolving them against the post list yields
    posts newest first without sorting at query time.

    """

    mapping: Mapping[Tag, tuple[int, ...]] = field(default_factory=_empty_mapping)

    def get(self, tag: Tag) -> tuple[int, ...]:
        """Return post positions for ``tag`` (empty for unknown tags)."""
        return self.mapping.get(tag, ())

    def tags(self) -> list[Tag]:
        """All known tags, sorted."""
        return sorted(self.mapping)

    def __contains__(self, tag: object) -> bool:
        return tag in self.mapping

    def __len__(self) -> int:
        return len(self.mapping)


class TagIndexBuilder:
    """Accumulates tag postings during a build.

    Posts must be added in final list order; each tag's positions then come
    out already date-ordered.

    """

    __slots__ = ("_mapping",)

    def __init__(self) -> None:
        self._mapping: dict[Tag, list[int]] = {}

    def add(self, position: int, tags: Iterable[Tag]) -> None:
        for tag in tags:
            self._mapping.setdefault(tag, []).append(position)

    def build(self) -> TagIndex:
        frozen = {tag: tuple(positions) for tag, positions in self._mapping.items()}
        return TagIndex(mapping=MappingProxyType(frozen))
