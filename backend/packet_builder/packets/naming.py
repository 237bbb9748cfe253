"""Entry naming: fixed packet conventions plus duplicate-name resolution."""

from __future__ import annotations

from typing import Any, Collection, Iterable, Iterator


def document_entry_name(record_id: Any) -> str:
    return f"ticket_{record_id}.pdf"


def namespace_prefix(record_id: Any) -> str:
    return f"packet_{record_id}/"


def split_name(filename: str) -> tuple[str, str]:
    """Split ``filename`` into stem and extension at the last dot.

    The extension keeps its dot (``"a.tar.gz"`` -> ``("a.tar", ".gz")``).
    Names without a dot, and dotfiles such as ``.bashrc``, have no extension.
    """
    stem, dot, ext = filename.rpartition(".")
    if not dot or not stem:
        return filename, ""
    return stem, dot + ext


def resolve(candidate: str, existing: Collection[str]) -> str:
    """Return ``candidate`` or the first free ``stem(n)ext`` variant.

    Pure: the caller records the returned name before resolving the next one.
    """
    if candidate not in existing:
        return candidate
    stem, ext = split_name(candidate)
    counter = 1
    while True:
        renamed = f"{stem}({counter}){ext}"
        if renamed not in existing:
            return renamed
        counter += 1


class NameRegistry:
    """Ordered set of names already committed within one namespace."""

    def __init__(self, names: Iterable[str] = ()) -> None:
        self._names: dict[str, None] = dict.fromkeys(names)

    def claim(self, candidate: str) -> str:
        name = resolve(candidate, self._names)
        self._names[name] = None
        return name

    def __contains__(self, name: object) -> bool:
        return name in self._names

    def __iter__(self) -> Iterator[str]:
        return iter(self._names)

    def __len__(self) -> int:
        return len(self._names)

    def __repr__(self) -> str:
        return f"NameRegistry({list(self._names)!r})"


__all__ = [
    "document_entry_name",
    "namespace_prefix",
    "split_name",
    "resolve",
    "NameRegistry",
]
