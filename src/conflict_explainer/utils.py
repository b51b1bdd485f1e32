import dataclasses
from typing import Any, Hashable, Iterable, TypeVar

import packaging.version

T = TypeVar("T", bound=Hashable)


@dataclasses.dataclass
class Counter:
    cnt: int = 0

    def __call__(self) -> int:
        old = self.cnt
        self.cnt += 1
        return old


def unique(iterable: Iterable[T]) -> list[T]:
    """Remove duplicates while keeping the first occurence order."""
    return list(dict.fromkeys(iterable))


def repr_trunc(
    seq: Iterable[str],
    sep: str = "|",
    etc: str = "...",
    threshold: int = 5,
    remove_duplicates: bool = True,
) -> str:
    seq = unique(seq) if remove_duplicates else list(seq)
    if len(seq) <= threshold:
        return sep.join(seq)
    return sep.join(seq[:threshold] + [etc])


def version_key(version: str) -> tuple[int, Any]:
    """Sort key putting valid versions first, in version order, then the rest alphabetically."""
    try:
        return (0, packaging.version.Version(version))
    except packaging.version.InvalidVersion:
        return (1, version)
