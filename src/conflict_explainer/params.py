from __future__ import annotations

import dataclasses
import os
import typing as T

from .color import Palette

UNICODE_INDENT = (("│  ", "   "), ("├─ ", "└─ "))
ASCII_INDENT = (("|  ", "   "), ("|- ", "`- "))


@dataclasses.dataclass(frozen=True)
class GraphicsParams:
    """Options controlling how problems are rendered.

    ``indent`` is indexed first by whether the tree level is the last one on the line, then by
    whether the node is the last child of its parent.
    """

    indent: tuple[tuple[str, str], tuple[str, str]] = UNICODE_INDENT
    palette: Palette = Palette()
    sep: str = "|"
    etc: str = "..."
    threshold: int = 5
    remove_duplicates: bool = True

    @classmethod
    def from_env(cls, environ: T.Mapping[str, str] | None = None, **kwargs: T.Any) -> GraphicsParams:
        """Pick the palette from the ``NO_COLOR`` and ``CLICOLOR_FORCE`` conventions."""
        environ = os.environ if environ is None else environ
        colored = not environ.get("NO_COLOR") and environ.get("CLICOLOR_FORCE", "0") not in ("", "0")
        kwargs.setdefault("palette", Palette.colored() if colored else Palette.plain())
        return cls(**kwargs)

    @property
    def trunc_options(self) -> dict[str, T.Any]:
        return {
            "sep": self.sep,
            "etc": self.etc,
            "threshold": self.threshold,
            "remove_duplicates": self.remove_duplicates,
        }
