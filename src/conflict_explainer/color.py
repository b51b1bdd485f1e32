import dataclasses
import enum


class Style(enum.Enum):
    none = ""
    reset = "\033[0m"
    bold = "\033[01m"


class Fg(enum.Enum):
    none = ""
    red = "\033[31m"
    green = "\033[32m"


def color(msg: str, fg: Fg | str = Fg.none, style: Style | str = Style.none) -> str:
    fg = fg if isinstance(fg, Fg) else getattr(Fg, fg)
    style = style if isinstance(style, Style) else getattr(Style, style)
    if fg is Fg.none and style is Style.none:
        return msg
    return f"{fg.value}{style.value}{msg}{Style.reset.value}"


@dataclasses.dataclass(frozen=True)
class Palette:
    """How installable and uninstallable parts of a message are highlighted."""

    available_fg: Fg = Fg.none
    unavailable_fg: Fg = Fg.none
    style: Style = Style.none

    @classmethod
    def plain(cls) -> "Palette":
        return cls()

    @classmethod
    def colored(cls) -> "Palette":
        return cls(available_fg=Fg.green, unavailable_fg=Fg.red, style=Style.bold)

    def available(self, msg: str) -> str:
        return color(msg, fg=self.available_fg, style=self.style)

    def unavailable(self, msg: str) -> str:
        return color(msg, fg=self.unavailable_fg, style=self.style)
