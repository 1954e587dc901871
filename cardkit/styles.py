from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional

FONT_WEIGHT_NORMAL = "normal"
FONT_WEIGHT_BOLD = "700"
FONT_STYLE_NORMAL = "normal"
FONT_STYLE_ITALIC = "italic"
DECORATION_NONE = "none"
DECORATION_LINE_THROUGH = "line-through"


@dataclass(frozen=True)
class StyleDescriptor:
    """Fully resolved style of a run of characters.

    Two descriptors compare equal exactly when every attribute matches; the
    run composer relies on that to decide where one run ends and the next
    begins.
    """

    font_size: float
    font_weight: str = FONT_WEIGHT_NORMAL
    font_style: str = FONT_STYLE_NORMAL
    is_highlight: bool = False
    is_code: bool = False
    text_decoration: str = DECORATION_NONE
    heading_level: Optional[int] = None

    @property
    def is_bold(self) -> bool:
        if self.font_weight == "bold":
            return True
        try:
            return int(self.font_weight) >= 600
        except ValueError:
            return False

    @property
    def is_italic(self) -> bool:
        return self.font_style == FONT_STYLE_ITALIC

    @property
    def is_struck(self) -> bool:
        return self.text_decoration == DECORATION_LINE_THROUGH

    def derive(self, **changes) -> "StyleDescriptor":
        return replace(self, **changes) if changes else self
