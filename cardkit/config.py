from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Optional, Sequence


@dataclass(frozen=True)
class HeadingScale:
    h1: float = 1.6
    h2: float = 1.4
    h3: float = 1.2
    default: float = 1.1

    def for_level(self, level: int) -> float:
        return {1: self.h1, 2: self.h2, 3: self.h3}.get(level, self.default)

    @classmethod
    def parse(cls, spec: str) -> "HeadingScale":
        """Build a scale from ``"h1,h2,h3[,default]"``."""
        values = [float(part) for part in spec.split(",") if part.strip()]
        if len(values) not in (3, 4):
            raise ValueError(
                f"Heading scale '{spec}' must list 3 or 4 comma separated numbers."
            )
        return cls(*values)


@dataclass(frozen=True)
class LayoutConfig:
    """Everything a pagination pass needs to know about geometry and type.

    Sizes are in the same units the measurement port reports widths in.
    """

    font_size: float = 16.0
    line_height_multiplier: float = 1.6
    letter_spacing: float = 0.0
    content_width: float = 430.0
    max_content_height: float = 597.0
    heading_scale: HeadingScale = field(default_factory=HeadingScale)
    heading_font_weight: str = "800"
    heading_margin_top_ratio: float = 0.6
    heading_margin_bottom_ratio: float = 0.4
    paragraph_margin_bottom_ratio: float = 0.8
    list_margin_bottom_ratio: float = 0.3
    code_font_scale: float = 0.9
    blockquote_indent: float = 20.0
    divider_height: float = 20.0
    spacer_height: Optional[float] = None
    bullet: str = "• "
    divider_breaks_page: bool = True

    def __post_init__(self) -> None:
        for name in (
            "font_size",
            "line_height_multiplier",
            "content_width",
            "max_content_height",
            "code_font_scale",
        ):
            value = getattr(self, name)
            if value <= 0:
                raise ValueError(f"{name} must be positive, got {value}")
        for name in (
            "letter_spacing",
            "heading_margin_top_ratio",
            "heading_margin_bottom_ratio",
            "paragraph_margin_bottom_ratio",
            "list_margin_bottom_ratio",
            "blockquote_indent",
            "divider_height",
        ):
            value = getattr(self, name)
            if value < 0:
                raise ValueError(f"{name} must not be negative, got {value}")
        if self.spacer_height is not None and self.spacer_height < 0:
            raise ValueError(f"spacer_height must not be negative, got {self.spacer_height}")

    @property
    def resolved_spacer_height(self) -> float:
        if self.spacer_height is None:
            return self.font_size
        return self.spacer_height

    def with_overrides(self, **changes) -> "LayoutConfig":
        return replace(self, **changes)

    @classmethod
    def from_card(
        cls,
        width: float,
        height: float,
        padding: float,
        safety_margin: float = 0.0,
        reserved: Sequence[float] = (),
        **overrides,
    ) -> "LayoutConfig":
        """Derive the content box of a ``width`` x ``height`` card.

        ``reserved`` lists extra vertical space taken by card chrome such as a
        page label.
        """
        content_width = width - padding * 2
        content_height = height - padding * 2 - safety_margin - sum(reserved)
        return cls(
            content_width=content_width,
            max_content_height=content_height,
            **overrides,
        )
