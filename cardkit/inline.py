"""Inline run composition and greedy line breaking."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional, Tuple

import regex

from .measure import TextMeasurer
from .styles import StyleDescriptor
from .tokens import InlineNode, PlainText, StyledSpan

GRAPHEME_RE = regex.compile(r"\X")
LINE_BREAKS = {"\n", "\r", "\r\n"}


@dataclass(frozen=True)
class Run:
    text: str
    style: StyleDescriptor


@dataclass(frozen=True)
class Line:
    runs: Tuple[Run, ...]
    width: float
    height: float

    @property
    def text(self) -> str:
        return "".join(run.text for run in self.runs)

    @property
    def font_size(self) -> float:
        return max(run.style.font_size for run in self.runs)


def iter_graphemes(text: str) -> Iterator[str]:
    """Yield extended grapheme clusters (user-perceived characters)."""
    return iter(GRAPHEME_RE.findall(text))


class _LineBuilder:
    def __init__(self, composer: "InlineComposer", max_width: float) -> None:
        self.composer = composer
        self.max_width = max_width
        self.lines: List[Line] = []
        self._runs: List[Tuple[StyleDescriptor, List[str]]] = []
        self._width = 0.0

    def add_text(self, text: str, style: StyleDescriptor) -> None:
        for grapheme in iter_graphemes(text):
            if grapheme in LINE_BREAKS:
                self.break_line()
                continue
            width = self.composer.grapheme_width(grapheme, style)
            if self._width + width > self.max_width and self._runs:
                self.break_line()
            if self._runs and self._runs[-1][0] == style:
                self._runs[-1][1].append(grapheme)
            else:
                self._runs.append((style, [grapheme]))
            self._width += width

    def break_line(self) -> None:
        if not self._runs:
            return
        runs = tuple(Run("".join(pieces), style) for style, pieces in self._runs)
        self.lines.append(self.composer.make_line(runs, self._width))
        self._runs = []
        self._width = 0.0

    def finish(self) -> List[Line]:
        self.break_line()
        return self.lines


class InlineComposer:
    """Turns nested inline tokens into wrapped lines of merged runs."""

    def __init__(
        self,
        measurer: TextMeasurer,
        line_height_multiplier: float,
        letter_spacing: float = 0.0,
    ) -> None:
        self.measurer = measurer
        self.line_height_multiplier = line_height_multiplier
        self.letter_spacing = letter_spacing

    def grapheme_width(self, grapheme: str, style: StyleDescriptor) -> float:
        return self.measurer.measure(grapheme, style) + self.letter_spacing * len(grapheme)

    def make_line(self, runs: Tuple[Run, ...], width: float) -> Line:
        height = max(run.style.font_size for run in runs) * self.line_height_multiplier
        return Line(runs=runs, width=width, height=height)

    def layout_inline(
        self,
        nodes: Optional[Iterable[InlineNode]],
        max_width: float,
        inherited_style: StyleDescriptor,
    ) -> List[Line]:
        builder = _LineBuilder(self, max_width)
        self._walk(nodes or (), inherited_style, builder)
        return builder.finish()

    def _walk(
        self,
        nodes: Iterable[InlineNode],
        style: StyleDescriptor,
        builder: _LineBuilder,
    ) -> None:
        for node in nodes:
            if isinstance(node, PlainText):
                if node.text:
                    builder.add_text(node.text, style)
            elif isinstance(node, StyledSpan):
                self._walk(node.children, node.apply(style), builder)
            else:
                raise TypeError(f"Unsupported inline node: {type(node).__name__}")

    def layout_raw(
        self,
        text: str,
        max_width: float,
        style: StyleDescriptor,
    ) -> List[Line]:
        """Wrap unstyled text line by line, keeping blank source lines."""
        if not text:
            return []
        lines: List[Line] = []
        for source_line in text.split("\n"):
            if not source_line:
                lines.append(self.make_line((Run("", style),), 0.0))
                continue
            builder = _LineBuilder(self, max_width)
            builder.add_text(source_line, style)
            lines.extend(builder.finish())
        return lines
