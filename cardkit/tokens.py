"""Document tokens consumed by the layout engine.

Block tokens form a closed set (see ``BlockToken``); inline tokens nest to
any depth, each styled span contributing one attribute to the style of the
text below it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Union

from .styles import (
    DECORATION_LINE_THROUGH,
    FONT_STYLE_ITALIC,
    FONT_WEIGHT_BOLD,
    StyleDescriptor,
)


@dataclass
class InlineNode:
    """Base class for inline nodes."""

    def apply(self, style: StyleDescriptor) -> StyleDescriptor:
        return style


@dataclass
class PlainText(InlineNode):
    text: str


@dataclass
class StyledSpan(InlineNode):
    children: List[InlineNode] = field(default_factory=list)


@dataclass
class Strong(StyledSpan):
    def apply(self, style: StyleDescriptor) -> StyleDescriptor:
        return style.derive(font_weight=FONT_WEIGHT_BOLD)


@dataclass
class Emphasis(StyledSpan):
    def apply(self, style: StyleDescriptor) -> StyleDescriptor:
        return style.derive(font_style=FONT_STYLE_ITALIC)


@dataclass
class Strikethrough(StyledSpan):
    def apply(self, style: StyleDescriptor) -> StyleDescriptor:
        return style.derive(text_decoration=DECORATION_LINE_THROUGH)


@dataclass
class CodeSpan(StyledSpan):
    def apply(self, style: StyleDescriptor) -> StyleDescriptor:
        return style.derive(is_code=True)


@dataclass
class Highlight(StyledSpan):
    def apply(self, style: StyleDescriptor) -> StyleDescriptor:
        return style.derive(is_highlight=True)


@dataclass
class Heading:
    depth: int
    children: List[InlineNode] = field(default_factory=list)


@dataclass
class Paragraph:
    children: List[InlineNode] = field(default_factory=list)


@dataclass
class Blockquote:
    children: List[InlineNode] = field(default_factory=list)


@dataclass
class ListItem:
    children: List[InlineNode] = field(default_factory=list)


@dataclass
class ListBlock:
    ordered: bool
    items: List[ListItem] = field(default_factory=list)
    start: int = 1


@dataclass
class CodeBlock:
    text: str
    language: Optional[str] = None


@dataclass
class Divider:
    """Thematic break; doubles as a hard page separator."""


@dataclass
class Spacer:
    """Vertical gap of fixed height."""


@dataclass
class ImageBlock:
    src: str
    alt: str = ""
    width: Optional[int] = None
    height: Optional[int] = None


BlockToken = Union[
    Heading,
    Paragraph,
    Blockquote,
    ListBlock,
    CodeBlock,
    Divider,
    Spacer,
    ImageBlock,
]


def text(value: str) -> List[InlineNode]:
    return [PlainText(value)]


def inline_text(nodes: Iterable[InlineNode]) -> str:
    parts: List[str] = []
    for node in nodes:
        if isinstance(node, PlainText):
            parts.append(node.text)
        elif isinstance(node, StyledSpan):
            parts.append(inline_text(node.children))
    return "".join(parts)


def document_text(tokens: Iterable[BlockToken]) -> str:
    """Concatenate the visible text of every token in document order."""
    parts: List[str] = []
    for token in tokens:
        if isinstance(token, (Heading, Paragraph, Blockquote)):
            parts.append(inline_text(token.children))
        elif isinstance(token, ListBlock):
            parts.extend(inline_text(item.children) for item in token.items)
        elif isinstance(token, CodeBlock):
            parts.append(token.text)
    return "".join(parts)
