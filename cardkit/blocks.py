"""Block layout: one block token in, height-accounted layout blocks out."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Iterator, List, Optional, Sequence, Tuple

from .config import LayoutConfig
from .inline import InlineComposer, Line
from .measure import TextMeasurer
from .styles import StyleDescriptor
from .tokens import (
    Blockquote,
    BlockToken,
    CodeBlock,
    Divider,
    Heading,
    ImageBlock,
    ListBlock,
    Paragraph,
    PlainText,
    Spacer,
)

IMAGE_ALT_FALLBACK = "[图片]"


class BlockKind(str, Enum):
    HEADING = "heading"
    PARAGRAPH = "paragraph"
    BLOCKQUOTE = "blockquote"
    LIST_ITEM = "list-item"
    CODE_BLOCK = "code-block"
    DIVIDER = "divider"
    SPACE = "space"
    IMAGE = "image"


@dataclass(frozen=True)
class LayoutBlock:
    kind: BlockKind
    height: float
    margin_top: float = 0.0
    margin_bottom: float = 0.0
    lines: Tuple[Line, ...] = ()
    prefix: str = ""
    prefix_width: float = 0.0
    indent: float = 0.0
    depth: Optional[int] = None
    language: Optional[str] = None
    src: Optional[str] = None
    alt: Optional[str] = None
    image_width: float = 0.0
    image_height: float = 0.0

    @classmethod
    def from_lines(
        cls,
        kind: BlockKind,
        lines: Sequence[Line],
        margin_top: float = 0.0,
        margin_bottom: float = 0.0,
        **fields,
    ) -> "LayoutBlock":
        content_height = sum(line.height for line in lines)
        return cls(
            kind=kind,
            height=margin_top + content_height + margin_bottom,
            margin_top=margin_top,
            margin_bottom=margin_bottom,
            lines=tuple(lines),
            **fields,
        )

    @property
    def content_height(self) -> float:
        return self.height - self.margin_top - self.margin_bottom

    @property
    def splittable(self) -> bool:
        return bool(self.lines)

    @property
    def text(self) -> str:
        return "".join(line.text for line in self.lines)


class BlockLayoutBuilder:
    def __init__(self, config: LayoutConfig, measurer: TextMeasurer) -> None:
        self.config = config
        self.measurer = measurer
        self.composer = InlineComposer(
            measurer,
            line_height_multiplier=config.line_height_multiplier,
            letter_spacing=config.letter_spacing,
        )

    @property
    def base_style(self) -> StyleDescriptor:
        return StyleDescriptor(font_size=self.config.font_size)

    def layout_document(self, tokens: Iterable[BlockToken]) -> Iterator[LayoutBlock]:
        for token in tokens:
            yield from self.layout_token(token)

    def layout_token(self, token: BlockToken) -> List[LayoutBlock]:
        if isinstance(token, Heading):
            return [self._layout_heading(token)]
        if isinstance(token, Paragraph):
            return [self._layout_paragraph(token)]
        if isinstance(token, Blockquote):
            return [self._layout_blockquote(token)]
        if isinstance(token, ListBlock):
            return self._layout_list(token)
        if isinstance(token, CodeBlock):
            return [self._layout_code(token)]
        if isinstance(token, Divider):
            return [LayoutBlock(kind=BlockKind.DIVIDER, height=self.config.divider_height)]
        if isinstance(token, Spacer):
            return [LayoutBlock(kind=BlockKind.SPACE, height=self.config.resolved_spacer_height)]
        if isinstance(token, ImageBlock):
            return [self._layout_image(token)]
        raise TypeError(f"Unsupported block token: {type(token).__name__}")

    def _layout_heading(self, token: Heading) -> LayoutBlock:
        config = self.config
        font_size = config.font_size * config.heading_scale.for_level(token.depth)
        style = StyleDescriptor(
            font_size=font_size,
            font_weight=config.heading_font_weight,
            heading_level=token.depth,
        )
        lines = self.composer.layout_inline(token.children, config.content_width, style)
        return LayoutBlock.from_lines(
            BlockKind.HEADING,
            lines,
            margin_top=font_size * config.heading_margin_top_ratio,
            margin_bottom=font_size * config.heading_margin_bottom_ratio,
            depth=token.depth,
        )

    def _paragraph_margin(self) -> float:
        return self.config.font_size * self.config.paragraph_margin_bottom_ratio

    def _layout_paragraph(self, token: Paragraph) -> LayoutBlock:
        lines = self.composer.layout_inline(
            token.children, self.config.content_width, self.base_style
        )
        return LayoutBlock.from_lines(
            BlockKind.PARAGRAPH, lines, margin_bottom=self._paragraph_margin()
        )

    def _layout_blockquote(self, token: Blockquote) -> LayoutBlock:
        indent = self.config.blockquote_indent
        lines = self.composer.layout_inline(
            token.children, self.config.content_width - indent, self.base_style
        )
        return LayoutBlock.from_lines(
            BlockKind.BLOCKQUOTE,
            lines,
            margin_bottom=self._paragraph_margin(),
            indent=indent,
        )

    def _layout_list(self, token: ListBlock) -> List[LayoutBlock]:
        config = self.config
        base = self.base_style
        margin_bottom = config.font_size * config.list_margin_bottom_ratio
        layouts: List[LayoutBlock] = []
        for index, item in enumerate(token.items):
            prefix = f"{token.start + index}. " if token.ordered else config.bullet
            prefix_width = self.composer.grapheme_width(prefix, base)
            lines = self.composer.layout_inline(
                item.children, config.content_width - prefix_width, base
            )
            layouts.append(
                LayoutBlock.from_lines(
                    BlockKind.LIST_ITEM,
                    lines,
                    margin_bottom=margin_bottom,
                    prefix=prefix,
                    prefix_width=prefix_width,
                )
            )
        return layouts

    def _layout_code(self, token: CodeBlock) -> LayoutBlock:
        style = StyleDescriptor(
            font_size=self.config.font_size * self.config.code_font_scale,
            is_code=True,
        )
        lines = self.composer.layout_raw(token.text, self.config.content_width, style)
        return LayoutBlock.from_lines(
            BlockKind.CODE_BLOCK,
            lines,
            margin_bottom=self._paragraph_margin(),
            language=token.language,
        )

    def _layout_image(self, token: ImageBlock) -> LayoutBlock:
        if not token.width or not token.height:
            alt = token.alt or IMAGE_ALT_FALLBACK
            return self._layout_paragraph(Paragraph([PlainText(alt)]))
        config = self.config
        margin_bottom = self._paragraph_margin()
        width = float(min(token.width, config.content_width))
        height = token.height * width / token.width
        max_height = config.max_content_height - margin_bottom
        if height > max_height > 0:
            width = width * max_height / height
            height = max_height
        return LayoutBlock(
            kind=BlockKind.IMAGE,
            height=height + margin_bottom,
            margin_bottom=margin_bottom,
            src=token.src,
            alt=token.alt,
            image_width=width,
            image_height=height,
        )
