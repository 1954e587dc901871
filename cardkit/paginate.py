"""Page allocation and block splitting."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, replace
from typing import Deque, Iterable, List, Optional, Tuple

from .blocks import BlockKind, LayoutBlock


@dataclass(frozen=True)
class Page:
    """Blocks of one card. ``height`` never exceeds the allocator limit unless
    the page holds a single block that alone is taller.
    """

    blocks: Tuple[LayoutBlock, ...]

    @property
    def height(self) -> float:
        # Same left-to-right accumulation as the allocator, so the bound
        # compares exactly.
        height = 0.0
        for block in self.blocks:
            height += block.height
        return height

    @property
    def text(self) -> str:
        return "".join(block.text for block in self.blocks)


def split_block(
    block: LayoutBlock,
    available_height: float,
) -> Optional[Tuple[LayoutBlock, LayoutBlock]]:
    """Cut ``block`` at the last line boundary that fits ``available_height``.

    Returns ``None`` when the block has no lines, when not even its first
    line fits, or when every line fits.
    """
    lines = block.lines
    if not lines:
        return None

    used = block.margin_top
    split_index = len(lines)
    for index, line in enumerate(lines):
        if used + line.height > available_height:
            split_index = index
            break
        used += line.height

    if split_index <= 0 or split_index >= len(lines):
        return None

    first = replace(
        block,
        lines=lines[:split_index],
        height=used,
        margin_bottom=0.0,
    )
    rest = lines[split_index:]
    second = replace(
        block,
        lines=rest,
        height=sum(line.height for line in rest) + block.margin_bottom,
        margin_top=0.0,
    )
    if block.kind is BlockKind.LIST_ITEM:
        second = replace(
            second,
            kind=BlockKind.PARAGRAPH,
            prefix="",
            prefix_width=0.0,
            indent=block.prefix_width,
        )
    return first, second


class PageAllocator:
    """Greedily packs layout blocks into pages of bounded height."""

    def __init__(
        self,
        max_content_height: float,
        divider_breaks_page: bool = True,
        debug: bool = False,
    ) -> None:
        if max_content_height <= 0:
            raise ValueError(
                f"max_content_height must be positive, got {max_content_height}"
            )
        self.max_content_height = max_content_height
        self.divider_breaks_page = divider_breaks_page
        self.debug = debug

    def allocate(self, blocks: Iterable[LayoutBlock]) -> List[Page]:
        limit = self.max_content_height
        pending: Deque[LayoutBlock] = deque(blocks)
        pages: List[Page] = []
        current: List[LayoutBlock] = []
        total = 0.0

        def close_page() -> None:
            nonlocal current, total
            pages.append(Page(blocks=tuple(current)))
            if self.debug:
                print(
                    f"[DEBUG] Page {len(pages)}: {len(current)} blocks, height={total:.1f}/{limit:.1f}"
                )
            current = []
            total = 0.0

        while pending:
            block = pending.popleft()

            if block.kind is BlockKind.DIVIDER and self.divider_breaks_page:
                if current:
                    close_page()
                continue

            if total + block.height <= limit:
                current.append(block)
                total += block.height
                continue

            parts = split_block(block, limit - total)
            # limit - total is rounded; never let a fragment push the page over.
            if parts is not None and total + parts[0].height <= limit:
                first, second = parts
                if self.debug:
                    print(
                        f"[DEBUG] Split {block.kind.value} after {len(first.lines)} of {len(block.lines)} lines"
                    )
                current.append(first)
                total += first.height
                close_page()
                pending.appendleft(second)
                continue

            if current:
                close_page()
                pending.appendleft(block)
                continue

            if self.debug:
                print(
                    f"[DEBUG] {block.kind.value} block of height {block.height:.1f} exceeds a full page; placing it alone"
                )
            current.append(block)
            total += block.height
            close_page()

        if current:
            close_page()
        return pages
