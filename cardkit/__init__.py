"""Text layout and pagination for formatted-text cards."""

from .blocks import BlockKind, BlockLayoutBuilder, LayoutBlock  # noqa: F401
from .config import HeadingScale, LayoutConfig  # noqa: F401
from .engine import CardEngine, PreviewScheduler  # noqa: F401
from .inline import InlineComposer, Line, Run  # noqa: F401
from .markdown import parse_markdown  # noqa: F401
from .measure import FixedPitchMeasurer, FontBook, FontFiles, FontMeasurer  # noqa: F401
from .paginate import Page, PageAllocator, split_block  # noqa: F401
from .styles import StyleDescriptor  # noqa: F401

__all__ = [
    "BlockKind",
    "BlockLayoutBuilder",
    "CardEngine",
    "FixedPitchMeasurer",
    "FontBook",
    "FontFiles",
    "FontMeasurer",
    "HeadingScale",
    "InlineComposer",
    "LayoutBlock",
    "LayoutConfig",
    "Line",
    "Page",
    "PageAllocator",
    "PreviewScheduler",
    "Run",
    "StyleDescriptor",
    "parse_markdown",
    "split_block",
]
