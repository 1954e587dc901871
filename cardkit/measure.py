"""Text measurement port and its implementations.

The layout engine only ever asks one question: how wide is this text in
this style. ``FontMeasurer`` answers it with real FreeType metrics through
Pillow, ``FixedPitchMeasurer`` with a deterministic fixed advance that is
handy for headless runs and tests.
"""

from __future__ import annotations

import unicodedata
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Dict, Optional, Protocol, Tuple

from PIL import Image, ImageDraw, ImageFont

from .styles import StyleDescriptor


class TextMeasurer(Protocol):
    def measure(self, text: str, style: StyleDescriptor) -> float:
        ...


ZERO_WIDTH_CATEGORIES = {"Mn", "Me", "Cf"}


def _is_wide(char: str) -> bool:
    return unicodedata.east_asian_width(char) in ("W", "F")


class FixedPitchMeasurer:
    """Every character advances by a fixed fraction of the font size.

    Wide (CJK, full-width) characters advance by ``wide_advance`` instead of
    ``advance``; combining marks and format characters take no space.
    """

    def __init__(self, advance: float = 0.5, wide_advance: float = 1.0) -> None:
        self.advance = advance
        self.wide_advance = wide_advance

    def measure(self, text: str, style: StyleDescriptor) -> float:
        width = 0.0
        for char in text:
            if unicodedata.category(char) in ZERO_WIDTH_CATEGORIES:
                continue
            ratio = self.wide_advance if _is_wide(char) else self.advance
            width += style.font_size * ratio
        return width


class MemoizedMeasurer:
    """Caches widths per ``(text, style)`` pair.

    Per-character measurement is the hot path of the run composer; the
    wrapped measurer must be deterministic for its current font state.
    """

    def __init__(self, inner: TextMeasurer, maxsize: Optional[int] = 65536) -> None:
        self.inner = inner
        self._cached = lru_cache(maxsize=maxsize)(inner.measure)

    def measure(self, text: str, style: StyleDescriptor) -> float:
        return self._cached(text, style)

    def cache_info(self):
        return self._cached.cache_info()

    def clear(self) -> None:
        self._cached.cache_clear()


@dataclass(frozen=True)
class FontFiles:
    regular: Optional[Path] = None
    bold: Optional[Path] = None
    italic: Optional[Path] = None
    bold_italic: Optional[Path] = None
    mono: Optional[Path] = None
    index: int = 0


class FontBook:
    """Lazily loads one Pillow font per face and size.

    Missing faces fall back to the regular face; without any font file the
    Pillow bundled default font is used.
    """

    def __init__(self, files: Optional[FontFiles] = None) -> None:
        self.files = files or FontFiles()
        self._cache: Dict[Tuple[Optional[Path], float], ImageFont.ImageFont] = {}

    def path_for(self, style: StyleDescriptor) -> Optional[Path]:
        files = self.files
        if style.is_code and files.mono:
            return files.mono
        if style.is_bold and style.is_italic and files.bold_italic:
            return files.bold_italic
        if style.is_bold and files.bold:
            return files.bold
        if style.is_italic and files.italic:
            return files.italic
        return files.regular

    def font_for(self, style: StyleDescriptor, scale: float = 1.0) -> ImageFont.ImageFont:
        return self.font_at(self.path_for(style), style.font_size * scale)

    def font_at(self, path: Optional[Path], size: float) -> ImageFont.ImageFont:
        key = (path, size)
        font = self._cache.get(key)
        if font is not None:
            return font
        if path is None:
            font = ImageFont.load_default(size=size)
        else:
            layout_engine = getattr(ImageFont, "LAYOUT_BASIC", None)
            font_kwargs = {"index": self.files.index}
            if layout_engine is not None:
                font_kwargs["layout_engine"] = layout_engine
            font = ImageFont.truetype(str(path), size, **font_kwargs)
        self._cache[key] = font
        return font


def measure_text_width(
    draw: ImageDraw.ImageDraw,
    text: str,
    font: ImageFont.ImageFont,
) -> float:
    if hasattr(draw, "textlength"):
        return draw.textlength(text, font=font)
    bbox = draw.textbbox((0, 0), text, font=font)
    return bbox[2] - bbox[0]


class FontMeasurer:
    """Measures with FreeType metrics on a private scratch canvas.

    The scratch canvas is shared state: one instance must not serve two
    pagination passes at the same time.
    """

    def __init__(self, font_book: FontBook) -> None:
        self.font_book = font_book
        self._draw = ImageDraw.Draw(Image.new("RGB", (1, 1)))

    def measure(self, text: str, style: StyleDescriptor) -> float:
        if not text:
            return 0.0
        font = self.font_book.font_for(style)
        return measure_text_width(self._draw, text, font)
