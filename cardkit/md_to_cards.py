"""
Convert a markdown document into a sequence of vertical image cards
suited for mobile sharing platforms.

The document is parsed into block tokens, laid out by the pagination
engine so that every card holds as much text as fits its content box, and
each page is painted onto a portrait canvas. Font, colors, and layout can
be configured via command-line arguments.
"""

from __future__ import annotations

import argparse
import hashlib
import io
import os
import re
from dataclasses import replace
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

import requests
from PIL import Image, ImageDraw, ImageFont, ImageStat, UnidentifiedImageError

from .blocks import BlockKind, LayoutBlock
from .config import HeadingScale, LayoutConfig
from .engine import CardEngine
from .inline import Line, Run, iter_graphemes
from .markdown import parse_markdown
from .measure import FontBook, FontFiles, FontMeasurer
from .paginate import Page
from .styles import StyleDescriptor
from .tokens import BlockToken, ImageBlock

DEFAULT_CANVAS = (1080, 1920)
DEFAULT_FONT_SIZE = 60
DEFAULT_MARGIN = 120
DEFAULT_LINE_SPACING = 1.6
DEFAULT_BACKGROUND = "warm-yellow"
DEFAULT_FONT_FILENAME = "LXGWWenKaiLite-Bold.ttf"
DEFAULT_FONT_URL = (
    "https://github.com/lxgw/LxgwWenKai-Lite/releases/download/v1.330/"
    f"{DEFAULT_FONT_FILENAME}"
)
DEFAULT_FONT_SHA256 = (
    "25a4d0e009f330481a299f0c09cd63ef1a3ab284e142236f6d3f4cd7ff7a37d3"
)
COLOR_ALIASES = {
    "warmyellow": "#f6e7c1",
    "warm-yellow": "#f6e7c1",
    "warm": "#f6e7c1",
    "warmyellowlight": "#f2d79b",
    "warm-gold": "#f3c97a",
    "warmgold": "#f3c97a",
    "softyellow": "#f7e6b5",
    "soft-yellow": "#f7e6b5",
    "softgold": "#f5d59a",
    "soft-gold": "#f5d59a",
    "white": "#ffffff",
    "paper": "#fbfaf7",
    "night": "#1c1c1e",
}
HIGHLIGHT_COLOR = (255, 236, 153)
BLOCKQUOTE_BAR_WIDTH = 3
CODE_CHIP_RADIUS = 4
PREFIX_FONT_WEIGHT = "500"
CARD_FILENAME_TEMPLATE = "card_{index:03}.png"

Color = Tuple[int, int, int]


def _resources_dir() -> Path:
    return Path(__file__).resolve().parent.parent / "resources" / "fonts"


def _download_default_font(target: Path, debug: bool = False) -> None:
    if debug:
        print(f"[DEBUG] Downloading default font to {target}")
    target.parent.mkdir(parents=True, exist_ok=True)
    response = requests.get(DEFAULT_FONT_URL, timeout=60)
    response.raise_for_status()
    data = response.content
    digest = hashlib.sha256(data).hexdigest()
    if digest != DEFAULT_FONT_SHA256:
        raise RuntimeError(
            "默认字体校验失败，下载内容可能不完整，请检查网络后重试。"
        )
    target.write_bytes(data)


def ensure_default_font(debug: bool = False) -> Optional[Path]:
    target = _resources_dir() / DEFAULT_FONT_FILENAME
    if target.exists():
        return target
    try:
        _download_default_font(target, debug=debug)
    except (requests.RequestException, RuntimeError, OSError) as exc:
        if debug:
            print(f"[DEBUG] Failed to download default font: {exc}")
        return None
    return target


def _candidate_font_paths(
    explicit: Optional[Path] = None,
    debug: bool = False,
) -> Iterator[Path]:
    if explicit:
        yield explicit.resolve()
        return

    default_font = ensure_default_font(debug=debug)
    if default_font:
        yield default_font

    search_dirs: List[Path] = []
    windir = os.environ.get("WINDIR")
    if windir:
        search_dirs.append(Path(windir) / "Fonts")
    search_dirs.extend(
        [
            Path("/System/Library/Fonts"),
            Path("/Library/Fonts"),
            Path("/System/Library/Fonts/Supplemental"),
            Path("/usr/share/fonts"),
            Path("/usr/local/share/fonts"),
        ]
    )

    patterns = [
        "SourceHanSansSC-*.otf",
        "SourceHanSansSC-*.ttc",
        "SourceHanSans*.otf",
        "SourceHanSans*.ttc",
        "NotoSansCJK*.otf",
        "NotoSansCJK*.ttc",
        "NotoSansSC*.otf",
        "NotoSansSC*.ttc",
        "思源黑体*.otf",
        "思源黑体*.ttc",
    ]

    seen: set[Path] = set()
    for directory in search_dirs:
        if not directory.exists():
            continue
        for pattern in patterns:
            for path in directory.glob(pattern):
                if path not in seen:
                    seen.add(path)
                    yield path


def _loadable(path: Path, font_index: int) -> bool:
    try:
        ImageFont.truetype(str(path), 12, index=font_index)
    except OSError:
        return False
    return True


def resolve_font_files(
    font_path: Optional[Path] = None,
    bold_path: Optional[Path] = None,
    italic_path: Optional[Path] = None,
    bold_italic_path: Optional[Path] = None,
    mono_path: Optional[Path] = None,
    font_index: int = 0,
    debug: bool = False,
) -> FontFiles:
    regular: Optional[Path] = None
    for candidate in _candidate_font_paths(font_path, debug=debug):
        if _loadable(candidate, font_index):
            regular = candidate
            break
        if debug:
            print(f"[DEBUG] Skipping unreadable font {candidate}")

    if regular is None:
        raise RuntimeError(
            "无法加载中文字体。请通过 --font 指定字体文件，"
            "或确认脚本能够下载默认字体 LXGWWenKaiLite。"
        )

    extras: Dict[str, Optional[Path]] = {}
    for name, path in (
        ("bold", bold_path),
        ("italic", italic_path),
        ("bold_italic", bold_italic_path),
        ("mono", mono_path),
    ):
        if path is not None and not _loadable(path.resolve(), font_index):
            raise RuntimeError(f"Unable to load {name} font: {path}")
        extras[name] = path.resolve() if path is not None else None

    if debug:
        print(f"[DEBUG] Using font {regular}")
    return FontFiles(regular=regular, index=font_index, **extras)


def parse_color(color_value: str) -> Color:
    normalized_key = re.sub(r"[^a-z0-9]+", "", color_value.lower())
    if normalized_key in COLOR_ALIASES:
        color_value = COLOR_ALIASES[normalized_key]

    if not color_value.startswith("#") or len(color_value) not in (4, 7):
        raise ValueError(f"Unsupported color value: {color_value}")
    if len(color_value) == 4:
        r = int(color_value[1] * 2, 16)
        g = int(color_value[2] * 2, 16)
        b = int(color_value[3] * 2, 16)
    else:
        r = int(color_value[1:3], 16)
        g = int(color_value[3:5], 16)
        b = int(color_value[5:7], 16)
    return (r, g, b)


def determine_text_color(
    image: Image.Image, override: Optional[str] = None
) -> Color:
    if override:
        return parse_color(override)

    stat = ImageStat.Stat(image.convert("L"))
    avg_luminance = stat.mean[0]
    # Prefer high contrast: threshold around middle gray.
    return (0, 0, 0) if avg_luminance > 170 else (255, 255, 255)


def _mix(base: Color, other: Color, amount: float) -> Color:
    return tuple(
        int(round(b + (o - b) * amount)) for b, o in zip(base, other)
    )  # type: ignore[return-value]


def prepare_canvas(
    width: int, height: int, background_spec: str
) -> Tuple[Image.Image, Color]:
    background_path = Path(background_spec)
    if background_path.exists():
        bg = Image.open(background_path).convert("RGB")
        return (bg.resize((width, height), Image.LANCZOS), determine_text_color(bg))

    bg_color = parse_color(background_spec)
    image = Image.new("RGB", (width, height), bg_color)
    return image, determine_text_color(image)


def _load_image_from_source(src: str, base_dir: Path) -> Optional[Image.Image]:
    if re.match(r"^https?://", src, flags=re.IGNORECASE):
        response = requests.get(src, timeout=30)
        response.raise_for_status()
        return Image.open(io.BytesIO(response.content)).convert("RGB")

    candidate = Path(src)
    if not candidate.is_absolute():
        candidate = (base_dir / candidate).resolve()
    if not candidate.exists():
        return None
    return Image.open(candidate).convert("RGB")


def resolve_images(
    tokens: Sequence[BlockToken],
    base_dir: Path,
    debug: bool = False,
) -> Tuple[List[BlockToken], Dict[str, Image.Image]]:
    """Fill in pixel sizes of image blocks and collect the decoded images.

    Images that cannot be loaded keep unknown dimensions and are laid out
    as their alt text.
    """
    resolved: List[BlockToken] = []
    assets: Dict[str, Image.Image] = {}
    for token in tokens:
        if not isinstance(token, ImageBlock):
            resolved.append(token)
            continue
        src = token.src.strip()
        image: Optional[Image.Image] = assets.get(src)
        if image is None and src:
            try:
                image = _load_image_from_source(src, base_dir)
            except (requests.RequestException, UnidentifiedImageError, OSError) as exc:
                if debug:
                    print(f"[DEBUG] Failed to load image '{src}': {exc}")
                image = None
        elif not src and debug:
            print("[DEBUG] Missing source for image block")
        if image is None:
            resolved.append(token)
            continue
        assets[src] = image
        resolved.append(replace(token, src=src, width=image.width, height=image.height))
    return resolved, assets


def _page_label_font(font_book: FontBook, font_size: float, scale: float = 1.0) -> ImageFont.ImageFont:
    return font_book.font_at(font_book.files.regular, max(18, font_size * 0.5) * scale)


def page_label_reserve(font_book: FontBook, font_size: float, margin: int) -> float:
    draw = ImageDraw.Draw(Image.new("RGB", (1, 1)))
    bbox = draw.textbbox((0, 0), "0/0", font=_page_label_font(font_book, font_size))
    page_height = bbox[3] - bbox[1]
    page_spacing = max(20, margin // 4)
    return page_height + page_spacing


def layout_config_for_canvas(
    width: int,
    height: int,
    margin: int,
    font_book: FontBook,
    font_size: float = DEFAULT_FONT_SIZE,
    line_spacing: float = DEFAULT_LINE_SPACING,
    letter_spacing: float = 0.0,
    heading_scale: Optional[HeadingScale] = None,
    divider_breaks_page: bool = True,
) -> LayoutConfig:
    reserve = page_label_reserve(font_book, font_size, margin)
    return LayoutConfig.from_card(
        width,
        height,
        margin,
        reserved=(reserve,),
        font_size=font_size,
        line_height_multiplier=line_spacing,
        letter_spacing=letter_spacing,
        heading_scale=heading_scale or HeadingScale(),
        blockquote_indent=font_size * 1.25,
        divider_height=font_size * 1.25,
        divider_breaks_page=divider_breaks_page,
    )


class CardPainter:
    """Paints laid-out pages with Pillow.

    Coordinates come from the layout in layout units; ``scale`` renders a
    larger copy of the very same layout.
    """

    def __init__(
        self,
        font_book: FontBook,
        config: LayoutConfig,
        text_color: Color,
        background_color: Color,
        scale: float = 1.0,
        image_assets: Optional[Dict[str, Image.Image]] = None,
    ) -> None:
        self.font_book = font_book
        self.config = config
        self.text_color = text_color
        self.background_color = background_color
        self.scale = scale
        self.image_assets = image_assets or {}
        self.measurer = FontMeasurer(font_book)
        self.code_bg_color = _mix(background_color, text_color, 0.08)
        self.accent_color = _mix(background_color, text_color, 0.35)

    def _s(self, value: float) -> float:
        return value * self.scale

    def paint(self, canvas: Image.Image, page: Page, origin: Tuple[float, float]) -> None:
        draw = ImageDraw.Draw(canvas)
        x, current_y = origin
        for block in page.blocks:
            content_y = current_y + block.margin_top
            if block.kind is BlockKind.SPACE:
                pass
            elif block.kind is BlockKind.DIVIDER:
                self._draw_divider(draw, block, x, content_y)
            elif block.kind is BlockKind.IMAGE:
                self._draw_image(canvas, draw, block, x, content_y)
            elif block.kind is BlockKind.BLOCKQUOTE:
                draw.rectangle(
                    (
                        self._s(x),
                        self._s(content_y),
                        self._s(x + BLOCKQUOTE_BAR_WIDTH) - 1,
                        self._s(content_y + block.content_height),
                    ),
                    fill=self.accent_color,
                )
                self._draw_lines(draw, block.lines, x + block.indent, content_y)
            elif block.kind is BlockKind.LIST_ITEM:
                prefix_style = StyleDescriptor(
                    font_size=self.config.font_size, font_weight=PREFIX_FONT_WEIGHT
                )
                draw.text(
                    (self._s(x), self._s(content_y)),
                    block.prefix,
                    font=self.font_book.font_for(prefix_style, self.scale),
                    fill=self.text_color,
                )
                self._draw_lines(draw, block.lines, x + block.prefix_width, content_y)
            else:
                self._draw_lines(draw, block.lines, x + block.indent, content_y)
            current_y += block.height

    def _draw_divider(self, draw: ImageDraw.ImageDraw, block: LayoutBlock, x: float, y: float) -> None:
        middle = self._s(y + block.content_height / 2)
        draw.line(
            (self._s(x), middle, self._s(x + self.config.content_width), middle),
            fill=self.accent_color,
            width=max(1, int(self.scale)),
        )

    def _draw_image(
        self,
        canvas: Image.Image,
        draw: ImageDraw.ImageDraw,
        block: LayoutBlock,
        x: float,
        y: float,
    ) -> None:
        box = (
            int(self._s(x)),
            int(self._s(y)),
            max(1, int(self._s(block.image_width))),
            max(1, int(self._s(block.image_height))),
        )
        image = self.image_assets.get(block.src or "")
        if image is None:
            draw.rectangle(
                (box[0], box[1], box[0] + box[2], box[1] + box[3]),
                fill=self.code_bg_color,
            )
            return
        canvas.paste(image.resize((box[2], box[3]), Image.LANCZOS), (box[0], box[1]))

    def _draw_lines(self, draw: ImageDraw.ImageDraw, lines: Sequence[Line], x: float, y: float) -> None:
        line_y = y
        for line in lines:
            run_x = x
            for run in line.runs:
                run_x += self._draw_run(draw, run, run_x, line_y)
            line_y += line.height

    def _run_width(self, run: Run) -> float:
        spacing = self.config.letter_spacing
        return sum(
            self.measurer.measure(grapheme, run.style) + spacing * len(grapheme)
            for grapheme in iter_graphemes(run.text)
        )

    def _draw_run(self, draw: ImageDraw.ImageDraw, run: Run, x: float, y: float) -> float:
        style = run.style
        width = self._run_width(run)
        font_size = style.font_size
        if style.is_highlight:
            draw.rectangle(
                (
                    self._s(x),
                    self._s(y + font_size * 0.1),
                    self._s(x + width),
                    self._s(y + font_size * 1.2),
                ),
                fill=HIGHLIGHT_COLOR,
            )
        elif style.is_code and run.text:
            draw.rounded_rectangle(
                (
                    self._s(x - 2),
                    self._s(y + 1),
                    self._s(x + width + 2),
                    self._s(y + 1 + font_size * 1.3),
                ),
                radius=int(self._s(CODE_CHIP_RADIUS)),
                fill=self.code_bg_color,
            )

        fill = (0, 0, 0) if style.is_highlight else self.text_color
        font = self.font_book.font_for(style, self.scale)
        if self.config.letter_spacing:
            cursor = x
            for grapheme in iter_graphemes(run.text):
                draw.text((self._s(cursor), self._s(y)), grapheme, font=font, fill=fill)
                cursor += self.measurer.measure(grapheme, style) + self.config.letter_spacing * len(grapheme)
        else:
            draw.text((self._s(x), self._s(y)), run.text, font=font, fill=fill)

        if style.is_struck:
            strike_y = self._s(y + font_size * 0.52)
            draw.line(
                (self._s(x), strike_y, self._s(x + width), strike_y),
                fill=fill,
                width=max(1, int(self._s(font_size / 14))),
            )
        return width


def render_card(
    page: Page,
    font_book: FontBook,
    config: LayoutConfig,
    canvas_size: Tuple[int, int],
    margin: int,
    background_spec: str,
    text_color_override: Optional[str],
    page_index: int,
    total_pages: int,
    scale: float = 1.0,
    image_assets: Optional[Dict[str, Image.Image]] = None,
    debug: bool = False,
) -> Image.Image:
    width, height = canvas_size
    canvas, auto_color = prepare_canvas(
        int(round(width * scale)), int(round(height * scale)), background_spec
    )
    text_color = (
        parse_color(text_color_override)
        if text_color_override
        else auto_color
    )
    background_color = tuple(int(v) for v in ImageStat.Stat(canvas).mean[:3])

    painter = CardPainter(
        font_book,
        config,
        text_color=text_color,
        background_color=background_color,  # type: ignore[arg-type]
        scale=scale,
        image_assets=image_assets,
    )
    painter.paint(canvas, page, origin=(margin, margin))

    if debug:
        print(
            f"[DEBUG] Card {page_index}: {len(page.blocks)} blocks, height {page.height:.1f}/{config.max_content_height:.1f}"
        )

    draw = ImageDraw.Draw(canvas)
    page_label = f"{page_index}/{total_pages}"
    page_number_font = _page_label_font(font_book, config.font_size, scale)
    page_bbox = draw.textbbox((0, 0), page_label, font=page_number_font)
    page_width = page_bbox[2] - page_bbox[0]
    page_height = page_bbox[3] - page_bbox[1]
    page_x = (canvas.width - page_width) // 2
    page_y = canvas.height - int(margin * scale) - page_height
    draw.text((page_x, page_y), page_label, font=page_number_font, fill=text_color)

    return canvas


def ensure_output_dir(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


def build_target_directory(base_dir: Path, source_markdown: Path) -> Path:
    ensure_output_dir(base_dir)
    stem = source_markdown.stem or "cards"
    candidate = base_dir / stem
    if not candidate.exists():
        return candidate

    suffix = 1
    while True:
        candidate = base_dir / f"{stem}_{suffix}"
        if not candidate.exists():
            return candidate
        suffix += 1


def render_cards(args: argparse.Namespace) -> List[Image.Image]:
    """Parse, paginate and paint ``args.markdown_path``; returns the card images."""
    markdown_text = args.markdown_path.read_text(encoding="utf-8")
    tokens = parse_markdown(markdown_text)

    if args.debug:
        print(f"[DEBUG] Parsed {len(tokens)} block tokens from markdown.")

    font_files = resolve_font_files(
        args.font,
        bold_path=args.bold_font,
        italic_path=args.italic_font,
        bold_italic_path=args.bold_italic_font,
        mono_path=args.mono_font,
        font_index=args.font_index,
        debug=args.debug,
    )
    font_book = FontBook(font_files)
    tokens, image_assets = resolve_images(
        tokens, base_dir=args.markdown_path.parent, debug=args.debug
    )

    heading_scale = args.heading_scale
    if isinstance(heading_scale, str):
        heading_scale = HeadingScale.parse(heading_scale)
    config = layout_config_for_canvas(
        args.width,
        args.height,
        args.margin,
        font_book,
        font_size=args.font_size,
        line_spacing=args.line_spacing,
        letter_spacing=args.letter_spacing,
        heading_scale=heading_scale,
        divider_breaks_page=not args.keep_dividers,
    )
    engine = CardEngine(config, FontMeasurer(font_book), debug=args.debug)
    pages = engine.paginate(tokens)

    if args.debug:
        print(f"[DEBUG] Produced {len(pages)} pages from markdown.")

    if not pages or not any(page.blocks for page in pages):
        raise ValueError("No text content found after parsing markdown.")

    total_pages = len(pages)
    return [
        render_card(
            page=page,
            font_book=font_book,
            config=config,
            canvas_size=(args.width, args.height),
            margin=args.margin,
            background_spec=args.background,
            text_color_override=args.text_color,
            page_index=idx,
            total_pages=total_pages,
            scale=args.scale,
            image_assets=image_assets,
            debug=args.debug,
        )
        for idx, page in enumerate(pages, start=1)
    ]


def generate_cards(args: argparse.Namespace) -> List[Path]:
    cards = render_cards(args)

    output_root = Path(args.output_dir)
    target_directory = build_target_directory(output_root, args.markdown_path)
    ensure_output_dir(target_directory)

    output_paths: List[Path] = []
    for idx, card in enumerate(cards, start=1):
        output_path = target_directory / CARD_FILENAME_TEMPLATE.format(index=idx)
        card.save(output_path)
        output_paths.append(output_path)
        if args.debug:
            print(f"[DEBUG] Saved {output_path}")

    return output_paths
