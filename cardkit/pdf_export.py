from __future__ import annotations

import argparse
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from PIL import Image
from reportlab.lib.units import inch

try:
    from reportlab.lib.pagesizes import A4, A5, legal, letter, tabloid
except ImportError:  # pragma: no cover - newer reportlab dropped tabloid
    from reportlab.lib.pagesizes import A4, A5, legal, letter

    tabloid = (11 * inch, 17 * inch)
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas as pdf_canvas

from . import md_to_cards

PAGE_SIZE_ALIASES: Dict[str, Tuple[float, float]] = {
    "letter": letter,
    "a4": A4,
    "a5": A5,
    "legal": legal,
    "tabloid": tabloid,
}

CARD_PAGE_SIZE = "card"
POINTS_PER_PIXEL = 72.0 / 96.0
DEFAULT_PAGE_SIZE = CARD_PAGE_SIZE
DEFAULT_OUTPUT_DIR = Path("output_pdfs")


@dataclass
class PdfExportOptions:
    markdown_path: Path
    output_path: Path
    # None keeps every PDF page at the card's own size.
    page_size: Optional[Tuple[float, float]]
    card_args: argparse.Namespace
    debug: bool = False


def resolve_page_size(spec: str | None) -> Optional[Tuple[float, float]]:
    if not spec:
        spec = DEFAULT_PAGE_SIZE
    normalized = spec.strip().lower()
    if normalized == CARD_PAGE_SIZE:
        return None
    if normalized in PAGE_SIZE_ALIASES:
        return PAGE_SIZE_ALIASES[normalized]
    match = re.match(r"^\s*(\d+(?:\.\d+)?)\s*[x×]\s*(\d+(?:\.\d+)?)\s*$", normalized)
    if match:
        width = float(match.group(1))
        height = float(match.group(2))
        return (width, height)
    raise ValueError(
        f"Unrecognized page size '{spec}'. "
        f"Use {CARD_PAGE_SIZE}, one of {', '.join(sorted(PAGE_SIZE_ALIASES))} "
        "or provide custom dimensions like '612x792'."
    )


def export_cards_to_pdf(
    cards: Sequence[Image.Image],
    output_path: Path,
    page_size: Optional[Tuple[float, float]] = None,
) -> Path:
    """Write one card per PDF page, scaled to fit and centered."""
    if not cards:
        raise ValueError("No cards to export.")

    output_path.parent.mkdir(parents=True, exist_ok=True)
    pdf = pdf_canvas.Canvas(str(output_path))
    for card in cards:
        card_width = card.width * POINTS_PER_PIXEL
        card_height = card.height * POINTS_PER_PIXEL
        page_width, page_height = page_size or (card_width, card_height)
        pdf.setPageSize((page_width, page_height))

        ratio = min(page_width / card_width, page_height / card_height)
        draw_width = card_width * ratio
        draw_height = card_height * ratio
        x = (page_width - draw_width) / 2
        y = (page_height - draw_height) / 2
        pdf.drawImage(ImageReader(card), x, y, width=draw_width, height=draw_height)
        pdf.showPage()
    pdf.save()
    return output_path


def convert_markdown_to_pdf(options: PdfExportOptions) -> Path:
    card_args = argparse.Namespace(**vars(options.card_args))
    card_args.markdown_path = options.markdown_path
    card_args.debug = options.debug
    cards = md_to_cards.render_cards(card_args)

    if options.debug:
        print(f"[DEBUG] Writing {len(cards)} pages to {options.output_path}")
    return export_cards_to_pdf(cards, options.output_path, options.page_size)


def collect_markdown_files(
    root: Path,
    recursive: bool = True,
) -> List[Path]:
    pattern = "**/*.md" if recursive else "*.md"
    return sorted(root.glob(pattern))


def export_directory_to_pdfs(
    input_dir: Path,
    output_dir: Path,
    page_size_spec: str,
    card_args: argparse.Namespace,
    recursive: bool = True,
    debug: bool = False,
) -> List[Path]:
    if not input_dir.exists():
        raise FileNotFoundError(f"Input directory not found: {input_dir}")

    page_size = resolve_page_size(page_size_spec)
    markdown_files = collect_markdown_files(input_dir, recursive=recursive)
    if not markdown_files:
        raise ValueError(f"No markdown files found in {input_dir}")

    generated: List[Path] = []
    for md_file in markdown_files:
        relative_parent = md_file.parent.relative_to(input_dir)
        target_dir = output_dir / relative_parent
        output_path = target_dir / f"{md_file.stem}.pdf"
        options = PdfExportOptions(
            markdown_path=md_file,
            output_path=output_path,
            page_size=page_size,
            card_args=card_args,
            debug=debug,
        )
        try:
            generated_path = convert_markdown_to_pdf(options)
        except ValueError as exc:
            if "No text content found" in str(exc):
                if debug:
                    print(f"[DEBUG] Skipping empty markdown: {md_file}")
                continue
            raise
        generated.append(generated_path)
    return generated


def export_file_to_pdf(
    input_file: Path,
    output_dir: Path,
    page_size_spec: str,
    card_args: argparse.Namespace,
    debug: bool = False,
) -> Path:
    if not input_file.exists():
        raise FileNotFoundError(f"Markdown file not found: {input_file}")

    page_size = resolve_page_size(page_size_spec)
    options = PdfExportOptions(
        markdown_path=input_file,
        output_path=output_dir / f"{input_file.stem}.pdf",
        page_size=page_size,
        card_args=card_args,
        debug=debug,
    )
    return convert_markdown_to_pdf(options)
