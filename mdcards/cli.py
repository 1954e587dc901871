from __future__ import annotations

import argparse
from pathlib import Path

from cardkit import md_to_cards, pdf_export
from cardkit.config import HeadingScale


def _heading_scale(value: str) -> HeadingScale:
    try:
        return HeadingScale.parse(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(
            f"expected 3 or 4 comma separated numbers, got '{value}'"
        ) from exc


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="mdcards",
        description="Lay out a Markdown document on fixed-size image cards.",
    )
    parser.add_argument(
        "--mode",
        choices=("cards", "pdf"),
        default="cards",
        help="cards: generate image cards (default); pdf: bundle the cards of markdown files into PDFs.",
    )
    parser.add_argument(
        "--input",
        type=Path,
        help="Path to the source Markdown file (cards mode and single-file PDF export).",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=Path("output_cards"),
        help="Directory where generated cards will be written (default: output_cards).",
    )
    parser.add_argument(
        "--width",
        type=int,
        default=md_to_cards.DEFAULT_CANVAS[0],
        help=f"Card width in pixels (default: {md_to_cards.DEFAULT_CANVAS[0]}).",
    )
    parser.add_argument(
        "--height",
        type=int,
        default=md_to_cards.DEFAULT_CANVAS[1],
        help=f"Card height in pixels (default: {md_to_cards.DEFAULT_CANVAS[1]}).",
    )
    parser.add_argument(
        "--margin",
        type=int,
        default=md_to_cards.DEFAULT_MARGIN,
        help=f"Padding around the content box in pixels (default: {md_to_cards.DEFAULT_MARGIN}).",
    )
    parser.add_argument(
        "--font",
        type=Path,
        help="Path to a TrueType/OpenType font file to use when rendering text.",
    )
    parser.add_argument("--bold-font", type=Path, help="Font file for bold text and headings.")
    parser.add_argument("--italic-font", type=Path, help="Font file for italic text.")
    parser.add_argument("--bold-italic-font", type=Path, help="Font file for bold italic text.")
    parser.add_argument("--mono-font", type=Path, help="Font file for inline code and code blocks.")
    parser.add_argument(
        "--font-index",
        type=int,
        default=0,
        help="Font face index when loading from TTC collections (default: 0).",
    )
    parser.add_argument(
        "--font-size",
        type=int,
        default=md_to_cards.DEFAULT_FONT_SIZE,
        help=f"Base font size in pixels (default: {md_to_cards.DEFAULT_FONT_SIZE}).",
    )
    parser.add_argument(
        "--line-spacing",
        type=float,
        default=md_to_cards.DEFAULT_LINE_SPACING,
        help=f"Line height multiplier applied to the font size (default: {md_to_cards.DEFAULT_LINE_SPACING}).",
    )
    parser.add_argument(
        "--letter-spacing",
        type=float,
        default=0.0,
        help="Extra advance added after every character, in pixels (default: 0).",
    )
    parser.add_argument(
        "--heading-scale",
        type=_heading_scale,
        help="Heading size multipliers as 'h1,h2,h3[,h4-h6]' (default: 1.6,1.4,1.2,1.1).",
    )
    parser.add_argument(
        "--background",
        type=str,
        default=md_to_cards.DEFAULT_BACKGROUND,
        help=f"Background color (hex) or image path (default: {md_to_cards.DEFAULT_BACKGROUND}).",
    )
    parser.add_argument(
        "--text-color",
        type=str,
        help="Override automatically chosen text color (hex, e.g. #000000).",
    )
    parser.add_argument(
        "--scale",
        type=float,
        default=1.0,
        help="Render cards at this multiple of the layout size (default: 1).",
    )
    parser.add_argument(
        "--keep-dividers",
        action="store_true",
        help="Draw horizontal rules as dividers instead of starting a new card.",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable verbose debug logging.",
    )
    parser.add_argument(
        "--input-dir",
        type=Path,
        help="Directory containing markdown files (used with --mode=pdf).",
    )
    parser.add_argument(
        "--pdf-output-dir",
        type=Path,
        default=pdf_export.DEFAULT_OUTPUT_DIR,
        help=(
            "Directory where generated PDFs will be written (pdf mode, default: output_pdfs)."
        ),
    )
    parser.add_argument(
        "--page-size",
        type=str,
        default=pdf_export.DEFAULT_PAGE_SIZE,
        help=(
            "PDF page size: 'card', a name (e.g. letter, a4) or WIDTHxHEIGHT in points (default: card)."
        ),
    )
    parser.add_argument(
        "--non-recursive",
        action="store_true",
        help="Do not search subdirectories when exporting PDFs (pdf mode only).",
    )
    return parser.parse_args(argv)


def _build_card_namespace(args: argparse.Namespace) -> argparse.Namespace:
    return argparse.Namespace(
        markdown_path=args.input,
        output_dir=args.output_dir,
        width=args.width,
        height=args.height,
        margin=args.margin,
        font=args.font,
        bold_font=args.bold_font,
        italic_font=args.italic_font,
        bold_italic_font=args.bold_italic_font,
        mono_font=args.mono_font,
        font_index=args.font_index,
        font_size=args.font_size,
        line_spacing=args.line_spacing,
        letter_spacing=args.letter_spacing,
        heading_scale=args.heading_scale,
        background=args.background,
        text_color=args.text_color,
        scale=args.scale,
        keep_dividers=args.keep_dividers,
        debug=args.debug,
    )


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    card_args = _build_card_namespace(args)
    if args.mode == "pdf":
        if args.input and args.input_dir:
            raise SystemExit("Use either --input for a single file or --input-dir for batch export.")
        if args.input:
            pdf_export.export_file_to_pdf(
                input_file=args.input,
                output_dir=args.pdf_output_dir,
                page_size_spec=args.page_size,
                card_args=card_args,
                debug=args.debug,
            )
            output_location = args.pdf_output_dir.resolve()
            print(f"Generated 1 PDF in {output_location}")
            return 0
        if not args.input_dir:
            raise SystemExit("Provide --input for a single file or --input-dir for batch export.")
        recursive = not args.non_recursive
        generated = pdf_export.export_directory_to_pdfs(
            input_dir=args.input_dir,
            output_dir=args.pdf_output_dir,
            page_size_spec=args.page_size,
            card_args=card_args,
            recursive=recursive,
            debug=args.debug,
        )
        output_location = args.pdf_output_dir.resolve()
        print(f"Generated {len(generated)} PDFs in {output_location}")
        return 0

    if not args.input:
        raise SystemExit("--input is required when --mode=cards.")
    if not args.input.exists():
        raise SystemExit(f"Markdown file not found: {args.input}")

    output_files = md_to_cards.generate_cards(card_args)
    print(
        f"Generated {len(output_files)} cards in {output_files[0].parent.resolve()}"
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
