from pathlib import Path

import pytest
from PIL import Image

from cardkit import md_to_cards, pdf_export
from cardkit.config import HeadingScale
from cardkit.engine import CardEngine
from cardkit.measure import FontBook, FontFiles, FontMeasurer
from cardkit.tokens import ImageBlock, Paragraph
from mdcards import cli

SAMPLE = """# 标题

正文 **粗体** ==高亮== ~~删除~~ `code`

> 引用一段话

- 第一项
- 第二项

```
x = 1
```
"""


@pytest.fixture
def font_book():
    return FontBook()


@pytest.fixture
def builtin_fonts(monkeypatch):
    monkeypatch.setattr(md_to_cards, "resolve_font_files", lambda *args, **kwargs: FontFiles())


def test_parse_color_aliases_and_hex():
    assert md_to_cards.parse_color("#fff") == (255, 255, 255)
    assert md_to_cards.parse_color("#102030") == (16, 32, 48)
    assert md_to_cards.parse_color("warmyellow") == (246, 231, 193)
    with pytest.raises(ValueError):
        md_to_cards.parse_color("not-a-color")


def test_text_color_contrasts_background():
    assert md_to_cards.determine_text_color(Image.new("RGB", (4, 4), "white")) == (0, 0, 0)
    assert md_to_cards.determine_text_color(Image.new("RGB", (4, 4), "black")) == (255, 255, 255)


def test_layout_config_reserves_room_for_page_label(font_book):
    config = md_to_cards.layout_config_for_canvas(540, 960, 60, font_book, font_size=30)
    assert config.content_width == 420
    assert config.max_content_height < 960 - 120
    assert config.font_size == 30


def test_render_card_paints_every_block_kind(font_book):
    config = md_to_cards.layout_config_for_canvas(
        540, 960, 60, font_book, font_size=30, divider_breaks_page=False
    )
    engine = CardEngine(config, FontMeasurer(font_book))
    pages = engine.paginate_markdown(SAMPLE + "\n---\n\nend")
    assert len(pages) >= 1

    card = md_to_cards.render_card(
        page=pages[0],
        font_book=font_book,
        config=config,
        canvas_size=(540, 960),
        margin=60,
        background_spec="white",
        text_color_override=None,
        page_index=1,
        total_pages=len(pages),
        scale=2,
    )
    assert card.size == (1080, 1920)
    assert card.getextrema() != ((255, 255), (255, 255), (255, 255))


def test_resolve_images_fills_sizes(tmp_path):
    Image.new("RGB", (64, 32), "red").save(tmp_path / "pic.png")
    tokens = [
        ImageBlock(src="pic.png", alt="pic"),
        ImageBlock(src="missing.png", alt="gone"),
        Paragraph(),
    ]
    resolved, assets = md_to_cards.resolve_images(tokens, tmp_path)
    assert resolved[0] == ImageBlock(src="pic.png", alt="pic", width=64, height=32)
    assert resolved[1].width is None
    assert resolved[2] is tokens[2]
    assert set(assets) == {"pic.png"}


def test_build_target_directory_avoids_collisions(tmp_path):
    source = Path("notes.md")
    first = md_to_cards.build_target_directory(tmp_path, source)
    assert first == tmp_path / "notes"
    first.mkdir()
    assert md_to_cards.build_target_directory(tmp_path, source) == tmp_path / "notes_1"


def test_resolve_page_size():
    assert pdf_export.resolve_page_size("card") is None
    assert pdf_export.resolve_page_size("A4") == pdf_export.PAGE_SIZE_ALIASES["a4"]
    assert pdf_export.resolve_page_size("600x800") == (600.0, 800.0)
    with pytest.raises(ValueError):
        pdf_export.resolve_page_size("huge")


def test_export_cards_to_pdf(tmp_path):
    cards = [Image.new("RGB", (96, 192), "white") for _ in range(3)]
    output = pdf_export.export_cards_to_pdf(cards, tmp_path / "out" / "cards.pdf", (612, 792))
    assert output.read_bytes().startswith(b"%PDF")
    with pytest.raises(ValueError):
        pdf_export.export_cards_to_pdf([], tmp_path / "empty.pdf")


def test_cli_generates_cards(tmp_path, builtin_fonts):
    source = tmp_path / "doc.md"
    source.write_text(SAMPLE, encoding="utf-8")
    out_dir = tmp_path / "cards"

    exit_code = cli.main(
        [
            "--input", str(source),
            "--output-dir", str(out_dir),
            "--width", "540",
            "--height", "960",
            "--margin", "60",
            "--font-size", "30",
            "--background", "paper",
        ]
    )

    assert exit_code == 0
    first = out_dir / "doc" / "card_001.png"
    assert first.exists()
    with Image.open(first) as card:
        assert card.size == (540, 960)


def test_cli_exports_pdf_directory(tmp_path, builtin_fonts):
    docs = tmp_path / "docs"
    (docs / "nested").mkdir(parents=True)
    (docs / "a.md").write_text("# A\n\nalpha", encoding="utf-8")
    (docs / "nested" / "b.md").write_text("beta", encoding="utf-8")
    (docs / "empty.md").write_text("", encoding="utf-8")
    out_dir = tmp_path / "pdfs"

    exit_code = cli.main(
        [
            "--mode", "pdf",
            "--input-dir", str(docs),
            "--pdf-output-dir", str(out_dir),
            "--width", "540",
            "--height", "960",
            "--margin", "60",
            "--font-size", "30",
        ]
    )

    assert exit_code == 0
    assert (out_dir / "a.pdf").exists()
    assert (out_dir / "nested" / "b.pdf").exists()
    assert not (out_dir / "empty.pdf").exists()


def test_cli_requires_input():
    with pytest.raises(SystemExit):
        cli.main([])


def test_empty_markdown_has_no_cards(tmp_path, builtin_fonts):
    source = tmp_path / "blank.md"
    source.write_text("\n\n", encoding="utf-8")
    with pytest.raises(ValueError, match="No text content found"):
        cli.main(["--input", str(source), "--output-dir", str(tmp_path)])


def test_tabloid_page_size_is_available():
    assert pdf_export.resolve_page_size("tabloid") == pytest.approx((792.0, 1224.0))


def test_cli_rejects_malformed_heading_scale(tmp_path, capsys):
    source = tmp_path / "doc.md"
    source.write_text("# t", encoding="utf-8")
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["--input", str(source), "--heading-scale", "1.5,big"])
    assert excinfo.value.code == 2
    assert "--heading-scale" in capsys.readouterr().err


def test_cli_passes_heading_scale_through():
    args = cli.parse_args(["--heading-scale", "2,1.5,1.25"])
    assert args.heading_scale == HeadingScale(2.0, 1.5, 1.25)
