import textwrap

from cardkit.markdown import parse_markdown
from cardkit.tokens import (
    Blockquote,
    CodeBlock,
    CodeSpan,
    Divider,
    Emphasis,
    Heading,
    Highlight,
    ImageBlock,
    ListBlock,
    Paragraph,
    PlainText,
    Spacer,
    Strikethrough,
    Strong,
    inline_text,
)


def test_parse_blocks_and_inline():
    md_text = textwrap.dedent(
        """
        # 标题

        普通 **粗体** *斜体* ~~删除~~ ==高亮== `code`

        > 引用

        ```python
        print("hi")
        ```

        ---

        ![示意图](diagram.png)
        """
    )
    blocks = parse_markdown(md_text)
    assert isinstance(blocks[0], Heading)
    assert blocks[0].depth == 1
    paragraph = blocks[1]
    assert isinstance(paragraph, Paragraph)
    kinds = [type(node) for node in paragraph.children]
    assert kinds == [
        PlainText,
        Strong,
        PlainText,
        Emphasis,
        PlainText,
        Strikethrough,
        PlainText,
        Highlight,
        PlainText,
        CodeSpan,
    ]
    assert inline_text(paragraph.children) == "普通 粗体 斜体 删除 高亮 code"
    assert isinstance(blocks[2], Blockquote)
    assert inline_text(blocks[2].children) == "引用"
    assert blocks[3] == CodeBlock(text='print("hi")', language="python")
    assert isinstance(blocks[4], Divider)
    assert blocks[5] == ImageBlock(src="diagram.png", alt="示意图")


def test_nested_spans_keep_their_structure():
    (paragraph,) = parse_markdown("**==text==**")
    (strong,) = paragraph.children
    assert isinstance(strong, Strong)
    assert isinstance(strong.children[0], Highlight)
    assert inline_text(strong.children) == "text"


def test_soft_breaks_become_newlines():
    (paragraph,) = parse_markdown("first\nsecond")
    assert paragraph.children == [PlainText("first\nsecond")]


def test_ordered_list_keeps_start_number():
    (block,) = parse_markdown("3. three\n4. four\n")
    assert isinstance(block, ListBlock)
    assert block.ordered
    assert block.start == 3
    assert [inline_text(item.children) for item in block.items] == ["three", "four"]


def test_nested_list_splits_the_outer_list():
    blocks = parse_markdown("1. one\n   - inner\n2. two\n")
    assert [type(block) for block in blocks] == [ListBlock, ListBlock, ListBlock]
    assert blocks[0].ordered and blocks[0].start == 1
    assert not blocks[1].ordered
    assert blocks[2].ordered and blocks[2].start == 2
    assert inline_text(blocks[2].items[0].children) == "two"


def test_wide_blank_gaps_become_spacers():
    blocks = parse_markdown("a\n\n\n\nb\n\nc")
    assert [type(block) for block in blocks] == [Paragraph, Spacer, Paragraph, Paragraph]


def test_indented_code_has_no_language():
    (block,) = parse_markdown("    x = 1\n")
    assert block == CodeBlock(text="x = 1", language=None)


def test_links_are_transparent_and_inline_images_use_alt():
    (paragraph,) = parse_markdown("see [docs](https://example.com) and ![pic](p.png) here")
    assert inline_text(paragraph.children) == "see docs and pic here"


def test_front_matter_is_skipped():
    md_text = "---\ntitle: demo\n---\n\n\n\nHello"
    (paragraph,) = parse_markdown(md_text)
    assert inline_text(paragraph.children) == "Hello"


def test_highlight_markers():
    (paragraph,) = parse_markdown("plain ==marked== tail")
    assert [type(node) for node in paragraph.children] == [PlainText, Highlight, PlainText]
    assert inline_text(paragraph.children[1].children) == "marked"


def test_unpaired_or_spaced_equals_stay_literal():
    (paragraph,) = parse_markdown("a == b and ==open")
    assert paragraph.children == [PlainText("a == b and ==open")]
