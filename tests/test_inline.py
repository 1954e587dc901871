import pytest

from cardkit.inline import InlineComposer, iter_graphemes
from cardkit.measure import FixedPitchMeasurer
from cardkit.styles import StyleDescriptor
from cardkit.tokens import Emphasis, Highlight, PlainText, Strikethrough, Strong

BASE = StyleDescriptor(font_size=10)


@pytest.fixture
def composer():
    return InlineComposer(FixedPitchMeasurer(), line_height_multiplier=1.5)


def test_short_text_is_one_line_one_run(composer):
    lines = composer.layout_inline([PlainText("hello world")], 100, BASE)
    assert len(lines) == 1
    assert len(lines[0].runs) == 1
    assert lines[0].text == "hello world"
    assert lines[0].width == pytest.approx(55)
    assert lines[0].height == pytest.approx(15)


def test_greedy_wrap_breaks_at_character_granularity(composer):
    lines = composer.layout_inline([PlainText("abcdefghij")], 20, BASE)
    assert [line.text for line in lines] == ["abcd", "efgh", "ij"]
    assert all(line.width <= 20 for line in lines)


def test_adjacent_equal_styles_merge_into_one_run(composer):
    lines = composer.layout_inline([PlainText("ab"), PlainText("cd")], 100, BASE)
    assert [run.text for run in lines[0].runs] == ["abcd"]

    lines = composer.layout_inline(
        [PlainText("a"), Strong([PlainText("b")]), PlainText("c")], 100, BASE
    )
    runs = lines[0].runs
    assert [run.text for run in runs] == ["a", "b", "c"]
    for left, right in zip(runs, runs[1:]):
        assert left.style != right.style


def test_bold_highlight_compose_into_a_single_run(composer):
    nodes = [PlainText("x "), Strong([Highlight([PlainText("text")])])]
    lines = composer.layout_inline(nodes, 200, BASE)
    runs = lines[0].runs
    assert len(runs) == 2
    styled = runs[1]
    assert styled.text == "text"
    assert styled.style.font_weight == "700"
    assert styled.style.is_highlight is True


def test_styles_accumulate_through_nesting(composer):
    nodes = [Emphasis([Strikethrough([Strong([PlainText("deep")])])])]
    style = composer.layout_inline(nodes, 200, BASE)[0].runs[0].style
    assert style.is_italic and style.is_struck and style.is_bold


def test_oversized_character_gets_its_own_line(composer):
    lines = composer.layout_inline([PlainText("abc")], 3, BASE)
    assert [line.text for line in lines] == ["a", "b", "c"]
    assert lines[0].width == pytest.approx(5)


def test_newline_forces_a_break(composer):
    lines = composer.layout_inline([PlainText("ab\ncd")], 100, BASE)
    assert [line.text for line in lines] == ["ab", "cd"]


def test_empty_input_yields_no_lines(composer):
    assert composer.layout_inline([], 100, BASE) == []
    assert composer.layout_inline(None, 100, BASE) == []
    assert composer.layout_inline([PlainText("")], 100, BASE) == []


def test_line_height_follows_largest_font(composer):
    lines = composer.layout_inline([PlainText("big")], 100, StyleDescriptor(font_size=20))
    assert lines[0].height == pytest.approx(30)


def test_wide_characters_measure_full_em(composer):
    lines = composer.layout_inline([PlainText("中文字")], 25, BASE)
    assert [line.text for line in lines] == ["中文", "字"]


def test_letter_spacing_adds_per_character():
    composer = InlineComposer(FixedPitchMeasurer(), 1.5, letter_spacing=1)
    lines = composer.layout_inline([PlainText("ab")], 100, BASE)
    assert lines[0].width == pytest.approx(12)


def test_graphemes_keep_clusters_together():
    assert list(iter_graphemes("e\u0301x")) == ["e\u0301", "x"]
    assert list(iter_graphemes("\U0001F1EF\U0001F1F5\U0001F1FA\U0001F1F8")) == [
        "\U0001F1EF\U0001F1F5",
        "\U0001F1FA\U0001F1F8",
    ]
    family = "\U0001F469\u200d\U0001F469\u200d\U0001F467"
    assert list(iter_graphemes(family)) == [family]
    assert list(iter_graphemes("\U0001F44D\U0001F3FD!")) == ["\U0001F44D\U0001F3FD", "!"]
    assert list(iter_graphemes("a\r\nb")) == ["a", "\r\n", "b"]


def test_cluster_is_never_split_across_lines(composer):
    lines = composer.layout_inline([PlainText("e\u0301e\u0301")], 5, BASE)
    assert [line.text for line in lines] == ["e\u0301", "e\u0301"]


def test_layout_is_deterministic(composer):
    nodes = [PlainText("one two "), Strong([PlainText("three four five")])]
    assert composer.layout_inline(nodes, 40, BASE) == composer.layout_inline(nodes, 40, BASE)


def test_raw_layout_keeps_blank_lines(composer):
    lines = composer.layout_raw("a\n\nb", 100, BASE)
    assert [line.text for line in lines] == ["a", "", "b"]
    assert lines[1].height == pytest.approx(15)
    assert composer.layout_raw("", 100, BASE) == []


def test_unknown_inline_node_is_rejected(composer):
    with pytest.raises(TypeError):
        composer.layout_inline([object()], 100, BASE)


def test_hangul_jamo_sequence_is_one_cluster(composer):
    syllable = "\u1100\u1161\u11a8"
    assert list(iter_graphemes(syllable)) == [syllable]
    lines = composer.layout_inline([PlainText(syllable * 2)], 25, BASE)
    assert [line.text for line in lines] == [syllable, syllable]
