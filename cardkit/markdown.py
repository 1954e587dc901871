"""Markdown to block tokens, built on markdown-it-py."""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple, Type

from markdown_it import MarkdownIt
from markdown_it.rules_inline.state_inline import Delimiter, StateInline
from mdit_py_plugins.front_matter import front_matter_plugin

from .tokens import (
    Blockquote,
    BlockToken,
    CodeBlock,
    CodeSpan,
    Divider,
    Emphasis,
    Heading,
    Highlight,
    ImageBlock,
    InlineNode,
    ListBlock,
    ListItem,
    Paragraph,
    PlainText,
    Spacer,
    Strikethrough,
    Strong,
    StyledSpan,
)

SPAN_TYPES: Dict[str, Type[StyledSpan]] = {
    "strong": Strong,
    "em": Emphasis,
    "s": Strikethrough,
    "mark": Highlight,
}
SPACER_GAP_LINES = 2
MARK_MARKER = "="


def _mark_tokenize(state: StateInline, silent: bool) -> bool:
    """Push every ``==`` pair as a text token and record it as a delimiter."""
    if silent or state.src[state.pos] != MARK_MARKER:
        return False

    scanned = state.scanDelims(state.pos, True)
    length = scanned.length
    if length < 2:
        return False

    if length % 2:
        token = state.push("text", "", 0)
        token.content = MARK_MARKER
        length -= 1

    for _ in range(0, length, 2):
        token = state.push("text", "", 0)
        token.content = MARK_MARKER * 2
        state.delimiters.append(
            Delimiter(
                marker=ord(MARK_MARKER),
                length=0,
                token=len(state.tokens) - 1,
                end=-1,
                open=scanned.can_open,
                close=scanned.can_close,
            )
        )

    state.pos += scanned.length
    return True


def _close_marks(state: StateInline, delimiters: List[Delimiter]) -> None:
    lone_markers: List[int] = []
    for start_delim in delimiters:
        if start_delim.marker != ord(MARK_MARKER) or start_delim.end == -1:
            continue
        end_delim = delimiters[start_delim.end]

        token = state.tokens[start_delim.token]
        token.type = "mark_open"
        token.tag = "mark"
        token.nesting = 1
        token.markup = MARK_MARKER * 2
        token.content = ""

        token = state.tokens[end_delim.token]
        token.type = "mark_close"
        token.tag = "mark"
        token.nesting = -1
        token.markup = MARK_MARKER * 2
        token.content = ""

        previous = state.tokens[end_delim.token - 1]
        if previous.type == "text" and previous.content == MARK_MARKER:
            lone_markers.append(end_delim.token - 1)

    # An odd run like "===" leaves one literal marker in front of the pairs;
    # move it behind the closing tags it precedes.
    while lone_markers:
        i = lone_markers.pop()
        j = i + 1
        while j < len(state.tokens) and state.tokens[j].type == "mark_close":
            j += 1
        j -= 1
        if i != j:
            state.tokens[i], state.tokens[j] = state.tokens[j], state.tokens[i]


def _mark_post_process(state: StateInline) -> None:
    _close_marks(state, state.delimiters)
    for meta in state.tokens_meta:
        if meta and "delimiters" in meta:
            _close_marks(state, meta["delimiters"])


def _build_parser() -> MarkdownIt:
    md = MarkdownIt("commonmark", {"breaks": True})
    md.enable("strikethrough")
    md.use(front_matter_plugin)
    md.inline.ruler.before("emphasis", "mark", _mark_tokenize)
    md.inline.ruler2.before("emphasis", "mark", _mark_post_process)
    return md


def parse_markdown(text: str) -> List[BlockToken]:
    tokens = _build_parser().parse(text)
    blocks, _ = _parse_blocks(tokens, 0, stop_types=set(), track_gaps=True)
    return blocks


def _append_text(nodes: List[InlineNode], text: str) -> None:
    if not text:
        return
    if nodes and isinstance(nodes[-1], PlainText):
        nodes[-1] = PlainText(nodes[-1].text + text)
    else:
        nodes.append(PlainText(text))


def _parse_inline(children: Iterable) -> List[InlineNode]:
    root: List[InlineNode] = []
    stack: List[List[InlineNode]] = [root]
    for tok in children:
        kind = tok.type
        if kind.endswith("_open"):
            span_cls = SPAN_TYPES.get(kind[: -len("_open")])
            if span_cls is not None:
                span = span_cls()
                stack[-1].append(span)
                stack.append(span.children)
            continue
        if kind.endswith("_close"):
            if kind[: -len("_close")] in SPAN_TYPES and len(stack) > 1:
                stack.pop()
            continue
        if kind == "text":
            _append_text(stack[-1], tok.content)
        elif kind == "code_inline":
            stack[-1].append(CodeSpan([PlainText(tok.content)]))
        elif kind in {"softbreak", "hardbreak"}:
            _append_text(stack[-1], "\n")
        elif kind == "image":
            _append_text(stack[-1], tok.content or tok.attrGet("alt") or "")
    return root


def _lone_image(children: Sequence) -> Optional[ImageBlock]:
    meaningful = [
        tok for tok in children if not (tok.type == "text" and not tok.content.strip())
    ]
    if len(meaningful) == 1 and meaningful[0].type == "image":
        tok = meaningful[0]
        return ImageBlock(src=str(tok.attrGet("src") or ""), alt=tok.content or "")
    return None


def _parse_blocks(
    tokens,
    index: int,
    stop_types: Set[str],
    track_gaps: bool = False,
) -> Tuple[List[BlockToken], int]:
    blocks: List[BlockToken] = []
    last_line: Optional[int] = None
    i = index
    while i < len(tokens):
        tok = tokens[i]
        if tok.type in stop_types:
            break
        if tok.type == "front_matter":
            i += 1
            continue
        if track_gaps and tok.map and tok.nesting >= 0:
            if last_line is not None and tok.map[0] - last_line >= SPACER_GAP_LINES:
                blocks.append(Spacer())
            last_line = tok.map[1]

        if tok.type == "heading_open":
            level = int(tok.tag[1])
            blocks.append(Heading(depth=level, children=_parse_inline(tokens[i + 1].children or [])))
            i += 3
        elif tok.type == "paragraph_open":
            children = tokens[i + 1].children or []
            image = _lone_image(children)
            if image is not None:
                blocks.append(image)
            else:
                blocks.append(Paragraph(children=_parse_inline(children)))
            i += 3
        elif tok.type == "blockquote_open":
            inner, i = _parse_blocks(tokens, i + 1, stop_types={"blockquote_close"})
            for block in inner:
                if isinstance(block, Paragraph):
                    blocks.append(Blockquote(children=block.children))
                else:
                    blocks.append(block)
            i += 1  # skip blockquote_close
        elif tok.type in ("bullet_list_open", "ordered_list_open"):
            list_blocks, i = _parse_list(tokens, i)
            blocks.extend(list_blocks)
        elif tok.type in ("fence", "code_block"):
            language = None
            if tok.type == "fence":
                language = tok.info.strip() or None
            blocks.append(CodeBlock(text=tok.content.rstrip("\n"), language=language))
            i += 1
        elif tok.type == "hr":
            blocks.append(Divider())
            i += 1
        else:
            i += 1
    return blocks, i


def _parse_list(tokens, index: int) -> Tuple[List[BlockToken], int]:
    """Parse one list; nested blocks inside an item split the list around them."""
    open_tok = tokens[index]
    ordered = open_tok.type == "ordered_list_open"
    close_type = "ordered_list_close" if ordered else "bullet_list_close"
    start = 1
    if ordered:
        try:
            start = int(open_tok.attrGet("start") or 1)
        except (TypeError, ValueError):
            start = 1

    blocks: List[BlockToken] = []
    current = ListBlock(ordered=ordered, start=start)
    number = start
    i = index + 1
    while i < len(tokens) and tokens[i].type != close_type:
        if tokens[i].type != "list_item_open":
            i += 1
            continue
        item_blocks, i = _parse_blocks(tokens, i + 1, stop_types={"list_item_close"})
        i += 1  # skip list_item_close
        children: List[InlineNode] = []
        if item_blocks and isinstance(item_blocks[0], Paragraph):
            children = item_blocks.pop(0).children
        current.items.append(ListItem(children=children))
        number += 1
        if item_blocks:
            blocks.append(current)
            blocks.extend(item_blocks)
            current = ListBlock(ordered=ordered, start=number)
    if current.items:
        blocks.append(current)
    return blocks, i + 1
