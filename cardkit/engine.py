"""Pagination entry point and debounced preview scheduling."""

from __future__ import annotations

import threading
from typing import Callable, Iterable, List, Optional

from .blocks import BlockLayoutBuilder, LayoutBlock
from .config import LayoutConfig
from .markdown import parse_markdown
from .measure import FixedPitchMeasurer, MemoizedMeasurer, TextMeasurer
from .paginate import Page, PageAllocator
from .tokens import BlockToken

DEFAULT_PREVIEW_DELAY = 0.3


class CardEngine:
    """Owns the measurement resource and runs one pagination pass at a time.

    The measurer is wrapped in a per-engine width cache. Concurrent callers
    are serialized on an internal lock.
    """

    def __init__(
        self,
        config: LayoutConfig,
        measurer: Optional[TextMeasurer] = None,
        cache_size: Optional[int] = 65536,
        debug: bool = False,
    ) -> None:
        self.config = config
        self.measurer = MemoizedMeasurer(measurer or FixedPitchMeasurer(), maxsize=cache_size)
        self.debug = debug
        self._lock = threading.Lock()

    def layout(self, tokens: Iterable[BlockToken]) -> List[LayoutBlock]:
        with self._lock:
            return self._layout(tokens)

    def _layout(self, tokens: Iterable[BlockToken]) -> List[LayoutBlock]:
        builder = BlockLayoutBuilder(self.config, self.measurer)
        return list(builder.layout_document(tokens))

    def paginate(self, tokens: Iterable[BlockToken]) -> List[Page]:
        with self._lock:
            blocks = self._layout(tokens)
            allocator = PageAllocator(
                self.config.max_content_height,
                divider_breaks_page=self.config.divider_breaks_page,
                debug=self.debug,
            )
            pages = allocator.allocate(blocks)
        if self.debug:
            print(f"[DEBUG] Laid out {len(blocks)} blocks on {len(pages)} pages")
        return pages

    def paginate_markdown(self, markdown: str) -> List[Page]:
        return self.paginate(parse_markdown(markdown))


class PreviewScheduler:
    """Debounces pagination requests from a keystroke-driven caller.

    Every ``schedule`` call restarts the quiet-period timer. A pass that was
    overtaken by newer input while it ran is discarded instead of delivered.
    """

    def __init__(
        self,
        engine: CardEngine,
        on_pages: Callable[[List[Page]], None],
        delay: float = DEFAULT_PREVIEW_DELAY,
    ) -> None:
        self.engine = engine
        self.on_pages = on_pages
        self.delay = delay
        self._state_lock = threading.Lock()
        self._timer: Optional[threading.Timer] = None
        self._pending: Optional[str] = None
        self._generation = 0

    @property
    def generation(self) -> int:
        return self._generation

    def schedule(self, markdown: str) -> None:
        with self._state_lock:
            self._cancel_timer()
            self._generation += 1
            self._pending = markdown
            generation = self._generation
            timer = threading.Timer(self.delay, self._run, args=(generation,))
            timer.daemon = True
            self._timer = timer
        timer.start()

    def cancel(self) -> None:
        with self._state_lock:
            self._cancel_timer()
            self._generation += 1
            self._pending = None

    def flush(self) -> Optional[List[Page]]:
        """Run the pending pass now instead of waiting for the timer."""
        with self._state_lock:
            self._cancel_timer()
            generation = self._generation
        return self._run(generation)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _run(self, generation: int) -> Optional[List[Page]]:
        with self._state_lock:
            if generation != self._generation or self._pending is None:
                return None
            markdown = self._pending
            self._pending = None
            self._timer = None
        pages = self.engine.paginate_markdown(markdown)
        with self._state_lock:
            if generation != self._generation:
                return None
        self.on_pages(pages)
        return pages
