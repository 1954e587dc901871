import threading
import time

from cardkit.engine import CardEngine, PreviewScheduler
from cardkit.measure import FixedPitchMeasurer, MemoizedMeasurer
from cardkit.tokens import Paragraph, text


def test_paginate_markdown_end_to_end(engine):
    pages = engine.paginate_markdown("# Title\n\nHello **world**")
    assert len(pages) == 1
    assert pages[0].text == "TitleHello world"


def test_measurements_are_cached_per_engine(engine):
    assert isinstance(engine.measurer, MemoizedMeasurer)
    engine.paginate_markdown("aaaa aaaa")
    info = engine.measurer.cache_info()
    assert info.hits > 0
    assert info.currsize == 2


def test_concurrent_passes_give_identical_results(engine):
    source = "\n\n".join(f"Paragraph {i} " * 20 for i in range(20))
    expected = engine.paginate_markdown(source)
    results = []

    def worker():
        results.append(engine.paginate_markdown(source))

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    assert results == [expected] * 4


def test_scheduler_delivers_only_latest_input(engine):
    delivered = []
    scheduler = PreviewScheduler(engine, delivered.append, delay=60)
    scheduler.schedule("first")
    scheduler.schedule("second")
    pages = scheduler.flush()
    assert pages is not None
    assert len(delivered) == 1
    assert delivered[0][0].text == "second"
    assert scheduler.flush() is None
    assert len(delivered) == 1


def test_scheduler_cancel_drops_pending_input(engine):
    delivered = []
    scheduler = PreviewScheduler(engine, delivered.append, delay=60)
    scheduler.schedule("text")
    scheduler.cancel()
    assert scheduler.flush() is None
    assert delivered == []


def test_scheduler_fires_after_quiet_period(config, measurer):
    engine = CardEngine(config, measurer)
    done = threading.Event()
    delivered = []

    def on_pages(pages):
        delivered.append(pages)
        done.set()

    scheduler = PreviewScheduler(engine, on_pages, delay=0.01)
    scheduler.schedule("one")
    scheduler.schedule("two")
    assert done.wait(5)
    assert [pages[0].text for pages in delivered] == ["two"]


class ExclusiveMeasurer(FixedPitchMeasurer):
    """Records any moment two callers are measuring at once."""

    def __init__(self):
        super().__init__()
        self._guard = threading.Lock()
        self.active = 0
        self.overlaps = 0

    def measure(self, text, style):
        with self._guard:
            self.active += 1
            if self.active > 1:
                self.overlaps += 1
        time.sleep(0.0001)
        with self._guard:
            self.active -= 1
        return super().measure(text, style)


def test_layout_and_paginate_never_measure_concurrently(config):
    measurer = ExclusiveMeasurer()
    engine = CardEngine(config, measurer, cache_size=0)
    tokens = [Paragraph(children=text("abcdefghij" * 5)) for _ in range(4)]

    def run_layout():
        for _ in range(5):
            engine.layout(tokens)

    def run_paginate():
        for _ in range(5):
            engine.paginate(tokens)

    threads = [threading.Thread(target=run_layout), threading.Thread(target=run_paginate)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    assert measurer.overlaps == 0
