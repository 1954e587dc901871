from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from cardkit.config import LayoutConfig  # noqa: E402
from cardkit.engine import CardEngine  # noqa: E402
from cardkit.measure import FixedPitchMeasurer  # noqa: E402


@pytest.fixture
def config() -> LayoutConfig:
    # 10px text, 15px lines, 20 narrow characters per 100px line.
    return LayoutConfig(
        font_size=10,
        line_height_multiplier=1.5,
        content_width=100,
        max_content_height=160,
    )


@pytest.fixture
def measurer() -> FixedPitchMeasurer:
    return FixedPitchMeasurer()


@pytest.fixture
def engine(config, measurer) -> CardEngine:
    return CardEngine(config, measurer)
