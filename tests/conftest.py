from __future__ import annotations

from pathlib import Path

import pytest

from tests._fixtures.fake_renderer import FakeRenderer
from tests._fixtures.manual_builder import ManualSourceBuilder


@pytest.fixture
def source_builder(tmp_path: Path) -> ManualSourceBuilder:
    """Provide a reusable source tree builder rooted at the pytest tmp_path."""
    return ManualSourceBuilder(tmp_path)


@pytest.fixture
def fake_renderer() -> FakeRenderer:
    return FakeRenderer()
