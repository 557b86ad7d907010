# tests/conftest.py
import sys
from pathlib import Path

import pandas as pd
import pytest

# Ensure project root is importable for all tests (CI runners may omit it).
ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from sma_analyzer.indicators import SeriesWindow  # noqa: E402

START = pd.Timestamp("2025-01-01T00:00:00Z")


@pytest.fixture
def make_window():
    """Build an hourly SeriesWindow from a list of prices."""
    def _make(prices):
        timestamps = [START + pd.Timedelta(hours=i) for i in range(len(prices))]
        return SeriesWindow(timestamps=tuple(timestamps), prices=list(prices))
    return _make


@pytest.fixture
def write_csv(tmp_path):
    """Write raw CSV text to a temp file and return its path."""
    def _write(text, name="prices.csv"):
        path = tmp_path / name
        path.write_text(text)
        return path
    return _write


@pytest.fixture
def price_csv(write_csv):
    """Write an hourly timestamp,price CSV for the given prices."""
    def _write(prices, name="prices.csv"):
        lines = ["timestamp,price"]
        for i, price in enumerate(prices):
            ts = START + pd.Timedelta(hours=i)
            lines.append(f"{ts.strftime('%Y-%m-%dT%H:%M:%SZ')},{price}")
        return write_csv("\n".join(lines) + "\n", name=name)
    return _write
