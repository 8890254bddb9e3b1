"""Pytest configuration for the signalwatch test suite."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime

import pytest

from signalwatch.core.models import Snapshot


SnapshotFactory = Callable[..., Snapshot]


@pytest.fixture()
def make_snapshot() -> SnapshotFactory:
    """Build snapshots with sensible defaults for channel ``"123"``."""

    def _make(
        observed_at: datetime,
        balance: float = 1000.0,
        floating_profit: float = -10.0,
        period_profit: float = 0.0,
        channel_id: str = "123",
        currency_code: str = "USD",
    ) -> Snapshot:
        return Snapshot(
            channel_id=channel_id,
            balance=balance,
            floating_profit=floating_profit,
            currency_code=currency_code,
            observed_at=observed_at,
            period_profit=period_profit,
        )

    return _make


SIGNAL_PAGE = """<!DOCTYPE html>
<html>
<head>
  <title>GoldHunter EA - Trading Signal for MetaTrader 5 | MQL5</title>
  <meta property="og:title" content="GoldHunter EA" />
</head>
<body>
  <h1 class="s-line-card__title">GoldHunter&nbsp;EA</h1>
  <div class="s-list-info">
    <div>Balance: <span>12 345.67 USD</span></div>
    <div>Floating profit: <span>-123.45 USD</span></div>
  </div>
  <script>window.signal = {"description": ["Balance: 12 345.67 USD", "Floating profit: -123.45 USD"]};</script>
  <footer>www.mql5.com signals</footer>
</body>
</html>
"""


@pytest.fixture()
def signal_page() -> str:
    return SIGNAL_PAGE
