"""
Foreign market snapshot (US indices) via yfinance.
"""

import asyncio
import logging
from typing import Dict, Iterable, Optional

import yfinance as yf

from market_intel.domain.models import ForeignQuote
from market_intel.domain.services.market_data_analysis import FOREIGN_INDEX_NAMES
from market_intel.utils.time import now_ist

logger = logging.getLogger(__name__)


class ForeignMarketClient:
    """Best-effort per-symbol quotes. A failing symbol is logged and omitted."""

    def __init__(self, symbols: Iterable[str] = ("^GSPC", "^DJI", "^IXIC")):
        self.symbols = list(symbols)

    async def get_snapshot(self) -> Dict[str, ForeignQuote]:
        quotes: Dict[str, ForeignQuote] = {}
        for symbol in self.symbols:
            try:
                quote = await asyncio.to_thread(self._fetch, symbol)
            except Exception as e:
                logger.warning(f"⚠️ Failed to fetch {symbol}: {e}")
                continue
            if quote is not None:
                quotes[symbol] = quote
        return quotes

    @staticmethod
    def _fetch(symbol: str) -> Optional[ForeignQuote]:
        hist = yf.Ticker(symbol).history(period="5d", interval="1d", auto_adjust=False)
        if hist.empty or "Close" not in hist:
            return None
        closes = hist["Close"].dropna()
        if len(closes) < 2:
            return None

        price = float(closes.iloc[-1])
        previous_close = float(closes.iloc[-2])
        if previous_close <= 0:
            return None
        change = price - previous_close

        return ForeignQuote(
            symbol=symbol,
            name=FOREIGN_INDEX_NAMES.get(symbol, symbol),
            price=round(price, 2),
            change=round(change, 2),
            change_percent=round(change / previous_close * 100, 2),
            timestamp=now_ist(),
        )
