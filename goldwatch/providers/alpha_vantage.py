"""Alpha Vantage FX_DAILY provider — fallback tier for the gold price source.

Free tier: 25 requests/day. The daily FX block is keyed by date; this
provider has no separate "current" quote, so the snapshot is the newest
point of the published series.
"""

from datetime import datetime
from typing import Any

from goldwatch.core.errors import DataShapeError, ProviderError
from goldwatch.core.logger import logger
from goldwatch.models.datatypes import SourceRecordSet, TimeSeriesPoint
from goldwatch.pipeline.normalizer import parse_date, round_price, take_window
from goldwatch.providers.base import JsonApiProvider

ALPHA_VANTAGE_URL = "https://www.alphavantage.co/query"
_SERIES_KEY = "Time Series FX (Daily)"
_CLOSE_KEY = "4. close"


class AlphaVantageFxProvider(JsonApiProvider):
    """Daily FX series for the same underlying asset (XAU → USD)."""

    label = "Alpha Vantage API (fallback)"
    credential_name = "ALPHA_VANTAGE_KEY"

    def __init__(self, from_symbol: str = "XAU", to_symbol: str = "USD", **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.from_symbol = from_symbol
        self.to_symbol = to_symbol

    def fetch(self, run_at: datetime) -> SourceRecordSet:
        payload = self._get_json(ALPHA_VANTAGE_URL, {
            "function": "FX_DAILY",
            "from_symbol": self.from_symbol,
            "to_symbol": self.to_symbol,
            "outputsize": "full",
            "apikey": self.require_credential(),
        })

        if payload.get("Error Message"):
            raise ProviderError(str(payload["Error Message"]), provider=self.label)
        # Throttled responses carry a Note/Information message instead of data
        for notice in ("Note", "Information"):
            if payload.get(notice) and _SERIES_KEY not in payload:
                raise ProviderError(str(payload[notice]), provider=self.label)

        block = payload.get(_SERIES_KEY)
        if not isinstance(block, dict) or not block:
            raise DataShapeError(f"response has no '{_SERIES_KEY}' block", provider=self.label)

        try:
            rows = sorted(
                ((parse_date(day), values[_CLOSE_KEY]) for day, values in block.items()),
                key=lambda row: row[0],
                reverse=True,
            )
            series = tuple(
                TimeSeriesPoint(date=day, fields={"price": round_price(close)})
                for day, close in take_window(rows, self.window_size)
            )
        except (KeyError, TypeError) as exc:
            raise DataShapeError(f"malformed daily value: {exc}", provider=self.label) from exc
        except DataShapeError as exc:
            exc.provider = self.label
            raise

        logger.info(f"AlphaVantageFxProvider: {len(block)} observations, kept {len(series)}")
        return SourceRecordSet(
            name="price",
            source=self.label,
            last_updated=run_at,
            current={"currentPrice": series[-1].fields["price"]},
            series=series,
            series_key="history",
            window_size=self.window_size,
        )
