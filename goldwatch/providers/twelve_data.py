"""Twelve Data /time_series providers for the price and index sources.

Free tier: 800 credits/day, 8 requests/minute. The feed returns values
newest-first; the current snapshot is the first value and the published series
is the newest ``window_size`` values reversed to chronological order.
"""

from datetime import datetime
from typing import Any, Callable, Dict, List

from goldwatch.core.errors import DataShapeError, ProviderError
from goldwatch.core.logger import logger
from goldwatch.models.datatypes import SourceRecordSet, TimeSeriesPoint
from goldwatch.pipeline.normalizer import format_index, parse_date, round_price, take_window
from goldwatch.providers.base import JsonApiProvider

TWELVE_DATA_URL = "https://api.twelvedata.com/time_series"


class TwelveDataProvider(JsonApiProvider):
    """Shared request and error handling for every Twelve Data call."""

    label = "Twelve Data API"
    credential_name = "TWELVE_DATA_KEY"

    def time_series(self, symbol: str, outputsize: int) -> List[Dict[str, Any]]:
        """Fetch a daily series for ``symbol``. Returns values newest-first.

        Raises:
            ProviderError: the body carries ``status == "error"``.
            DataShapeError: the body has no usable ``values`` list.
        """
        payload = self._get_json(TWELVE_DATA_URL, {
            "symbol": symbol,
            "interval": "1day",
            "outputsize": outputsize,
            "apikey": self.require_credential(),
        })

        if payload.get("status") == "error":
            raise ProviderError(
                f"{symbol}: {payload.get('message') or 'unknown error'}", provider=self.label
            )

        values = payload.get("values")
        if not isinstance(values, list) or not values:
            raise DataShapeError(f"{symbol}: response has no values", provider=self.label)

        logger.info(f"{type(self).__name__}: {len(values)} values for {symbol}")
        return values


class TwelveDataSeriesProvider(TwelveDataProvider):
    """One directly quoted daily series (gold spot or the dollar index).

    Subclasses set the output field names and the value formatter.
    """

    source_name: str = ""
    value_field: str = ""
    current_field: str = ""
    series_key: str = "data"
    formatter: Callable[[Any], Any] = staticmethod(str)

    def __init__(self, symbol: str, outputsize: int = 365, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.symbol = symbol
        self.outputsize = outputsize

    def fetch(self, run_at: datetime) -> SourceRecordSet:
        values = self.time_series(self.symbol, self.outputsize)
        try:
            current = self.formatter(values[0]["close"])
            series = tuple(
                TimeSeriesPoint(
                    date=parse_date(row["datetime"]),
                    fields={self.value_field: self.formatter(row["close"])},
                )
                for row in take_window(values, self.window_size)
            )
        except KeyError as exc:
            raise DataShapeError(f"{self.symbol}: value missing {exc}", provider=self.label) from exc
        except DataShapeError as exc:
            exc.provider = self.label
            raise

        return SourceRecordSet(
            name=self.source_name,
            source=self.label,
            last_updated=run_at,
            current={self.current_field: current},
            series=series,
            series_key=self.series_key,
            window_size=self.window_size,
        )


class TwelveDataPriceProvider(TwelveDataSeriesProvider):
    """Gold spot price (XAU/USD), rounded to whole dollars."""

    source_name = "price"
    value_field = "price"
    current_field = "currentPrice"
    series_key = "history"
    formatter = staticmethod(round_price)


class TwelveDataIndexProvider(TwelveDataSeriesProvider):
    """US dollar index (DXY), one decimal place."""

    source_name = "index"
    value_field = "dxy"
    current_field = "currentDXY"
    series_key = "data"
    formatter = staticmethod(format_index)
