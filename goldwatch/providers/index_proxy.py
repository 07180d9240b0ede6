"""Synthetic dollar-index proxy built from four Twelve Data currency pairs.

Used only when the direct DXY feed fails. All four pairs must return data;
there is no further fallback. Each pair request is separately rate-gated.

    value = base + Σ weight[pair] * close[pair]
"""

from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

from goldwatch.core.errors import DataShapeError, ProviderError
from goldwatch.core.logger import logger
from goldwatch.models.datatypes import SourceRecordSet, TimeSeriesPoint
from goldwatch.pipeline.normalizer import compute_index_proxy, format_index, parse_date
from goldwatch.providers.twelve_data import TwelveDataProvider

DEFAULT_WEIGHTS: Dict[str, float] = {
    "EUR/USD": -0.576,
    "USD/JPY": 0.136,
    "GBP/USD": -0.119,
    "USD/CAD": 0.091,
}
DEFAULT_BASE = 100.0


class CurrencyProxyIndexProvider(TwelveDataProvider):
    """Weighted-sum DXY proxy; fails unless every pair yields data."""

    label = "Calculated DXY Proxy"

    def __init__(
        self,
        weights: Optional[Mapping[str, float]] = None,
        base: float = DEFAULT_BASE,
        outputsize: int = 180,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.weights = dict(weights or DEFAULT_WEIGHTS)
        self.base = base
        self.outputsize = outputsize

    def fetch(self, run_at: datetime) -> SourceRecordSet:
        pair_values: Dict[str, List[Dict[str, Any]]] = {}
        for pair in self.weights:
            try:
                pair_values[pair] = self.time_series(pair, self.outputsize)
            except (ProviderError, DataShapeError) as exc:
                raise DataShapeError(
                    f"incomplete currency-pair set, {pair} yielded no data ({exc.message})",
                    provider=self.label,
                ) from exc

        try:
            rows = compute_index_proxy(pair_values, self.weights, self.base)
            newest_first = [
                TimeSeriesPoint(date=parse_date(raw_date), fields={"dxy": format_index(value)})
                for raw_date, value in rows
            ]
        except DataShapeError as exc:
            exc.provider = self.label
            raise

        series = tuple(reversed(newest_first[:self.window_size]))
        logger.info(
            f"CurrencyProxyIndexProvider: {len(series)} proxy points from {len(self.weights)} pairs"
        )
        return SourceRecordSet(
            name="index",
            source=self.label,
            last_updated=run_at,
            current={"currentDXY": newest_first[0].fields["dxy"]},
            series=series,
            series_key="data",
            window_size=self.window_size,
        )
