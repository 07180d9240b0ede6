"""FRED series/observations provider for the Fed policy source.

Two requests per run, gated apart:
  1. Effective federal funds rate (``DFF``)
  2. 10-year TIPS real yield (``DFII10``)

Observations are paired by position once both series are in chronological
order; pairs where either side is FRED's ``"."`` missing-value marker are
dropped.
"""

from datetime import datetime
from typing import Any, Dict, List

from goldwatch.core.errors import DataShapeError, ProviderError
from goldwatch.core.logger import logger
from goldwatch.models.datatypes import SourceRecordSet, TimeSeriesPoint
from goldwatch.pipeline.normalizer import pair_policy_observations
from goldwatch.providers.base import JsonApiProvider

FRED_URL = "https://api.stlouisfed.org/fred/series/observations"


class FredPolicyProvider(JsonApiProvider):
    """Policy rate + real yield pairs from the St. Louis Fed."""

    label = "Federal Reserve Economic Data (FRED)"
    credential_name = "FRED_KEY"

    def __init__(
        self,
        rate_series: str = "DFF",
        yield_series: str = "DFII10",
        limit: int = 365,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.rate_series = rate_series
        self.yield_series = yield_series
        self.limit = limit

    def fetch(self, run_at: datetime) -> SourceRecordSet:
        rates = self._observations(self.rate_series)
        yields = self._observations(self.yield_series)

        try:
            pairs = pair_policy_observations(rates, yields, self.window_size)
        except DataShapeError as exc:
            exc.provider = self.label
            raise
        if not pairs:
            raise DataShapeError("no complete rate/yield pairs", provider=self.label)

        logger.info(
            f"FredPolicyProvider: {len(rates)}/{len(yields)} observations → {len(pairs)} pairs"
        )
        _, fed_rate, real_yield = pairs[-1]
        return SourceRecordSet(
            name="policy",
            source=self.label,
            last_updated=run_at,
            current={"currentFedRate": fed_rate, "currentRealYield": real_yield},
            series=tuple(
                TimeSeriesPoint(date=day, fields={"fedRate": rate, "realYield": real})
                for day, rate, real in pairs
            ),
            series_key="data",
            window_size=self.window_size,
        )

    def _observations(self, series_id: str) -> List[Dict[str, Any]]:
        """Fetch one series newest-first."""
        payload = self._get_json(FRED_URL, {
            "series_id": series_id,
            "api_key": self.require_credential(),
            "file_type": "json",
            "limit": self.limit,
            "sort_order": "desc",
        })
        if payload.get("error_message"):
            raise ProviderError(f"{series_id}: {payload['error_message']}", provider=self.label)

        observations = payload.get("observations")
        if not isinstance(observations, list):
            raise DataShapeError(f"{series_id}: response has no observations", provider=self.label)
        return observations
