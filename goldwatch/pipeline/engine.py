"""Pipeline engine — runs the four acquisition tasks in a fixed order.

Flow per run:
  1. Price   — Twelve Data XAU/USD → Alpha Vantage FX_DAILY
  2. Policy  — FRED DFF + DFII10
  3. Index   — Twelve Data DXY → currency-pair proxy
  4. Events  — NewsAPI (skipped when no key is configured)
  5. Summary — per-source success/failure, overall success

Tasks are strictly sequential with a rate-gate pause between them. A failed
source never stops the run; only a run where all four sources failed is a
failed run. Each successful record set replaces its JSON file wholesale; a
failed source leaves its previously published file untouched.
"""

import json
import os
import tempfile
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

import requests

from goldwatch.core.config import Credentials, section
from goldwatch.core.errors import FetchError, NotConfigured, PublishError
from goldwatch.core.logger import logger
from goldwatch.core.rate_gate import RateGate
from goldwatch.models.datatypes import WINDOW_SIZE, RunOutcome, SourceOutcome, SourceRecordSet
from goldwatch.pipeline.fallback import resolve_source
from goldwatch.providers.alpha_vantage import AlphaVantageFxProvider
from goldwatch.providers.base import JsonApiProvider
from goldwatch.providers.fred import FredPolicyProvider
from goldwatch.providers.index_proxy import DEFAULT_BASE, CurrencyProxyIndexProvider
from goldwatch.providers.news import DEFAULT_KEYWORDS, NewsApiEventsProvider
from goldwatch.providers.twelve_data import TwelveDataIndexProvider, TwelveDataPriceProvider

DEFAULT_OUTPUT_DIR = "public/data"
DEFAULT_FILES = {
    "price": "gold-price.json",
    "policy": "fed-policy.json",
    "index": "dollar-index.json",
    "events": "geopolitical-events.json",
}


class RunState(str, Enum):
    NOT_STARTED = "NotStarted"
    FETCHING_PRICE = "FetchingPrice"
    FETCHING_POLICY = "FetchingPolicy"
    FETCHING_INDEX = "FetchingIndex"
    FETCHING_EVENTS = "FetchingEvents"
    SUMMARIZING = "Summarizing"
    DONE = "Done"


_TASKS = (
    ("price", RunState.FETCHING_PRICE),
    ("policy", RunState.FETCHING_POLICY),
    ("index", RunState.FETCHING_INDEX),
    ("events", RunState.FETCHING_EVENTS),
)


class PipelineEngine:
    """Orchestrates one ingestion run across all sources.

    Args:
        config: Parsed config.yaml dict (passed in; not re-loaded internally).
        credentials: API keys, read once by the caller.
        output_dir: Directory the JSON files are published to. Defaults to
            ``config["output_dir"]``.
        gate: Rate gate shared by every request (a fresh one by default).
        session: HTTP session shared by every provider.
        now: Clock for the run timestamp.
    """

    def __init__(
        self,
        config: Dict[str, Any],
        credentials: Credentials,
        output_dir: Optional[str] = None,
        gate: Optional[RateGate] = None,
        session: Optional[requests.Session] = None,
        now: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self.config = config
        self.credentials = credentials
        self.output_dir = output_dir or config.get("output_dir", DEFAULT_OUTPUT_DIR)
        self.gate = gate or RateGate()
        self.session = session or requests.Session()
        self._now = now

        limits = section(config, "rate_limits")
        self.task_interval_ms = int(limits.get("task_interval_ms", 2000))
        self.files = {**DEFAULT_FILES, **section(config, "files")}
        self.chains = self._build_chains()
        self.state = RunState.NOT_STARTED
        self.states: List[RunState] = [self.state]

    # ── public ────────────────────────────────────────────────────────────────

    def run(self) -> RunOutcome:
        """Run every task once and publish what succeeded.

        Returns:
            :class:`RunOutcome` with one :class:`SourceOutcome` per source.
        """
        run_at = self._now()
        self.state = RunState.NOT_STARTED
        self.states = [self.state]
        logger.info(f"PipelineEngine: run started at {run_at.isoformat()}")

        per_source: Dict[str, SourceOutcome] = {}
        for index, (name, state) in enumerate(_TASKS):
            if index:
                self.gate.wait(self.task_interval_ms)
            self._transition(state)
            outcome = self._run_task(name, run_at)
            if outcome.ok:
                self._publish(outcome)
            per_source[name] = outcome

        self._transition(RunState.SUMMARIZING)
        result = RunOutcome(per_source=per_source)
        for line in result.summary_lines():
            logger.info(f"PipelineEngine: {line}")
        if not result.overall_success:
            logger.error("PipelineEngine: all updates failed — check API keys and rate limits")

        self._transition(RunState.DONE)
        return result

    # ── internal ──────────────────────────────────────────────────────────────

    def _transition(self, state: RunState) -> None:
        logger.debug(f"PipelineEngine: {self.state.value} → {state.value}")
        self.state = state
        self.states.append(state)

    def _run_task(self, name: str, run_at: datetime) -> SourceOutcome:
        """Resolve one source. Never raises."""
        if name == "events" and not self.credentials.news_api_key:
            logger.info(
                "SOURCE [events] skipped | reason=NOT_CONFIGURED — "
                "NEWS_API_KEY not set, geopolitical updates disabled"
            )
            return SourceOutcome(
                name=name,
                error=NotConfigured("not configured", provider=NewsApiEventsProvider.label),
            )

        try:
            return resolve_source(name, self.chains[name], run_at)
        except Exception as exc:
            logger.error(f"PipelineEngine: task '{name}' raised: {exc}", exc_info=True)
            return SourceOutcome(name=name, error=FetchError(f"unexpected error: {exc}"))

    def _publish(self, outcome: SourceOutcome) -> None:
        """Write the record set atomically; a failed write turns the source into a failure."""
        record_set: SourceRecordSet = outcome.record_set
        path = os.path.join(self.output_dir, self.files[record_set.name])
        try:
            write_json_atomic(path, record_set.to_dict())
        except (OSError, TypeError, ValueError) as exc:
            logger.error(f"PipelineEngine: could not write {path}: {exc}")
            outcome.record_set = None
            outcome.error = PublishError(f"could not write {path}: {exc}", provider=record_set.source)
            return
        logger.info(f"✓ Saved: {path} (source={record_set.source!r})")

    def _build_chains(self) -> Dict[str, List[JsonApiProvider]]:
        """Instantiate every provider with its own credential and shared transport."""
        creds = self.credentials
        limits = section(self.config, "rate_limits")
        shared = {
            "gate": self.gate,
            "session": self.session,
            "timeout": float(self.config.get("request_timeout_seconds", 15)),
            "request_interval_ms": int(limits.get("request_interval_ms", 1000)),
            "window_size": int(self.config.get("window_size", WINDOW_SIZE)),
        }

        price = section(self.config, "price")
        policy = section(self.config, "policy")
        index = section(self.config, "index")
        proxy = section(self.config, "index", "proxy")
        events = section(self.config, "events")

        return {
            "price": [
                TwelveDataPriceProvider(
                    api_key=creds.twelve_data_key,
                    symbol=price.get("symbol", "XAU/USD"),
                    outputsize=int(price.get("outputsize", 365)),
                    **shared,
                ),
                AlphaVantageFxProvider(
                    api_key=creds.alpha_vantage_key,
                    from_symbol=price.get("fallback_from_symbol", "XAU"),
                    to_symbol=price.get("fallback_to_symbol", "USD"),
                    **shared,
                ),
            ],
            "policy": [
                FredPolicyProvider(
                    api_key=creds.fred_key,
                    rate_series=policy.get("rate_series", "DFF"),
                    yield_series=policy.get("yield_series", "DFII10"),
                    limit=int(policy.get("limit", 365)),
                    **shared,
                ),
            ],
            "index": [
                TwelveDataIndexProvider(
                    api_key=creds.twelve_data_key,
                    symbol=index.get("symbol", "DXY"),
                    outputsize=int(index.get("outputsize", 365)),
                    **shared,
                ),
                CurrencyProxyIndexProvider(
                    api_key=creds.twelve_data_key,
                    weights=proxy.get("weights"),
                    base=float(proxy.get("base", DEFAULT_BASE)),
                    outputsize=int(proxy.get("outputsize", 180)),
                    **shared,
                ),
            ],
            "events": [
                NewsApiEventsProvider(
                    api_key=creds.news_api_key,
                    keywords=events.get("keywords", DEFAULT_KEYWORDS),
                    page_size=int(events.get("page_size", 20)),
                    max_events=int(events.get("max_events", 15)),
                    headline_max_chars=int(events.get("headline_max_chars", 120)),
                    asset_name=events.get("asset_name", "gold"),
                    **shared,
                ),
            ],
        }


# ── helpers ───────────────────────────────────────────────────────────────────

def write_json_atomic(path: str, data: Dict[str, Any]) -> None:
    """Replace ``path`` with ``data`` as indented JSON without a partial-write window."""
    directory = os.path.dirname(path) or "."
    os.makedirs(directory, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".tmp-", suffix=".json")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
        os.replace(tmp_path, path)
    except BaseException:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise
