"""Normalization rules shared by every provider.

Dates:
    Provider date/time strings ("2024-01-15", "2024-01-15 16:00:00",
    "2024-01-15T10:00:00Z") → calendar day → "Jan 15, 2024".

Numbers (half-up, kept textual where trailing zeros matter):
    price  → int               2034.5  → 2035
    index  → one decimal str   104.25  → "104.3"
    rate   → two decimal str   5.3     → "5.30"

Events:
    headline + summary → (Severity, Impact) by keyword groups, high before medium.
"""

import re
from datetime import date
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, List, Mapping, Optional, Sequence, Tuple, TypeVar

import pandas as pd

from goldwatch.core.errors import DataShapeError
from goldwatch.core.logger import logger
from goldwatch.models.datatypes import Impact, Severity, format_date  # noqa: F401

MISSING_SENTINEL = "."
HEADLINE_MAX_CHARS = 120

_HIGH_SEVERITY = re.compile(r"war|crisis|attack|collapse|crash")
_MEDIUM_SEVERITY = re.compile(r"tension|concern|risk|warning|threat")
_POSITIVE_MOVES = "rises|rally|surge|gains|higher"
_NEGATIVE_MOVES = "falls|decline|drop|lower"

T = TypeVar("T")


# ── dates ─────────────────────────────────────────────────────────────────────

def parse_date(raw: Any) -> date:
    """Parse a provider date/time string into a calendar day (time-of-day dropped)."""
    try:
        stamp = pd.Timestamp(str(raw).strip())
    except (ValueError, TypeError) as exc:
        raise DataShapeError(f"unparseable date {raw!r}: {exc}") from exc
    if pd.isna(stamp):
        raise DataShapeError(f"unparseable date {raw!r}")
    if stamp.tzinfo is not None:
        stamp = stamp.tz_convert("UTC")
    return stamp.date()


# ── numbers ───────────────────────────────────────────────────────────────────

def _to_decimal(raw: Any) -> Decimal:
    try:
        value = Decimal(str(raw).strip())
    except (InvalidOperation, ValueError) as exc:
        raise DataShapeError(f"non-numeric value {raw!r}") from exc
    if not value.is_finite():
        raise DataShapeError(f"non-finite value {raw!r}")
    return value


def round_price(raw: Any) -> int:
    """Round a price to the nearest integer unit."""
    return int(_to_decimal(raw).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def format_index(raw: Any) -> str:
    """Render an index level with exactly one decimal place."""
    return str(_to_decimal(raw).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def format_rate(raw: Any) -> str:
    """Render a rate or yield with exactly two decimal places."""
    return str(_to_decimal(raw).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


# ── series shaping ────────────────────────────────────────────────────────────

def take_window(newest_first: Sequence[T], size: int) -> List[T]:
    """Return the newest ``size`` items in chronological (oldest-first) order."""
    return list(reversed(list(newest_first)[:size]))


def pair_policy_observations(
    rate_obs: Sequence[Mapping[str, Any]],
    yield_obs: Sequence[Mapping[str, Any]],
    window: int,
    sentinel: str = MISSING_SENTINEL,
) -> List[Tuple[date, str, str]]:
    """Pair a rate series with a real-yield series by position.

    Both inputs are newest-first observation lists (``{"date", "value"}``).
    They are reversed to chronological order and zipped by index; the date is
    taken from the rate series. Pairs where either raw value is the missing-data
    sentinel are dropped. The newest ``window`` complete pairs are kept.

    When the two series differ in length both are cut to the shorter one,
    keeping their newest observations, and a warning is logged.

    Returns:
        List of ``(day, fed_rate, real_yield)`` tuples, oldest first.
    """
    if len(rate_obs) != len(yield_obs):
        shorter = min(len(rate_obs), len(yield_obs))
        logger.warning(
            f"pair_policy_observations: series lengths differ "
            f"({len(rate_obs)} vs {len(yield_obs)}); truncating both to newest {shorter}"
        )
        rate_obs = rate_obs[:shorter]
        yield_obs = yield_obs[:shorter]

    pairs: List[Tuple[date, str, str]] = []
    for rate, real in zip(reversed(rate_obs), reversed(yield_obs)):
        rate_raw = str(rate.get("value", sentinel)).strip()
        real_raw = str(real.get("value", sentinel)).strip()
        if rate_raw == sentinel or real_raw == sentinel:
            continue
        pairs.append((parse_date(rate.get("date")), format_rate(rate_raw), format_rate(real_raw)))

    return pairs[-window:] if window > 0 else []


def compute_index_proxy(
    pair_values: Mapping[str, Sequence[Mapping[str, Any]]],
    weights: Mapping[str, float],
    base: float = 100.0,
) -> List[Tuple[str, float]]:
    """Weighted-sum index proxy from several currency-pair series.

    Each series is a newest-first list of ``{"datetime", "close"}`` values. The
    series are aligned by position up to the shortest length and each aligned
    row becomes ``base + Σ weight_i * close_i``. Dates come from the first pair
    in ``weights`` order.

    Returns:
        List of ``(raw_datetime, value)`` rows, newest first.
    """
    pairs = list(weights)
    missing = [p for p in pairs if not pair_values.get(p)]
    if missing:
        raise DataShapeError(f"no data for currency pair(s): {', '.join(missing)}")

    length = min(len(pair_values[p]) for p in pairs)
    try:
        closes = pd.DataFrame({
            p: pd.to_numeric([row["close"] for row in pair_values[p][:length]], errors="raise")
            for p in pairs
        })
    except (KeyError, ValueError, TypeError) as exc:
        raise DataShapeError(f"malformed currency pair values: {exc}") from exc

    weight_row = pd.Series({p: float(weights[p]) for p in pairs})
    proxy = float(base) + closes.mul(weight_row, axis=1).sum(axis=1)

    dates = [row.get("datetime") for row in pair_values[pairs[0]][:length]]
    return list(zip(dates, proxy.tolist()))


# ── events ────────────────────────────────────────────────────────────────────

def classify_event(text: str, asset_name: str = "gold") -> Tuple[Severity, Impact]:
    """Classify an article by keyword groups.

    High-severity patterns are checked before medium ones; default is low.
    Impact follows direction words right after the asset name; when none
    matches, medium/high severity defaults to positive (safe-haven assumption).
    """
    text = (text or "").lower()

    if _HIGH_SEVERITY.search(text):
        severity = Severity.HIGH
    elif _MEDIUM_SEVERITY.search(text):
        severity = Severity.MEDIUM
    else:
        severity = Severity.LOW

    asset = re.escape(asset_name.lower())
    if re.search(rf"{asset} ({_POSITIVE_MOVES})", text):
        impact = Impact.POSITIVE
    elif re.search(rf"{asset} ({_NEGATIVE_MOVES})", text):
        impact = Impact.NEGATIVE
    elif severity in (Severity.HIGH, Severity.MEDIUM):
        impact = Impact.POSITIVE
    else:
        impact = Impact.NEUTRAL

    return severity, impact


def truncate_headline(headline: Optional[str], limit: int = HEADLINE_MAX_CHARS) -> str:
    return (headline or "").strip()[:limit]
