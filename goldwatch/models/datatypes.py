"""Data structures for the gold dashboard ingestion pipeline."""

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from goldwatch.core.errors import DataShapeError, FetchError, NotConfigured

WINDOW_SIZE = 180

_MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun",
           "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


def format_date(day: date) -> str:
    """Render a calendar day as ``"Jan 15, 2024"``."""
    return f"{_MONTHS[day.month - 1]} {day.day}, {day.year}"


def format_timestamp(moment: datetime) -> str:
    """Render a run timestamp as ISO-8601 UTC with millisecond precision."""
    moment = moment.astimezone(timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Impact(str, Enum):
    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"


@dataclass(frozen=True)
class TimeSeriesPoint:
    """
    One calendar day of a normalized series.

    ``fields`` holds the already formatted value(s) in output order, e.g.
    ``{"price": 2034}`` or ``{"fedRate": "5.33", "realYield": "1.87"}``.
    """
    date: date
    fields: Mapping[str, Any]

    def __post_init__(self) -> None:
        object.__setattr__(self, "fields", MappingProxyType(dict(self.fields)))

    def to_dict(self) -> Dict[str, Any]:
        return {"date": format_date(self.date), **self.fields}


@dataclass(frozen=True)
class GeoEvent:
    """A classified news event produced by the news provider path."""
    date: date
    headline: str
    severity: Severity
    impact: Impact
    link: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": format_date(self.date),
            "event": self.headline,
            "severity": self.severity.value,
            "impact": self.impact.value,
            "url": self.link,
        }


SeriesItem = Union[TimeSeriesPoint, GeoEvent]


@dataclass(frozen=True)
class SourceRecordSet:
    """
    The normalized, windowed output for one source for one run.

    Attributes:
        name: Source name (``price``, ``policy``, ``index``, ``events``).
        source: Provenance label of the provider that produced the data.
        last_updated: Timestamp of the pipeline run.
        current: Snapshot fields derived from the newest point, in output order.
        series: Chronological points (or events, newest first).
        series_key: Envelope key the series is published under.
        window_size: Cap on retained history.
    """
    name: str
    source: str
    last_updated: datetime
    current: Mapping[str, Any]
    series: Tuple[SeriesItem, ...]
    series_key: str = "data"
    window_size: int = WINDOW_SIZE

    def __post_init__(self) -> None:
        object.__setattr__(self, "current", MappingProxyType(dict(self.current)))
        object.__setattr__(self, "series", tuple(self.series))
        points = [p for p in self.series if isinstance(p, TimeSeriesPoint)]
        if not points:
            return
        if len(points) > self.window_size:
            raise DataShapeError(
                f"{self.name}: {len(points)} points exceed window of {self.window_size}",
                provider=self.source,
            )
        for prev, cur in zip(points, points[1:]):
            if cur.date <= prev.date:
                raise DataShapeError(
                    f"{self.name}: dates not strictly increasing at {cur.date.isoformat()}",
                    provider=self.source,
                )

    def to_dict(self) -> Dict[str, Any]:
        """Published JSON envelope. Key order is fixed."""
        payload: Dict[str, Any] = {
            "lastUpdated": format_timestamp(self.last_updated),
            "source": self.source,
        }
        payload.update(self.current)
        payload[self.series_key] = [item.to_dict() for item in self.series]
        return payload


@dataclass
class SourceOutcome:
    """Tagged result of one source: a record set or the failure that ended it."""
    name: str
    record_set: Optional[SourceRecordSet] = None
    error: Optional[FetchError] = None
    attempts: List[Tuple[str, FetchError]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.record_set is not None

    @property
    def not_configured(self) -> bool:
        return not self.ok and isinstance(self.error, NotConfigured)

    @property
    def provider_label(self) -> Optional[str]:
        return self.record_set.source if self.record_set else None

    def describe(self) -> str:
        if self.ok:
            return f"Success ({self.provider_label})"
        if self.not_configured:
            return "Skipped (not configured)"
        return f"Failed ({self.error.reason if self.error else 'UNKNOWN'}: {self.error})"


@dataclass
class RunOutcome:
    """Per-source outcomes of one run; success unless every source failed."""
    per_source: Dict[str, SourceOutcome]

    @property
    def success_count(self) -> int:
        return sum(1 for o in self.per_source.values() if o.ok)

    @property
    def overall_success(self) -> bool:
        return self.success_count > 0

    @property
    def exit_code(self) -> int:
        return 0 if self.overall_success else 1

    def summary_lines(self) -> List[str]:
        lines = [
            f"{'✓' if o.ok else '✗'} {name}: {o.describe()}"
            for name, o in self.per_source.items()
        ]
        lines.append(
            f"{self.success_count}/{len(self.per_source)} data sources updated successfully"
        )
        return lines
