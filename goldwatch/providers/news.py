"""NewsAPI /v2/everything provider for the geopolitical events source.

One search request per run with a fixed keyword disjunction, newest first.
Each article is classified by keyword groups (see
:func:`goldwatch.pipeline.normalizer.classify_event`) and its headline is
truncated before storage.

Free tier: 100 requests/day. The key is optional; without it the engine
skips this source entirely.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from goldwatch.core.errors import DataShapeError, ProviderError
from goldwatch.core.logger import logger
from goldwatch.models.datatypes import GeoEvent, SourceRecordSet
from goldwatch.pipeline.normalizer import (
    HEADLINE_MAX_CHARS, classify_event, parse_date, truncate_headline,
)
from goldwatch.providers.base import JsonApiProvider

NEWSAPI_URL = "https://newsapi.org/v2/everything"
DEFAULT_KEYWORDS = (
    'gold OR "Federal Reserve" OR China OR geopolitical OR "Middle East" OR tariffs'
)
_REMOVED_MARKER = "[Removed]"


class NewsApiEventsProvider(JsonApiProvider):
    """NewsAPI keyword search → classified :class:`GeoEvent` list."""

    label = "NewsAPI"
    credential_name = "NEWS_API_KEY"

    def __init__(
        self,
        keywords: str = DEFAULT_KEYWORDS,
        page_size: int = 20,
        max_events: int = 15,
        headline_max_chars: int = HEADLINE_MAX_CHARS,
        asset_name: str = "gold",
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.keywords = keywords
        self.page_size = page_size
        self.max_events = max_events
        self.headline_max_chars = headline_max_chars
        self.asset_name = asset_name

    def fetch(self, run_at: datetime) -> SourceRecordSet:
        payload = self._get_json(NEWSAPI_URL, {
            "q": self.keywords,
            "sortBy": "publishedAt",
            "pageSize": self.page_size,
            "apiKey": self.require_credential(),
        })

        if payload.get("status") == "error":
            raise ProviderError(
                payload.get("message") or payload.get("code") or "unknown error",
                provider=self.label,
            )

        articles = payload.get("articles")
        if not isinstance(articles, list):
            raise DataShapeError("response has no articles", provider=self.label)

        events: List[GeoEvent] = []
        for article in articles[:self.page_size]:
            event = self._to_event(article)
            if event is not None:
                events.append(event)

        logger.info(
            f"NewsApiEventsProvider: {len(articles)} articles → {len(events)} events, "
            f"keeping {min(len(events), self.max_events)}"
        )
        return SourceRecordSet(
            name="events",
            source=self.label,
            last_updated=run_at,
            current={},
            series=tuple(events[:self.max_events]),
            series_key="events",
            window_size=self.window_size,
        )

    def _to_event(self, article: Dict[str, Any]) -> Optional[GeoEvent]:
        """Classify one article. Returns None for articles without a usable title or date."""
        title = (article.get("title") or "").strip()
        if not title or title == _REMOVED_MARKER:
            logger.debug(f"NewsApiEventsProvider: skipped (title): {title!r}")
            return None
        try:
            day = parse_date(article.get("publishedAt"))
        except DataShapeError:
            logger.debug(f"NewsApiEventsProvider: skipped (date): {title!r}")
            return None

        text = f"{title} {article.get('description') or ''}"
        severity, impact = classify_event(text, self.asset_name)
        return GeoEvent(
            date=day,
            headline=truncate_headline(title, self.headline_max_chars),
            severity=severity,
            impact=impact,
            link=article.get("url") or "",
        )
