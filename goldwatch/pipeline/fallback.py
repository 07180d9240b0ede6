"""Fallback chain resolution for one source.

Chains used by the engine:
  price  — Twelve Data XAU/USD → Alpha Vantage FX_DAILY
  policy — FRED
  index  — Twelve Data DXY → currency-pair proxy
  events — NewsAPI

The first provider that returns a record set wins and its label becomes the
record set's ``source``. Every failure is logged with its reason code and kept
in ``SourceOutcome.attempts``; a failure of the whole chain is a failed source,
never a failed run.
"""

from datetime import datetime
from typing import Sequence

from goldwatch.core.errors import FetchError, NotConfigured
from goldwatch.core.logger import logger
from goldwatch.models.datatypes import SourceOutcome
from goldwatch.providers.base import JsonApiProvider


def resolve_source(
    name: str,
    chain: Sequence[JsonApiProvider],
    run_at: datetime,
) -> SourceOutcome:
    """Try each provider in ``chain`` in priority order.

    Args:
        name: Source name used in log lines (``price``, ``policy`` ...).
        chain: Providers, primary first.
        run_at: Timestamp of the pipeline run.

    Returns:
        SourceOutcome holding the winning record set, or the last error.
    """
    outcome = SourceOutcome(name=name)

    for tier, provider in enumerate(chain, start=1):
        try:
            record_set = provider.fetch(run_at)
        except FetchError as exc:
            if exc.provider is None:
                exc.provider = provider.label
            outcome.attempts.append((provider.label, exc))
            _log_failure(name, tier, len(chain), exc)
            continue

        outcome.record_set = record_set
        logger.info(
            f"SOURCE [{name}] source={record_set.source!r} | "
            f"{len(record_set.series)} points (tier {tier}/{len(chain)})"
        )
        return outcome

    outcome.error = _terminal_error(outcome)
    if not isinstance(outcome.error, NotConfigured):
        logger.error(f"SOURCE [{name}] failed | reason={outcome.error.reason} — all providers exhausted")
    return outcome


def _log_failure(name: str, tier: int, total: int, exc: FetchError) -> None:
    """Log NotConfigured apart from genuine failures."""
    if isinstance(exc, NotConfigured):
        logger.info(f"SOURCE [{name}] tier {tier}/{total} skipped | reason={exc.reason} | {exc}")
    else:
        logger.error(f"SOURCE [{name}] tier {tier}/{total} failed | reason={exc.reason} | {exc}")


def _terminal_error(outcome: SourceOutcome) -> FetchError:
    """The error a failed source reports: the last genuine failure, if any."""
    errors = [exc for _, exc in outcome.attempts]
    genuine = [exc for exc in errors if not isinstance(exc, NotConfigured)]
    if genuine:
        return genuine[-1]
    if errors:
        return errors[-1]
    return FetchError("no providers in chain")
