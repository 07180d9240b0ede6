"""Tests for the normalization rules (dates, rounding, pairing, proxy, events)."""

from datetime import date

import pytest

from goldwatch.core.errors import DataShapeError
from goldwatch.models.datatypes import Impact, Severity
from goldwatch.pipeline.normalizer import (
    classify_event,
    compute_index_proxy,
    format_date,
    format_index,
    format_rate,
    pair_policy_observations,
    parse_date,
    round_price,
    take_window,
    truncate_headline,
)
from conftest import days_back, fred_payload


# =============================================================================
# Dates
# =============================================================================

class TestDates:

    @pytest.mark.parametrize("raw", [
        "2024-01-15",
        "2024-01-15 16:00:00",
        "2024-01-15T10:30:00Z",
    ])
    def test_parse_drops_time_of_day(self, raw):
        assert parse_date(raw) == date(2024, 1, 15)

    def test_format_matches_display_shape(self):
        assert format_date(date(2024, 1, 15)) == "Jan 15, 2024"
        assert format_date(date(2023, 12, 5)) == "Dec 5, 2023"

    def test_unparseable_date_is_data_shape_error(self):
        with pytest.raises(DataShapeError):
            parse_date("not a date")


# =============================================================================
# Numbers
# =============================================================================

class TestNumbers:

    def test_price_rounds_half_up_to_integer(self):
        assert round_price("2034.49") == 2034
        assert round_price("2034.5") == 2035
        assert isinstance(round_price("1999.9"), int)

    def test_index_keeps_one_decimal(self):
        assert format_index("104.25") == "104.3"
        assert format_index(104) == "104.0"

    def test_rate_keeps_trailing_zeros(self):
        assert format_rate("5.3") == "5.30"
        assert format_rate("5.33") == "5.33"
        assert format_rate("-0.125") == "-0.13"

    def test_non_numeric_value_rejected(self):
        with pytest.raises(DataShapeError):
            round_price("n/a")

    def test_take_window_returns_newest_in_chronological_order(self):
        assert take_window([5, 4, 3, 2, 1], 3) == [3, 4, 5]
        assert take_window([2, 1], 180) == [1, 2]


# =============================================================================
# Policy pairing
# =============================================================================

class TestPolicyPairing:

    def test_sentinel_positions_excluded_order_preserved(self):
        rates = ["5.33", ".", "5.31", "5.30", ".", "5.28"]
        yields = ["2.01", ".", "1.99", "1.98", ".", "1.96"]
        pairs = pair_policy_observations(
            fred_payload(rates)["observations"], fred_payload(yields)["observations"], 180,
        )

        days = days_back(6)
        kept = [i for i, v in enumerate(rates) if v != "."]
        expected = [(days[i], f"{float(rates[i]):.2f}", f"{float(yields[i]):.2f}")
                    for i in reversed(kept)]
        assert pairs == expected
        assert [p[0] for p in pairs] == sorted(p[0] for p in pairs)

    def test_sentinel_on_one_side_drops_the_pair(self):
        pairs = pair_policy_observations(
            fred_payload(["5.33", "5.32"])["observations"],
            fred_payload([".", "1.90"])["observations"],
            180,
        )
        assert pairs == [(date(2024, 6, 27), "5.32", "1.90")]

    def test_keeps_only_newest_window(self):
        values = [f"{5 + i / 100:.2f}" for i in range(200)]
        pairs = pair_policy_observations(
            fred_payload(values)["observations"], fred_payload(values)["observations"], 180,
        )
        assert len(pairs) == 180
        assert pairs[-1][0] == date(2024, 6, 28)
        assert pairs[-1][1] == "5.00"

    def test_diverging_lengths_truncate_to_newest_shared(self, caplog):
        rates = fred_payload(["5.33", "5.32", "5.31"])["observations"]
        yields = fred_payload(["2.00", "1.99"])["observations"]
        pairs = pair_policy_observations(rates, yields, 180)
        assert pairs == [
            (date(2024, 6, 27), "5.32", "1.99"),
            (date(2024, 6, 28), "5.33", "2.00"),
        ]
        assert "lengths differ" in caplog.text


# =============================================================================
# Index proxy
# =============================================================================

WEIGHTS = {"EUR/USD": -0.576, "USD/JPY": 0.136, "GBP/USD": -0.119, "USD/CAD": 0.091}


def _pair_series(length, start, step):
    days = days_back(length)
    return [
        {"datetime": d.isoformat(), "close": f"{start + i * step:.5f}"}
        for i, d in enumerate(days)
    ]


class TestIndexProxy:

    def test_weighted_sum_for_every_aligned_position(self):
        pair_values = {
            "EUR/USD": _pair_series(180, 1.08, 0.0001),
            "USD/JPY": _pair_series(180, 150.0, 0.05),
            "GBP/USD": _pair_series(180, 1.27, 0.0002),
            "USD/CAD": _pair_series(180, 1.36, -0.0001),
        }
        rows = compute_index_proxy(pair_values, WEIGHTS, base=100)

        assert len(rows) == 180
        for i, (raw_date, value) in enumerate(rows):
            expected = 100 + sum(
                WEIGHTS[p] * float(pair_values[p][i]["close"]) for p in WEIGHTS
            )
            assert value == pytest.approx(expected)
            assert raw_date == pair_values["EUR/USD"][i]["datetime"]

    def test_aligns_to_shortest_series(self):
        pair_values = {
            "EUR/USD": _pair_series(10, 1.08, 0.0),
            "USD/JPY": _pair_series(7, 150.0, 0.0),
            "GBP/USD": _pair_series(10, 1.27, 0.0),
            "USD/CAD": _pair_series(9, 1.36, 0.0),
        }
        assert len(compute_index_proxy(pair_values, WEIGHTS)) == 7

    def test_missing_pair_is_data_shape_error(self):
        pair_values = {
            "EUR/USD": _pair_series(5, 1.08, 0.0),
            "USD/JPY": [],
            "GBP/USD": _pair_series(5, 1.27, 0.0),
            "USD/CAD": _pair_series(5, 1.36, 0.0),
        }
        with pytest.raises(DataShapeError, match="USD/JPY"):
            compute_index_proxy(pair_values, WEIGHTS)


# =============================================================================
# Event classification
# =============================================================================

class TestClassifyEvent:

    @pytest.mark.parametrize("text,severity,impact", [
        ("War breaks out, gold rises", Severity.HIGH, Impact.POSITIVE),
        ("Minor tension reported", Severity.MEDIUM, Impact.POSITIVE),
        ("Markets calm, gold falls slightly", Severity.LOW, Impact.NEGATIVE),
        ("Central bank holds rates steady", Severity.LOW, Impact.NEUTRAL),
    ])
    def test_keyword_classification(self, text, severity, impact):
        assert classify_event(text) == (severity, impact)

    def test_high_checked_before_medium(self):
        assert classify_event("Crisis deepens amid concern")[0] is Severity.HIGH

    def test_direction_overrides_default_positive(self):
        assert classify_event("Trade tension eases, gold falls") == (Severity.MEDIUM, Impact.NEGATIVE)

    def test_direction_must_follow_asset_name(self):
        assert classify_event("Silver rises on demand") == (Severity.LOW, Impact.NEUTRAL)

    def test_headline_truncated(self):
        assert truncate_headline("x" * 300) == "x" * 120
        assert truncate_headline(None) == ""
