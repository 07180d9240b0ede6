"""Output validator — checks the published JSON files in the data directory.

Checks per file (files that do not exist yet are reported and skipped):
  1. Envelope keys present (lastUpdated, source, current fields, series key)
  2. Series length ≤ window size (180)
  3. Dates parse as "Mon D, YYYY" and are strictly increasing
  4. Value formats: price non-negative int, rates two decimals, index one decimal
  5. Events: severity/impact within their enums

File names and the window size follow config.yaml's ``files`` and
``window_size`` when a config file is given.

Usage:
    python -m goldwatch.pipeline.validator public/data [config.yaml]
"""

import json
import os
import re
import sys
from datetime import datetime
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from goldwatch.core.config import load_config, section
from goldwatch.models.datatypes import WINDOW_SIZE, Impact, Severity
from goldwatch.pipeline.engine import DEFAULT_FILES

_DATE_FMT = "%b %d, %Y"
_TWO_DECIMALS = re.compile(r"^-?\d+\.\d{2}$")
_ONE_DECIMAL = re.compile(r"^-?\d+\.\d$")


def _is_price(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


def _is_rate(value: Any) -> bool:
    return isinstance(value, str) and bool(_TWO_DECIMALS.match(value))


def _is_index(value: Any) -> bool:
    return isinstance(value, str) and bool(_ONE_DECIMAL.match(value))


# source name → (series key, current fields, {point field: check})
_SCHEMAS: Dict[str, Tuple[str, List[str], Dict[str, Callable[[Any], bool]]]] = {
    "price": ("history", ["currentPrice"], {"price": _is_price}),
    "policy": (
        "data", ["currentFedRate", "currentRealYield"],
        {"fedRate": _is_rate, "realYield": _is_rate},
    ),
    "index": ("data", ["currentDXY"], {"dxy": _is_index}),
    "events": ("events", [], {}),
}


def validate_file(
    path: str,
    source: Optional[str] = None,
    window_size: int = WINDOW_SIZE,
    require_published: bool = False,
) -> Tuple[bool, List[str]]:
    """Validate one published file. Returns ``(passed, messages)``.

    ``source`` defaults to the source whose default file name matches ``path``.
    """
    name = os.path.basename(path)
    if source is None:
        matches = [s for s, filename in DEFAULT_FILES.items() if filename == name]
        if not matches:
            return False, [f"FAIL  {name}: unknown output file"]
        source = matches[0]
    series_key, current_fields, checks = _SCHEMAS[source]

    try:
        with open(path, encoding="utf-8") as f:
            payload = json.load(f)
    except FileNotFoundError:
        if require_published:
            return False, [f"FAIL  {name}: expected {source} output is missing"]
        return True, [f"SKIP  {name}: not published yet"]
    except (OSError, json.JSONDecodeError) as exc:
        return False, [f"FAIL  {name}: could not read JSON: {exc}"]

    missing = [k for k in ["lastUpdated", "source", *current_fields, series_key] if k not in payload]
    if missing:
        return False, [f"FAIL  {name}: missing keys {missing}"]

    series = payload[series_key]
    messages: List[str] = []
    passed = True

    if series_key == "events":
        bad = [
            i for i, e in enumerate(series)
            if e.get("severity") not in {s.value for s in Severity}
            or e.get("impact") not in {m.value for m in Impact}
        ]
        if bad:
            messages.append(f"FAIL  {name}: invalid severity/impact at {bad[:5]}")
            return False, messages
        messages.append(f"PASS  {name}: {len(series)} events")
        return True, messages

    if len(series) > window_size:
        messages.append(f"FAIL  {name}: {len(series)} points (> {window_size})")
        passed = False

    try:
        days = [datetime.strptime(p["date"], _DATE_FMT).date() for p in series]
    except (KeyError, ValueError, TypeError) as exc:
        return False, messages + [f"FAIL  {name}: bad date: {exc}"]
    unordered = [i for i in range(1, len(days)) if days[i] <= days[i - 1]]
    if unordered:
        messages.append(f"FAIL  {name}: dates not strictly increasing at {unordered[:5]}")
        passed = False

    for field, check in checks.items():
        bad = [i for i, p in enumerate(series) if not check(p.get(field))]
        if bad:
            messages.append(f"FAIL  {name}: {field} malformed at {bad[:5]}")
            passed = False

    if passed:
        messages.append(f"PASS  {name}: {len(series)} points, source={payload['source']!r}")
    return passed, messages


def validate(
    output_dir: str,
    files: Optional[Mapping[str, str]] = None,
    window_size: int = WINDOW_SIZE,
    require_published: bool = False,
) -> Tuple[bool, List[str]]:
    """Run all validation checks against every file in ``output_dir``.

    Args:
        output_dir: Directory the pipeline publishes to.
        files: Source name → file name, as under config.yaml ``files``.
        window_size: Cap on retained history.
        require_published: Treat a missing file as a failure instead of a skip.

    Returns:
        Tuple of ``(passed: bool, messages: list[str])``.
    """
    names = {**DEFAULT_FILES, **(files or {})}
    passed = True
    messages: List[str] = []
    for source in _SCHEMAS:
        ok, file_messages = validate_file(
            os.path.join(output_dir, names[source]),
            source=source,
            window_size=window_size,
            require_published=require_published,
        )
        passed = passed and ok
        messages.extend(file_messages)
    return passed, messages


def main() -> int:
    if len(sys.argv) < 2:
        print("Usage: python -m goldwatch.pipeline.validator <output_dir> [config.yaml]")
        return 1
    files: Dict[str, str] = {}
    window_size = WINDOW_SIZE
    if len(sys.argv) > 2:
        try:
            config = load_config(sys.argv[2])
        except (FileNotFoundError, ValueError) as exc:
            print(f"ERROR: {exc}")
            return 1
        files = section(config, "files")
        window_size = int(config.get("window_size", WINDOW_SIZE))
    passed, messages = validate(sys.argv[1], files=files, window_size=window_size)
    for msg in messages:
        print(msg)
    if passed:
        print("\nVALIDATION PASSED ✓")
        return 0
    else:
        print("\nVALIDATION FAILED ✗")
        return 1


if __name__ == "__main__":
    sys.exit(main())
