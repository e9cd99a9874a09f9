"""
JPL Horizons client (orbital elements + observer longitudes, optional proxy).

 - One request per body covers a whole date range (STEP_SIZE=1d)
 - Retries with backoff on network errors and HTML/error pages
 - Raises RuntimeError when a body cannot be fetched; callers decide whether
   that is fatal (the planet data cache treats it as a missing slot)
"""

from __future__ import annotations

import json
import logging
import re
import time
from datetime import date
from typing import Dict, List, Optional, Tuple
from urllib.parse import quote

import requests

from orrery.config import settings
from orrery.data.dates import DAY, DateLike, parse_date, validate_range
from orrery.models.orbital_elements import OrbitalElements

# -----------------------
# Logging
# -----------------------
logger = logging.getLogger(__name__)

# -----------------------
# Config
# -----------------------
MONTHS = ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]
MONTH_NUM = {m: f"{i + 1:02d}" for i, m in enumerate(MONTHS)}

USER_AGENT = "OrreryEngine/1.0 (+https://example.invalid)"

_NUM = r"([-+]?[\d.]+(?:[Ee][-+]?\d+)?)"
_DATE_LINE = re.compile(r"A\.D\.\s+(\d{4})-([A-Za-z]{3})-(\d{2})")
_FIELDS = {
    "e": re.compile(r"EC=\s*" + _NUM),
    "i": re.compile(r"IN=\s*" + _NUM),
    "om": re.compile(r"OM=\s*" + _NUM),
    "w": re.compile(r"\bW\s*=\s*" + _NUM),
    "M0": re.compile(r"MA=\s*" + _NUM),
    "a": re.compile(r"(?:^|\s)A\s*=\s*" + _NUM),
    "PR": re.compile(r"PR=\s*" + _NUM),
}

# -----------------------
# Small helpers
# -----------------------
def format_horizons_date(value: DateLike) -> str:
    """YYYY-Mon-DD, the calendar format Horizons expects."""
    d = parse_date(value)
    return f"{d.year:04d}-{MONTHS[d.month - 1]}-{d.day:02d}"


def _horizons_to_iso(year: str, month_abbr: str, day: str) -> Optional[str]:
    month = MONTH_NUM.get(month_abbr.capitalize())
    if month is None:
        logger.error("Could not parse month abbreviation: %s", month_abbr)
        return None
    return f"{year}-{month}-{day}"


def _looks_like_html(text: str) -> bool:
    t = (text or "").lower()
    return ("<html" in t) or ("<!doctype html" in t) or ("</html>" in t)


def _data_section(text: str) -> List[str]:
    lines = (text or "").splitlines()
    out = []
    inside = False
    for line in lines:
        if "$$SOE" in line:
            inside = True
            continue
        if "$$EOE" in line:
            break
        if inside:
            out.append(line)
    return out


# -----------------------
# Parsers
# -----------------------
def parse_elements_result(text: str, horizons_id: str) -> List[Tuple[str, OrbitalElements]]:
    """
    Parse an EPHEM_TYPE=ELEMENTS result block into (iso_date, elements) rows.
    PR (seconds) becomes T (days); without PR the standard period is used.
    Records with fewer than six recognised fields are dropped.
    """
    default_period = settings.get_orbital_period(horizons_id)
    rows: List[Tuple[str, OrbitalElements]] = []
    current_date: Optional[str] = None
    current: Dict[str, float] = {}

    def flush():
        if current_date and len([k for k in current if k != "PR"]) >= 6:
            period = current.get("PR")
            rows.append((current_date, OrbitalElements(
                a=current.get("a", 0.0),
                e=current.get("e", 0.0),
                i=current.get("i", 0.0),
                om=current.get("om", 0.0),
                w=current.get("w", 0.0),
                M0=current.get("M0", 0.0),
                T=period / 86400.0 if period else default_period,
            )))
        elif current_date:
            logger.warning("Incomplete elements for %s on %s: %s", horizons_id, current_date, sorted(current))

    for line in _data_section(text):
        if "=" in line and "A.D." in line:
            flush()
            current = {}
            m = _DATE_LINE.search(line)
            current_date = _horizons_to_iso(*m.groups()) if m else None
            if m is None:
                logger.error("Could not parse date from: %s", line.strip())
            continue

        for key, rx in _FIELDS.items():
            m = rx.search(line)
            if m:
                try:
                    current[key] = float(m.group(1))
                except ValueError:
                    logger.error("Bad %s value in line: %s", key, line.strip())
    flush()
    return rows


def parse_observer_result(text: str, horizons_id: str) -> List[Dict[str, float]]:
    """
    Parse an OBSERVER (QUANTITIES=31) result into [{'date', 'longitude'}].
    A solar-presence marker column (m, *, C, N, A) shifts the longitude right.
    """
    out = []
    for line in _data_section(text):
        if not line.strip():
            continue
        cols = line.split()
        if len(cols) < 4:
            logger.error("Invalid data line for %s: %s", horizons_id, line)
            continue

        lon_idx = 3 if cols[2] in ("m", "*", "C", "N", "A") else 2
        if len(cols) <= lon_idx:
            logger.error("Not enough columns for longitude for %s: %s", horizons_id, line)
            continue

        parts = cols[0].split("-")
        if len(parts) != 3:
            logger.error("Failed to parse date for %s: %s", horizons_id, cols[0])
            continue
        iso = _horizons_to_iso(*parts)
        if iso is None:
            continue

        try:
            lon = float(cols[lon_idx])
        except ValueError:
            logger.error("Failed to extract longitude for %s on %s", horizons_id, cols[0])
            continue
        out.append({"date": iso, "longitude": lon})
    return out


# -----------------------
# Transport
# -----------------------
def _build_query(params: Dict[str, str]) -> str:
    return "&".join(f"{k}={quote(v, safe=':@,')}" for k, v in params.items())


def _get(params: Dict[str, str], session: Optional[requests.Session] = None) -> str:
    """
    GET the Horizons API (directly or through the configured proxy) with
    retries. Returns the response text.
    """
    if session is None:
        with requests.Session() as own:
            return _get(params, session=own)

    headers = {"User-Agent": USER_AGENT}

    base = getattr(settings, "HORIZONS_API_URL", "https://ssd.jpl.nasa.gov/api/horizons.api")
    target = f"{base}?{_build_query(params)}"
    proxy = getattr(settings, "HORIZONS_PROXY_URL", None)
    url = f"{proxy}?url={quote(target, safe='')}" if proxy else target

    timeout = float(getattr(settings, "HORIZONS_TIMEOUT", 20.0))
    retries = max(1, int(getattr(settings, "HORIZONS_RETRIES", 3)))
    backoff = float(getattr(settings, "HORIZONS_BACKOFF", 0.6))

    last_exc: Optional[Exception] = None
    for attempt in range(1, retries + 1):
        try:
            resp = session.get(url, timeout=timeout, headers=headers)
            resp.raise_for_status()
            text = resp.text or ""
            ct = (resp.headers.get("Content-Type", "") or "").lower()
            if "text/html" in ct or _looks_like_html(text):
                raise RuntimeError("Horizons returned an HTML page instead of data")
            return text

        except requests.HTTPError as he:
            last_exc = he
            status = he.response.status_code if he.response is not None else None
            if status is not None and 400 <= status < 500:
                raise RuntimeError(f"Horizons HTTP error: {status}") from he

        except (requests.RequestException, RuntimeError) as e:
            last_exc = e

        if attempt < retries:
            time.sleep(backoff * attempt)

    raise RuntimeError(f"Horizons request failed after {retries} attempts: {last_exc}") from last_exc


def _result_text(raw: str) -> str:
    """format=json responses wrap the text block in {'result': ...}."""
    try:
        data = json.loads(raw)
    except ValueError:
        return raw
    if isinstance(data, dict):
        if data.get("error"):
            raise RuntimeError(f"Horizons error: {data['error']}")
        return str(data.get("result", ""))
    return raw


# -----------------------
# Public API
# -----------------------
def fetch_planet_elements(
    horizons_id: str,
    start: DateLike,
    end: DateLike,
    session: Optional[requests.Session] = None,
) -> List[Tuple[str, OrbitalElements]]:
    """
    Daily heliocentric orbital elements for [start, end] (inclusive).
    Raises ValueError for an invalid range, RuntimeError for provider failures.
    """
    s, e = validate_range(start, end)
    # Horizons rejects STOP_TIME == START_TIME
    stop = e if e > s else s + DAY

    params = {
        "format": "json",
        "COMMAND": f"'{horizons_id}'",
        "OBJ_DATA": "'NO'",
        "MAKE_EPHEM": "'YES'",
        "EPHEM_TYPE": "'ELEMENTS'",
        "CENTER": "'500@10'",
        "START_TIME": f"'{format_horizons_date(s)}'",
        "STOP_TIME": f"'{format_horizons_date(stop)}'",
        "STEP_SIZE": "'1d'",
    }
    logger.info("Fetching orbital elements for %s from %s to %s", horizons_id, s, e)
    text = _result_text(_get(params, session=session))

    rows = [(d, el) for d, el in parse_elements_result(text, horizons_id) if s <= date.fromisoformat(d) <= e]
    if not rows:
        raise RuntimeError(f"No orbital elements returned for {horizons_id} ({s} to {e})")
    logger.info("Fetched orbital elements for %s: %d days", horizons_id, len(rows))
    return rows


def fetch_planet_longitudes(
    horizons_id: str,
    start: DateLike,
    end: DateLike,
    session: Optional[requests.Session] = None,
) -> List[Dict[str, float]]:
    """
    Daily geocentric ecliptic longitudes (deg) for [start, end].
    """
    s, e = validate_range(start, end)
    if e <= s:
        raise ValueError(f"End date ({e}) must be after start date ({s})")

    params = {
        "format": "text",
        "COMMAND": f"'{horizons_id}'",
        "OBJ_DATA": "'NO'",
        "MAKE_EPHEM": "'YES'",
        "EPHEM_TYPE": "'OBSERVER'",
        "CENTER": "'coord@399'",
        "START_TIME": f"'{format_horizons_date(s)}'",
        "STOP_TIME": f"'{format_horizons_date(e)}'",
        "STEP_SIZE": "'1d'",
        "QUANTITIES": "'31'",
        "ANG_FORMAT": "'DEG'",
        "EXTRA_PREC": "'YES'",
        "CSV_FORMAT": "'NO'",
        "SITE_COORD": "'0,0,0'",
    }
    logger.info("Fetching longitudes for %s from %s to %s", horizons_id, s, e)
    rows = parse_observer_result(_get(params, session=session), horizons_id)
    if not rows:
        logger.warning("No positions returned for %s from %s to %s", horizons_id, s, e)
    return rows
