"""
Planet data cache: day -> per-body orbital elements, plus coverage metadata.

The day table is authoritative; the coverage range is an index over it and is
validated (and rebuilt if needed) whenever the cache is loaded.

Writers (extend_range / prune_before / clear) are serialized on a lock. Day
lists are never edited in place, so snapshot() readers stay consistent while a
range fetch is merging.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from orrery.config import settings
from orrery.data import horizons
from orrery.data.dates import DAY, DateLike, add_months, dates_between, iso_date, parse_date, validate_range
from orrery.data.store import MemoryStore
from orrery.models.body import CelestialBody, resolve_bodies
from orrery.models.orbital_elements import OrbitalElements

logger = logging.getLogger(__name__)

DayRecord = List[Optional[OrbitalElements]]
Fetcher = Callable[[str, str, str], Sequence[Tuple[str, OrbitalElements]]]


@dataclass
class CoverageMetadata:
    start: Optional[str] = None
    end: Optional[str] = None
    last_cleanup: Optional[str] = None

    @property
    def has_range(self) -> bool:
        return self.start is not None and self.end is not None

    def widen(self, start: str, end: str) -> None:
        self.start = start if self.start is None else min(self.start, start)
        self.end = end if self.end is None else max(self.end, end)

    def to_dict(self) -> dict:
        out = {"lastCleanup": self.last_cleanup}
        if self.has_range:
            out["dataRange"] = {"start": self.start, "end": self.end}
        return out

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "CoverageMetadata":
        if not isinstance(data, dict):
            return cls()
        rng = data.get("dataRange") or {}
        return cls(
            start=rng.get("start"),
            end=rng.get("end"),
            last_cleanup=data.get("lastCleanup"),
        )


class PlanetDataCache:
    """
    Owns the DailyElementsTable for a fixed list of bodies.

    store:   key -> JSON store (get/set/delete); MemoryStore if omitted
    fetcher: fetcher(horizons_id, start_iso, end_iso) -> [(iso_date, OrbitalElements)]
    """

    def __init__(
        self,
        store=None,
        fetcher: Optional[Fetcher] = None,
        bodies: Optional[Sequence[CelestialBody]] = None,
    ):
        self.store = store if store is not None else MemoryStore()
        self.fetcher: Fetcher = fetcher or horizons.fetch_planet_elements
        self.bodies: List[CelestialBody] = list(bodies) if bodies is not None else resolve_bodies()
        self._lock = threading.RLock()

        self._table_key = getattr(settings, "PLANET_DATA_KEY", "planet_data_v2")
        self._meta_key = getattr(settings, "PLANET_DATA_META_KEY", "planet_data_meta_v2")

        self._table: Dict[str, DayRecord] = {}
        self._meta = CoverageMetadata()
        self._load()

    # -----------------------
    # Persistence
    # -----------------------
    def _load(self) -> None:
        raw_table = self.store.get(self._table_key) or {}
        table: Dict[str, DayRecord] = {}
        if isinstance(raw_table, dict):
            for day, slots in raw_table.items():
                try:
                    key = iso_date(day)
                except ValueError:
                    logger.warning("Dropping cached entry with malformed date %r", day)
                    continue
                table[key] = self._decode_day(slots)
        else:
            logger.warning("Cached planet table is not a mapping; starting fresh.")

        self._table = table
        self._meta = CoverageMetadata.from_dict(self.store.get(self._meta_key))
        if not self.validate_coverage():
            logger.info("Coverage metadata out of step with cached table; rebuilding.")
            self.rebuild_coverage()

    def _decode_day(self, slots) -> DayRecord:
        out: DayRecord = [None] * len(self.bodies)
        if not isinstance(slots, list):
            return out
        for idx, raw in enumerate(slots[: len(self.bodies)]):
            if raw is None:
                continue
            try:
                out[idx] = OrbitalElements.from_dict(raw)
            except (TypeError, ValueError) as e:
                logger.warning("Dropping malformed cached elements for %s: %s", self.bodies[idx].name, e)
        return out

    def _save(self) -> None:
        encoded = {
            day: [el.to_dict() if el is not None else None for el in slots]
            for day, slots in self._table.items()
        }
        self.store.set(self._table_key, encoded)
        self.store.set(self._meta_key, self._meta.to_dict())

    # -----------------------
    # Coverage index
    # -----------------------
    @property
    def coverage(self) -> CoverageMetadata:
        return CoverageMetadata(self._meta.start, self._meta.end, self._meta.last_cleanup)

    def validate_coverage(self) -> bool:
        """
        True when the coverage range agrees with the table: no data outside
        it, and (with data present) bounds equal to the first/last dates.
        """
        days = sorted(self._table)
        if not days:
            return not self._meta.has_range or self._meta.start == self._meta.last_cleanup
        if not self._meta.has_range:
            return False
        return self._meta.start == days[0] and self._meta.end == days[-1]

    def rebuild_coverage(self) -> CoverageMetadata:
        with self._lock:
            days = sorted(self._table)
            if days:
                self._meta.start, self._meta.end = days[0], days[-1]
            else:
                self._meta.start, self._meta.end = None, None
            self.store.set(self._meta_key, self._meta.to_dict())
            return self.coverage

    # -----------------------
    # Reads
    # -----------------------
    @property
    def body_count(self) -> int:
        return len(self.bodies)

    def get_day(self, day: DateLike) -> Optional[DayRecord]:
        slots = self._table.get(iso_date(day))
        return list(slots) if slots is not None else None

    def get_range(self, start: DateLike, end: DateLike) -> Dict[str, Optional[DayRecord]]:
        """
        {iso_date: slots or None} for every date in [start, end].
        """
        table = self._table
        return {d: (list(table[d]) if d in table else None) for d in dates_between(start, end)}

    def snapshot(self) -> Dict[str, DayRecord]:
        """Shallow copy of the table for read-only consumers (playback)."""
        return dict(self._table)

    def dates(self) -> List[str]:
        return sorted(self._table)

    def is_complete(self, day: DateLike) -> bool:
        slots = self._table.get(iso_date(day))
        return (
            slots is not None
            and len(slots) == self.body_count
            and all(s is not None for s in slots)
        )

    def check_availability(self, start: DateLike, end: DateLike) -> bool:
        """True iff every date in [start, end] has a complete entry."""
        return all(self.is_complete(d) for d in dates_between(start, end))

    def missing_bodies(self, day: DateLike) -> List[str]:
        slots = self._table.get(iso_date(day))
        if slots is None:
            return [b.name for b in self.bodies]
        return [b.name for b, s in zip(self.bodies, slots) if s is None]

    # -----------------------
    # Writes
    # -----------------------
    def _put(self, updates: Dict[str, Dict[int, OrbitalElements]]) -> None:
        # copy-on-write per day so snapshots never see a half-merged list
        for day, slots in updates.items():
            new_day = list(self._table.get(day) or [None] * self.body_count)
            for idx, el in slots.items():
                new_day[idx] = el
            self._table[day] = new_day

    def extend_range(self, start: DateLike, end: DateLike) -> List[str]:
        """
        Fetch and merge elements for [start, end]. Only empty slots are
        fetched; the star is synthesized as zeros. A failing body is logged
        and left empty. Returns the dates still incomplete afterwards.
        """
        s, e = validate_range(start, end)
        date_list = dates_between(s, e)
        start_str, end_str = s.isoformat(), e.isoformat()

        with self._lock:
            logger.info("Extending planet data for %s to %s (%d dates)", start_str, end_str, len(date_list))
            updates: Dict[str, Dict[int, OrbitalElements]] = {}

            for idx, body in enumerate(self.bodies):
                missing = [d for d in date_list if (self._table.get(d) or [None] * self.body_count)[idx] is None]
                if not missing:
                    continue

                if body.is_star:
                    for d in missing:
                        updates.setdefault(d, {})[idx] = OrbitalElements.zero()
                    continue

                try:
                    rows = self.fetcher(body.horizons_id, missing[0], missing[-1])
                except Exception as ex:
                    logger.error("Error fetching data for %s: %s", body.name, ex)
                    continue

                wanted = set(missing)
                received = 0
                for day, el in rows or []:
                    try:
                        key = iso_date(day)
                    except ValueError:
                        logger.warning("Ignoring %s record with malformed date %r", body.name, day)
                        continue
                    if key in wanted and el is not None:
                        updates.setdefault(key, {})[idx] = el
                        received += 1

                if received == 0:
                    logger.warning("No data returned for %s", body.name)
                else:
                    logger.info("Received data for %s: %d days", body.name, received)

            self._put(updates)

            incomplete = []
            for d in date_list:
                gone = self.missing_bodies(d)
                if gone:
                    incomplete.append(d)
                    logger.warning("Missing planet data for %s: %s", d, ", ".join(gone))

            if self._meta.last_cleanup is None:
                self._meta.last_cleanup = start_str
            self._meta.widen(start_str, end_str)
            logger.info("Coverage now %s to %s", self._meta.start, self._meta.end)
            self._save()
            return incomplete

    def prune_before(self, cutoff: DateLike) -> int:
        """
        Drop every day strictly before cutoff. Returns the number removed.
        """
        cutoff_str = iso_date(cutoff)
        with self._lock:
            stale = [d for d in self._table if d < cutoff_str]
            if stale:
                self._table = {d: v for d, v in self._table.items() if d >= cutoff_str}

            remaining = sorted(self._table)
            if self._meta.has_range:
                self._meta.start = remaining[0] if remaining else cutoff_str
                if self._meta.end < self._meta.start:
                    self._meta.end = self._meta.start
            self._meta.last_cleanup = cutoff_str
            self._save()

            logger.info("Removed %d days of planet data before %s", len(stale), cutoff_str)
            return len(stale)

    def clear(self) -> None:
        with self._lock:
            self._table = {}
            self._meta = CoverageMetadata()
            self.store.delete(self._table_key, self._meta_key)
            logger.info("All planet data cleared")

    # -----------------------
    # Convenience flows
    # -----------------------
    def ensure_range(self, start: DateLike, end: DateLike) -> bool:
        """
        Fetch [start, end] only if it is not already complete.
        Returns availability after the call.
        """
        if self.check_availability(start, end):
            return True
        self.extend_range(start, end)
        return self.check_availability(start, end)

    def initialize(self, today: Optional[DateLike] = None) -> None:
        """
        Prune data older than yesterday, then make sure the window
        [today, today + PREFETCH_MONTHS] is loaded unless coverage already
        runs past today.
        """
        today_d: date = parse_date(today) if today is not None else datetime.now(timezone.utc).date()
        back = int(getattr(settings, "PRUNE_DAYS_BACK", 1))
        self.prune_before(today_d - DAY * back)

        meta = self._meta
        if meta.has_range and parse_date(meta.end) > today_d:
            logger.info("Planet data already initialized until %s", meta.end)
            return

        horizon = add_months(today_d, int(getattr(settings, "PREFETCH_MONTHS", 2)))
        logger.info("Initializing planet data from %s to %s", today_d, horizon)
        self.extend_range(today_d, horizon)
