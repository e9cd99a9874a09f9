# orrery/main.py
import json
import logging
import os
import traceback
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from orrery.cli import run_cli
from orrery.config import settings
from orrery.data.cache import PlanetDataCache
from orrery.data.dates import start_of_day
from orrery.data.store import JsonFileStore
from orrery.engine.driver import AnimationDriver
from orrery.simulation.runner import run_playback

# --- Setup logger ------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s  %(levelname)-7s  %(name)s  %(message)s",
    datefmt="%H:%M:%S"
)
log = logging.getLogger("main")


def save_json(obj: Any, name_prefix: str) -> str:
    ts = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
    out_dir = Path(getattr(settings, "OUTPUT_DIR", "outputs"))
    out_dir.mkdir(parents=True, exist_ok=True)
    filename = out_dir / f"{name_prefix}_{ts}.json"
    with open(filename, "w") as f:
        json.dump(obj, f, indent=2, default=lambda o: repr(o))
    return str(filename)


def main():
    try:
        settings.validate_settings()

        start, end, duration, mode = run_cli()
        log.info("Starting playback: %s -> %s, duration=%ss, mode=%s", start, end, duration, mode)

        cache = PlanetDataCache(store=JsonFileStore(getattr(settings, "CACHE_FILE", "planet_cache.json")))
        cache.initialize()

        # the driver never fetches; everything it needs is loaded up front
        if not cache.ensure_range(start, end):
            log.warning(
                "Planet data for %s to %s is incomplete; affected bodies will hold their last position.",
                start, end,
            )

        if mode == "headless":
            result = run_playback(
                cache.snapshot(), start, end,
                duration=duration,
                bodies=cache.bodies,
                keep_every=int(getattr(settings, "DEFAULT_FPS", 60)),
            )
            path = save_json(result, "playback")
            log.info("Saved playback summary: %s", path)
            return

        from orrery.visualization.animation import animate_playback

        driver = AnimationDriver.from_cache(cache, start_of_day(start), start_of_day(end), duration)
        animate_playback(driver)

    except KeyboardInterrupt:
        log.info("Interrupted.")
    except Exception as e:
        log.error("Playback failed: %s", e)
        log.debug(traceback.format_exc())
        raise SystemExit(1)


if __name__ == "__main__":
    os.makedirs(getattr(settings, "OUTPUT_DIR", "outputs"), exist_ok=True)
    main()
