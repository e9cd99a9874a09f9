# orrery/cli.py
from datetime import datetime, timedelta, timezone

from orrery.config import settings
from orrery.config.settings import DEFAULT_PLAYBACK_DURATION
from orrery.data.dates import parse_date


def get_float(prompt, default=None, min_val=None):
    """
    Safe float input with optional default. Non-interactive (EOF) returns default.
    """
    while True:
        try:
            user = input(prompt)
        except EOFError:
            return float(default) if default is not None else None
        if user.strip() == "" and default is not None:
            return float(default)
        try:
            val = float(user)
            if min_val is not None and val <= min_val:
                raise ValueError
            return val
        except (ValueError, TypeError):
            print("❌ Please enter a valid number.")


def get_date(prompt, default):
    """
    Safe YYYY-MM-DD input. Non-interactive (EOF) returns default.
    """
    while True:
        try:
            user = input(prompt)
        except EOFError:
            return parse_date(default)
        if user.strip() == "":
            return parse_date(default)
        try:
            return parse_date(user)
        except ValueError:
            print("❌ Please enter a date as YYYY-MM-DD.")


def choose_mode():
    """
    Choose playback mode.
      1 -> PREVIEW (matplotlib window) [default]
      2 -> HEADLESS (run to completion, write JSON summary)
    """
    print("\n⚙️  Playback Mode")
    print("  1) PREVIEW (Recommended) — live window")
    print("  2) HEADLESS — compute frames and save JSON")

    try:
        choice = input("Select mode [1]: ").strip()
    except EOFError:
        choice = ""

    if choice == "2":
        return "headless"
    return "preview"


def ask_range(today=None):
    today = today or datetime.now(timezone.utc).date()
    default_end = today + timedelta(days=30)

    print("\n🗓️  Playback Range")
    while True:
        start = get_date(f"Start date [default {today.isoformat()}]: ", default=today)
        end = get_date(f"End date [default {default_end.isoformat()}]: ", default=default_end)
        if end >= start:
            return start, end
        print("❌ End date must not be before start date.")


def run_cli(today=None):
    print("======================================")
    print("        ORRERY ORBITAL PLAYBACK        ")
    print("======================================")

    start, end = ask_range(today=today)

    duration = get_float(
        f"\nPlayback duration in seconds [default {DEFAULT_PLAYBACK_DURATION}]: ",
        default=getattr(settings, "DEFAULT_PLAYBACK_DURATION", DEFAULT_PLAYBACK_DURATION),
        min_val=0.0,
    )
    # single place of truth for the runtime value
    setattr(settings, "DEFAULT_PLAYBACK_DURATION", float(duration))

    mode = choose_mode()

    print("\n✅ CLI input complete.")
    print(f"→ Range: {start.isoformat()} to {end.isoformat()}")
    print(f"→ Duration: {duration:.1f} s, mode: {mode}")

    return start, end, float(duration), mode
