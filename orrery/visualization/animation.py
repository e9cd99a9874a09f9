# orrery/visualization/animation.py
import time

import numpy as np
import matplotlib.pyplot as plt
from matplotlib.animation import FuncAnimation

from orrery.config import settings
from orrery.engine.driver import PlaybackState


def project_horizontal(positions, names):
    """
    (xs, zs) of the display positions on the horizontal plane, in names order.
    Bodies without a position yet sit at the origin.
    """
    xs, zs = [], []
    for name in names:
        p = positions.get(name)
        if p is None:
            xs.append(0.0)
            zs.append(0.0)
        else:
            xs.append(float(p[0]))
            zs.append(float(p[2]))
    return np.array(xs), np.array(zs)


def frame_clock(nominal, clock=time.perf_counter):
    """
    Returns a callable giving the measured wall time since its previous call.
    The first call returns the nominal frame interval.
    """
    last = [None]

    def delta():
        now = clock()
        out = nominal if last[0] is None else now - last[0]
        last[0] = now
        return out

    return delta


def build_preview(driver, fps=None, extent=None):
    """
    Wire an AnimationDriver into a matplotlib FuncAnimation. Each animation
    frame ticks the driver by the measured wall time since the previous frame,
    until playback completes. Returns (fig, anim).
    """
    fps = int(getattr(settings, "PREVIEW_FPS", 30) if fps is None else fps)
    interval_ms = 1000.0 / fps
    names = [b.name for b in driver.bodies]
    sizes = np.array([max(b.size, 0.2) * 40.0 for b in driver.bodies])
    colors = [b.color for b in driver.bodies]

    fig, ax = plt.subplots(figsize=(8, 8))
    ax.set_title("Orbital playback (reference body at centre)")
    ax.set_aspect("equal")

    if extent is None:
        # guess from the end-of-playback layout
        final = driver.positions_at(driver.end_time)
        xs, zs = project_horizontal(final, names)
        extent = max(1.0, float(np.max(np.abs(np.concatenate([xs, zs]))))) * 1.3 if len(xs) else 1.0
    ax.set_xlim(-extent, extent)
    ax.set_ylim(-extent, extent)
    ax.set_xlabel("x")
    ax.set_ylabel("z")

    scat = ax.scatter(np.zeros(len(names)), np.zeros(len(names)), s=sizes, c=colors)
    labels = [ax.text(0, 0, n, fontsize=8) for n in names]
    date_text = ax.text(0.02, 0.96, "", transform=ax.transAxes)

    driver.on_date_change = lambda d: date_text.set_text(d.strftime("%Y-%m-%d %H:%M UTC"))

    if driver.state is PlaybackState.IDLE:
        driver.start()

    next_delta = frame_clock(interval_ms / 1000.0)

    def frames():
        n = 0
        while driver.state is not PlaybackState.COMPLETE:
            yield n
            n += 1

    def update(_frame):
        positions = driver.tick(next_delta())
        xs, zs = project_horizontal(positions, names)
        scat.set_offsets(np.column_stack([xs, zs]))
        for label, x, z in zip(labels, xs, zs):
            label.set_position((x, z))
        return [scat, date_text, *labels]

    anim = FuncAnimation(
        fig,
        update,
        frames=frames,
        cache_frame_data=False,
        interval=interval_ms,
        blit=False,
        repeat=False,
    )
    return fig, anim


def animate_playback(driver, fps=None):
    fig, anim = build_preview(driver, fps=fps)
    plt.show()
    return anim
