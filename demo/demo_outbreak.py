#!/usr/bin/env python3
"""
Demo: One Bad Apple over San Francisco

A headless host for the engine:
1. Create 200 agents over central San Francisco, patient zero included
2. Drive tick(now) with a synthetic 60 fps clock
3. Pause halfway for 30 s and resume (no catch-up jump)
4. Fit a logistic curve to the infection history
5. Render the final frame: agents, live transmission edges, infection curve

Requires matplotlib (pip install -e ".[demo]").
"""

import numpy as np
import matplotlib.pyplot as plt
from pathlib import Path
from loguru import logger

from badapple.core import SimulationClock, SimulationConfig, SAN_FRANCISCO
from badapple.analysis import fit_logistic, history_to_arrays, time_to_fraction


FRAME_MS = 1000.0 / 60.0


def main():
    logger.enable("badapple")

    print("=" * 60)
    print("  ONE BAD APPLE")
    print("=" * 60)

    config = SimulationConfig(
        population_size=200,
        bounds=SAN_FRANCISCO,
        infection_radius=0.003,
        seed=42,
    )
    clock = SimulationClock(config, now=0.0)

    print(f"\n1. Setup:")
    print(f"   Agents: {config.population_size}")
    print(f"   Radius: {config.infection_radius}")
    print(f"   Bounds: lng [{SAN_FRANCISCO.x_min}, {SAN_FRANCISCO.x_max}]"
          f" lat [{SAN_FRANCISCO.y_min}, {SAN_FRANCISCO.y_max}]")

    # Host loop: 60 s of frames with a 30 s pause in the middle
    print("\n2. Running...")
    now = 0.0
    clock.start(now)
    n_frames = 60 * 60
    snapshot = clock.snapshot()
    for frame in range(n_frames):
        if frame == n_frames // 2:
            clock.pause()
            now += 30_000.0
            clock.tick(now)  # ignored while paused
            clock.start(now)
            print(f"   Paused 30 s at frame {frame}, resumed")
        now += FRAME_MS
        snapshot = clock.tick(now)
        if frame % 600 == 0:
            print(f"   t={snapshot.elapsed_seconds:6.1f}s  infected={snapshot.stats.infected:4d}"
                  f"  ({snapshot.stats.rate:.1f}%)  edges={len(snapshot.connections)}")

    stats = snapshot.stats
    print(f"\n3. Result:")
    print(f"   Infected: {stats.infected}/{stats.total} ({stats.rate:.1f}%)")
    half = time_to_fraction(clock.history, stats.total, 0.5)
    print(f"   Time to 50%: {'never' if half is None else f'{half:.1f}s'}")

    print("\n4. Logistic fit:")
    fit = None
    try:
        fit = fit_logistic(clock.history, stats.total)
        print(f"   N(t) = {fit.capacity:.1f} / (1 + exp(-{fit.growth_rate:.3f}(t - {fit.midpoint:.1f})))")
        print(f"   R² = {fit.r_squared:.4f}")
    except (RuntimeError, ValueError) as e:
        print(f"   Fit failed: {e}")

    # Visualization
    print("\n5. Creating visualization...")
    fig, axes = plt.subplots(1, 2, figsize=(16, 7))

    ax = axes[0]
    ax.set_facecolor("black")
    for edge in snapshot.connections:
        (sx, sy), (tx, ty) = edge.source_pos, edge.target_pos
        ax.plot([sx, tx], [sy, ty], color=(1.0, 0.0, 0.47), alpha=0.7, linewidth=2)
    positions = np.array([a.position for a in snapshot.agents])
    colors = np.array([a.color for a in snapshot.agents]) / 255.0
    ax.scatter(positions[:, 0], positions[:, 1], c=colors, s=25, alpha=0.9)
    ax.set_xlim(SAN_FRANCISCO.x_min, SAN_FRANCISCO.x_max)
    ax.set_ylim(SAN_FRANCISCO.y_min, SAN_FRANCISCO.y_max)
    ax.set_aspect("equal")
    ax.set_title(f"Destabilized: {stats.infected} agents ({stats.rate:.1f}%)")
    ax.set_xlabel("longitude")
    ax.set_ylabel("latitude")

    ax = axes[1]
    times, counts = history_to_arrays(clock.history)
    ax.plot(times, counts, color="#ff5555", linewidth=2, label="Infected (max)")
    if fit is not None:
        ax.plot(times, fit.predict(times), "k--", linewidth=1, label="Logistic fit")
    ax.set_xlim(0, max(10.0, float(times[-1])))
    ax.set_ylim(0, None)
    ax.set_xlabel("Elapsed time (s)")
    ax.set_ylabel("Infected agents")
    ax.set_title("Infection curve")
    ax.legend(loc="lower right")
    ax.grid(True, alpha=0.3)

    plt.tight_layout()

    output_dir = Path("output/demo_outbreak")
    output_dir.mkdir(parents=True, exist_ok=True)
    output_path = output_dir / "outbreak.png"
    fig.savefig(output_path, dpi=150, bbox_inches="tight")
    print(f"   Saved: {output_path}")

    plt.close()
    print("\n" + "=" * 60)


if __name__ == "__main__":
    main()
