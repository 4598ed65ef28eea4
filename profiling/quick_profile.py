#!/usr/bin/env python3
"""
Quick TubeTrack Profiler

A lightweight profiling script for the per-frame measurement pipeline.
Times each stage separately on a cluttered synthetic scene.

Usage:
    python quick_profile.py [--frames N] [--clutter N]
"""

import argparse
import sys
import time
from pathlib import Path

import numpy as np

# Add parent directory to path to import tubetrack
sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

from tubetrack import (
    LineTracker,
    TubeTrackConfig,
    find_centerlines,
    find_intersections,
    measure_angles,
    measure_segments,
)


class QuickProfiler:
    """Lightweight profiler for pipeline stages"""

    def __init__(self):
        self.timings = {}
        self.active_timers = {}

    def start(self, name):
        self.active_timers[name] = time.perf_counter()

    def end(self, name):
        if name in self.active_timers:
            duration = time.perf_counter() - self.active_timers.pop(name)
            self.timings.setdefault(name, []).append(duration)

    def report(self):
        """Print a table of per-stage statistics"""
        print("\n" + "=" * 60)
        print("QUICK PERFORMANCE PROFILE REPORT")
        print("=" * 60)

        stats = []
        for name, times in self.timings.items():
            stats.append({
                'name': name,
                'total': sum(times) * 1000,
                'avg': sum(times) / len(times) * 1000,
                'max': max(times) * 1000,
                'calls': len(times),
            })
        stats.sort(key=lambda x: x['total'], reverse=True)

        print(f"{'Stage':<25} {'Total(ms)':<10} {'Avg(ms)':<10} {'Max(ms)':<10} {'Calls':<8}")
        print("-" * 70)
        for stat in stats:
            print(f"{stat['name']:<25} {stat['total']:<10.2f} {stat['avg']:<10.2f} "
                  f"{stat['max']:<10.2f} {stat['calls']:<8}")
        print("-" * 70)
        print(f"{'TOTAL PROFILED TIME':<25} {sum(stat['total'] for stat in stats):<10.2f}")
        print()


def create_test_scenario(num_frames=100, num_tubes=6, clutter=40, seed=42):
    """
    Create frames of noisy tube edges plus random clutter.

    Args:
        num_frames: Number of frames to simulate
        num_tubes: Number of straight tube pieces in the scene
        clutter: Number of random segments added to each frame
        seed: Random seed
    """
    rng = np.random.default_rng(seed)

    edges = []
    for _ in range(num_tubes):
        cx, cy = rng.uniform(150, 490), rng.uniform(120, 360)
        angle = rng.uniform(0, np.pi)
        half_length = rng.uniform(60, 140)
        d = np.array([np.cos(angle), np.sin(angle)]) * half_length
        n = np.array([-np.sin(angle), np.cos(angle)]) * 20
        for side in (-1, 1):
            p = np.array([cx, cy]) + side * n
            edges.append(np.concatenate((p - d, p + d)))
    edges = np.array(edges)

    frames = []
    for _ in range(num_frames):
        visible = edges[rng.random(len(edges)) > 0.1]
        noisy = visible + rng.uniform(-1.5, 1.5, visible.shape)
        random_segments = rng.uniform(0, 640, (clutter, 4))
        frames.append(np.vstack((noisy, random_segments)))
    return frames


def profile_pipeline(frames, config):
    profiler = QuickProfiler()
    tracker = LineTracker(config)

    for raw in frames:
        profiler.start("track")
        tracked = tracker.update(raw, (640, 480))
        profiler.end("track")

        profiler.start("centerlines")
        centerlines = find_centerlines(
            tracked,
            config.width_threshold,
            config.centerline_angle_threshold,
            config.centerline_extension,
            config.pairing_strategy,
        )
        profiler.end("centerlines")

        profiler.start("intersections")
        intersections, segments = find_intersections(centerlines)
        profiler.end("intersections")

        profiler.start("measure")
        measure_angles(intersections)
        measure_segments(segments)
        profiler.end("measure")

    return profiler


def main():
    parser = argparse.ArgumentParser(description="Quick TubeTrack profiler")
    parser.add_argument("--frames", type=int, default=100)
    parser.add_argument("--clutter", type=int, default=40)
    parser.add_argument("--window", type=int, default=5)
    args = parser.parse_args()

    frames = create_test_scenario(num_frames=args.frames, clutter=args.clutter)
    print(f"Profiling {len(frames)} frames, ~{len(frames[0])} raw lines each, window={args.window}")

    for strategy in ("greedy", "hungarian", "adjacent"):
        config = TubeTrackConfig(window_size=args.window, pairing_strategy=strategy)
        print(f"\nPairing strategy: {strategy}")
        profile_pipeline(frames, config).report()


if __name__ == "__main__":
    main()
