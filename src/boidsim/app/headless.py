from __future__ import annotations

import argparse
import csv
import json
import logging
import math
from pathlib import Path
from typing import Optional

from ..sim.core.config import SimulationConfig
from ..sim.core.world import World

logger = logging.getLogger(__name__)

_BASIC_HEADER = [
    "tick",
    "population",
    "pair_checks",
    "neighbor_pairs",
    "avg_neighbors",
    "alignment",
    "tick_ms",
]

_DETAILED_HEADER = [
    "tick",
    "population",
    "pair_checks",
    "neighbor_pairs",
    "avg_neighbors",
    "alignment",
    "tick_ms",
    "paused",
    "isolated",
    "neighbor_pairs_per_agent",
    "tick_ms_per_agent",
    "centroid_x",
    "centroid_y",
    "spread",
    "visual_scale",
]


def _format_basic_row(metrics: object, tick_ms: float) -> list[object]:
    return [
        metrics.tick,
        metrics.population,
        metrics.pair_checks,
        metrics.neighbor_pairs,
        f"{metrics.average_neighbors:.4f}",
        f"{metrics.alignment:.4f}",
        f"{tick_ms:.3f}",
    ]


def _isolated_count(world: World) -> int:
    """Boids with no neighbour inside the vision radius at the current positions."""
    vision_sq = world.settings.vision_distance * world.settings.vision_distance
    agents = world.agents
    isolated = 0
    for agent in agents:
        if not any(
            other is not agent and agent.position.distance_squared_to(other.position) < vision_sq
            for other in agents
        ):
            isolated += 1
    return isolated


def _format_detailed_row(world: World, metrics: object, tick_ms: float) -> list[object]:
    population = metrics.population
    if population <= 0:
        isolated = 0
        neighbor_pairs_per_agent = 0.0
        tick_ms_per_agent = 0.0
        centroid_x = 0.0
        centroid_y = 0.0
        spread = 0.0
    else:
        isolated = _isolated_count(world)
        neighbor_pairs_per_agent = metrics.neighbor_pairs / population
        tick_ms_per_agent = tick_ms / population
        sum_x = 0.0
        sum_y = 0.0
        for agent in world.agents:
            sum_x += agent.position.x
            sum_y += agent.position.y
        centroid_x = sum_x / population
        centroid_y = sum_y / population
        spread = (
            sum(math.hypot(agent.position.x - centroid_x, agent.position.y - centroid_y) for agent in world.agents)
            / population
        )

    return [
        metrics.tick,
        population,
        metrics.pair_checks,
        metrics.neighbor_pairs,
        f"{metrics.average_neighbors:.4f}",
        f"{metrics.alignment:.4f}",
        f"{tick_ms:.3f}",
        int(metrics.paused),
        isolated,
        f"{neighbor_pairs_per_agent:.4f}",
        f"{tick_ms_per_agent:.4f}",
        f"{centroid_x:.4f}",
        f"{centroid_y:.4f}",
        f"{spread:.4f}",
        f"{world.visual_scale:.4f}",
    ]


def _percentile(sorted_values: list[float], percentile: float) -> float:
    if not sorted_values:
        return 0.0
    if len(sorted_values) == 1:
        return float(sorted_values[0])
    pos = (len(sorted_values) - 1) * percentile
    low = int(math.floor(pos))
    high = int(math.ceil(pos))
    if low == high:
        return float(sorted_values[low])
    weight = pos - low
    return float(sorted_values[low] + (sorted_values[high] - sorted_values[low]) * weight)


def _summary_stats(values: list[float]) -> dict[str, float]:
    if not values:
        return {"min": 0.0, "max": 0.0, "avg": 0.0, "p50": 0.0, "p90": 0.0, "p95": 0.0, "p99": 0.0}
    sorted_values = sorted(values)
    total = sum(values)
    count = len(values)
    return {
        "min": float(sorted_values[0]),
        "max": float(sorted_values[-1]),
        "avg": float(total / count),
        "p50": _percentile(sorted_values, 0.50),
        "p90": _percentile(sorted_values, 0.90),
        "p95": _percentile(sorted_values, 0.95),
        "p99": _percentile(sorted_values, 0.99),
    }


def _correlation(xs: list[float], ys: list[float]) -> float:
    if len(xs) != len(ys) or len(xs) < 2:
        return 0.0
    mean_x = sum(xs) / len(xs)
    mean_y = sum(ys) / len(ys)
    num = 0.0
    denom_x = 0.0
    denom_y = 0.0
    for x, y in zip(xs, ys):
        dx = x - mean_x
        dy = y - mean_y
        num += dx * dy
        denom_x += dx * dx
        denom_y += dy * dy
    denom = math.sqrt(denom_x * denom_y)
    if denom == 0.0:
        return 0.0
    return float(num / denom)


def run_headless(
    steps: int,
    seed: Optional[int],
    log_path: Optional[Path],
    deterministic_log: bool = False,
    log_format: str = "detailed",
    summary_path: Optional[Path] = None,
    summary_window: int = 5000,
    config_path: Optional[Path] = None,
) -> None:
    log_mode = log_format.lower().strip()
    if log_mode not in {"basic", "detailed"}:
        raise ValueError(f"Unknown log format: {log_format}")

    config = SimulationConfig.from_yaml(config_path) if config_path else SimulationConfig()
    if seed is not None:
        config.seed = seed
    world = World(config)
    logger.info("Running %d headless steps (seed=%d, boids=%d)", steps, config.seed, len(world.agents))

    writer = None
    csv_file = None
    if log_path:
        csv_file = Path(log_path).open("w", newline="")
        writer = csv.writer(csv_file)
        writer.writerow(_DETAILED_HEADER if log_mode == "detailed" else _BASIC_HEADER)

    tick_ms_series: list[float] = []
    neighbor_pairs_series: list[int] = []
    alignment_series: list[float] = []
    max_tick_ms = (-1.0, -1)
    max_neighbor_pairs = (-1, -1)

    try:
        for _ in range(steps):
            metrics = world.step()
            tick_ms = 0.0 if deterministic_log else metrics.tick_duration_ms

            if summary_path:
                tick_ms_series.append(tick_ms)
                neighbor_pairs_series.append(metrics.neighbor_pairs)
                alignment_series.append(metrics.alignment)
                if tick_ms > max_tick_ms[0]:
                    max_tick_ms = (tick_ms, metrics.tick)
                if metrics.neighbor_pairs > max_neighbor_pairs[0]:
                    max_neighbor_pairs = (metrics.neighbor_pairs, metrics.tick)

            if writer:
                if log_mode == "detailed":
                    writer.writerow(_format_detailed_row(world, metrics, tick_ms))
                else:
                    writer.writerow(_format_basic_row(metrics, tick_ms))
    finally:
        if csv_file:
            csv_file.close()

    if summary_path:
        window = max(1, int(summary_window))
        tail_slice = slice(max(0, len(tick_ms_series) - window), len(tick_ms_series))
        summary = {
            "steps": steps,
            "seed": config.seed,
            "population": len(world.agents),
            "log_format": log_mode,
            "deterministic_log": deterministic_log,
            "tick_ms": _summary_stats(tick_ms_series),
            "neighbor_pairs": _summary_stats([float(v) for v in neighbor_pairs_series]),
            "alignment": _summary_stats(alignment_series),
            "correlations": {
                "tick_ms_vs_neighbor_pairs": _correlation(
                    tick_ms_series, [float(v) for v in neighbor_pairs_series]
                ),
            },
            "peaks": {
                "tick_ms": {"value": float(max_tick_ms[0]), "tick": max_tick_ms[1]},
                "neighbor_pairs": {"value": max_neighbor_pairs[0], "tick": max_neighbor_pairs[1]},
            },
            "tail_window": {
                "window": window,
                "tick_ms": _summary_stats(tick_ms_series[tail_slice]),
                "neighbor_pairs": _summary_stats([float(v) for v in neighbor_pairs_series[tail_slice]]),
                "alignment": _summary_stats(alignment_series[tail_slice]),
            },
        }
        Path(summary_path).write_text(json.dumps(summary, indent=2))
        logger.info("Wrote run summary to %s", summary_path)


def main() -> None:
    parser = argparse.ArgumentParser(description="Headless boids simulation")
    parser.add_argument("--steps", type=int, default=3000)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--config", type=Path, default=None, help="YAML file with simulation settings")
    parser.add_argument("--log", type=Path, default=None, help="CSV file to write metrics")
    parser.add_argument(
        "--log-format",
        choices=["basic", "detailed"],
        default="detailed",
        help="CSV format to write when --log is provided.",
    )
    parser.add_argument(
        "--summary",
        type=Path,
        default=None,
        help="Optional JSON file to write summary stats for the run.",
    )
    parser.add_argument(
        "--summary-window",
        type=int,
        default=5000,
        help="Tail window size (ticks) for summary stats.",
    )
    parser.add_argument(
        "--deterministic-log",
        action="store_true",
        help="Write deterministic CSV (tick_ms is forced to 0.000 so identical seeds match).",
    )
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    args = parser.parse_args()
    logging.basicConfig(level=args.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    run_headless(
        args.steps,
        args.seed,
        args.log,
        deterministic_log=args.deterministic_log,
        log_format=args.log_format,
        summary_path=args.summary,
        summary_window=args.summary_window,
        config_path=args.config,
    )


if __name__ == "__main__":
    main()
