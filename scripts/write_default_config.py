#!/usr/bin/env python3
"""Write the default simulation config as YAML."""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

import yaml

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from boidsim.sim.core.config import SimulationConfig, config_to_dict  # noqa: E402


def write_config(path: Path, overwrite: bool) -> None:
    if path.exists() and not overwrite:
        raise FileExistsError(f"{path} already exists. Use --overwrite to replace.")
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.safe_dump(config_to_dict(SimulationConfig()), sort_keys=False))


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Write the default boids config as YAML.")
    parser.add_argument(
        "--output",
        type=Path,
        default=Path("config/default.yaml"),
        help="File to write the config into.",
    )
    parser.add_argument(
        "--overwrite", action="store_true", help="Overwrite an existing file."
    )
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    write_config(args.output, args.overwrite)
    print(f"Wrote default config to {args.output}")


if __name__ == "__main__":
    main()
