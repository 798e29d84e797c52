"""CLI entry point: ``python -m dragknifecam input.ngc -o output.ngc``"""

from __future__ import annotations

import argparse
import logging
import sys
import warnings
from pathlib import Path

from .config.settings import (
    DegeneratePolicy,
    DragknifeConfig,
    InfeasiblePolicy,
    LiftMode,
)
from .core.engine import transform_with_config
from .core.errors import TransformError, TransformWarning
from .gcode.parser import GCodeParseError, load_gcode
from .gcode.post import DragknifePostProcessor, PostProcessorConfig
from .gcode.validate import PathLimits, validate_path


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="dragknifecam",
        description="Offset G-code tip paths for a trailing drag knife.",
    )
    p.add_argument("input", type=Path, help="Input G-code file")
    p.add_argument(
        "-o", "--output", type=Path, default=None,
        help="Output .ngc file (default: <input>.dragknife.ngc)",
    )
    p.add_argument("--config", type=Path, default=None,
                   help="Settings file (default: ~/.dragknifecam/settings.json)")
    p.add_argument("--save-config", action="store_true",
                   help="Store the effective settings back to the settings file")

    # Knife parameters
    p.add_argument("--offset", type=float, default=None,
                   help="Pivot to tip distance in mm")
    p.add_argument("--threshold", type=float, default=None,
                   help="Corner angle in degrees above which the blade swivels")

    # Swivel
    p.add_argument("--swivel-feed", type=float, default=None,
                   help="Feed rate for swivel moves in mm/min")
    p.add_argument("--lift-mode", choices=[m.value for m in LiftMode], default=None,
                   help="Lift height relative to the cut or absolute")
    p.add_argument("--lift-height", type=float, default=None,
                   help="Lift height in mm (0 with relative mode: no lift)")

    # Policies
    p.add_argument("--degenerate", choices=[m.value for m in DegeneratePolicy], default=None,
                   help="What to do with zero-length moves")
    p.add_argument("--infeasible", choices=[m.value for m in InfeasiblePolicy], default=None,
                   help="What to do with arcs that cannot be offset")
    p.add_argument("--keep-m3", action="store_true",
                   help="Keep spindle-start M3 commands in the output")

    # Validation
    p.add_argument("--skip-validate", action="store_true",
                   help="Skip pivot path validation")
    p.add_argument("-v", "--verbose", action="store_true",
                   help="Log transform details")

    return p


def _apply_args(cfg: DragknifeConfig, args: argparse.Namespace) -> None:
    if args.offset is not None:
        cfg.knife_offset = args.offset
    if args.threshold is not None:
        cfg.corner_threshold = args.threshold
    if args.swivel_feed is not None:
        cfg.swivel_feed_rate = args.swivel_feed
    if args.lift_mode is not None:
        cfg.lift.mode = LiftMode(args.lift_mode)
    if args.lift_height is not None:
        cfg.lift.height = args.lift_height
    if args.degenerate is not None:
        cfg.degenerate_policy = DegeneratePolicy(args.degenerate)
    if args.infeasible is not None:
        cfg.infeasible_policy = InfeasiblePolicy(args.infeasible)
    if args.keep_m3:
        cfg.skip_m3 = False


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    # Resolve output path
    output: Path = args.output or args.input.with_suffix(".dragknife.ngc")

    cfg = DragknifeConfig.load(args.config)
    _apply_args(cfg, args)
    try:
        cfg.validate()
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2
    if args.save_config:
        print(f"Saved settings to {cfg.save(args.config)}")

    # Load program
    print(f"Loading {args.input} ...")
    try:
        program = load_gcode(args.input)
    except (FileNotFoundError, GCodeParseError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    tip_path = program.path
    print(f"  {len(tip_path)} moves in {tip_path.plane.name} plane, "
          f"source units {program.units.label()}")

    print(f"Offsetting by {cfg.knife_offset:g} mm, corner threshold "
          f"{cfg.corner_threshold:g} deg ...")
    try:
        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always", TransformWarning)
            pivot_path = transform_with_config(tip_path, cfg)
    except TransformError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    for w in caught:
        print(f"  Warning: {w.message}")
    print(f"  {len(pivot_path.moves)} moves, {len(pivot_path.swivels)} swivels, "
          f"cut length {pivot_path.cut_length:.1f} mm")

    # Validate
    if not args.skip_validate:
        limits = PathLimits(tolerance=cfg.connect_tolerance)
        try:
            result = validate_path(pivot_path, limits, tip_path, cfg.knife_offset)
        except TransformError as exc:
            print(f"Error: validation failed: {exc}", file=sys.stderr)
            return 1
        if result.has_errors:
            print("VALIDATION ERRORS:", file=sys.stderr)
            for issue in result.issues:
                if issue.severity == "error":
                    print(f"  ERROR: {issue.message}", file=sys.stderr)
            return 1
        if result.has_warnings:
            for issue in result.issues:
                if issue.severity == "warning":
                    print(f"  Warning: {issue.message}")

    # Generate G-code
    post = DragknifePostProcessor(PostProcessorConfig(skip_m3=cfg.skip_m3))
    post.generate(program, pivot_path, output)
    print(f"Wrote {output}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
