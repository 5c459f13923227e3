"""
Command-line interface for polrad.

Provides CLI commands for:
- Converting positions between Cartesian, spherical and ellipsoidal form
- Tracing the line of sight of a configured sensor
- Running the polarized forward calculation
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

import numpy as np

from polrad import __version__

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )


def apply_log_level(level: str, verbose: bool = False) -> None:
    """Set the configured level on the polrad loggers; --verbose wins."""
    if not verbose:
        logging.getLogger("polrad").setLevel(level.upper())


def _load_config(args: argparse.Namespace):
    from polrad.config import SimulationConfig

    if not args.config:
        return SimulationConfig()

    config_path = Path(args.config)
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {args.config}")
    config = SimulationConfig.from_file(str(config_path))

    errors = config.validate()
    if errors:
        raise ValueError("Invalid configuration: " + "; ".join(errors))
    apply_log_level(config.system.log_level, args.verbose)
    return config


def _emit(summary: dict, output: Optional[str]) -> None:
    text = json.dumps(summary, indent=2)
    if output:
        with open(output, 'w') as f:
            f.write(text + "\n")
        logger.info(f"Results saved to: {output}")
    else:
        print(text)


def run_convert(args: argparse.Namespace) -> int:
    """Convert one position between representations."""
    from polrad.geometry import Ellipsoid, Position, PosType

    ellipsoid = Ellipsoid(args.a, args.e)
    kind = PosType[args.source.upper()]
    position = Position(kind, *args.values)
    converted = position.to(PosType[args.target.upper()], ellipsoid)

    names = {
        PosType.CARTESIAN: ("x", "y", "z"),
        PosType.SPHERICAL: ("r", "lat", "lon"),
        PosType.ELLIPSOIDAL: ("h", "lat", "lon"),
    }[converted.kind]
    _emit({"kind": converted.kind.value,
           **{n: float(v) for n, v in zip(names, converted.arr())}}, args.output)
    return 0


def run_trace(args: argparse.Namespace) -> int:
    """Trace the configured sensor's line of sight."""
    from polrad.data import open_nav_file
    from polrad.geometry import trace_path

    config = _load_config(args)
    path = trace_path(
        config.build_sensor(),
        config.build_atmosphere(),
        top_altitude=config.path.top_altitude,
        step_length=config.path.step_length,
    )

    if args.nav_output:
        mode = "wb" if args.binary else "w"
        with open_nav_file(args.nav_output, mode) as writer:
            writer.write_all(point.nav for point in path)
        logger.info(f"Wrote {len(path)} navigation records to {args.nav_output}")

    altitudes = path.altitudes
    _emit({
        "points": len(path),
        "length_m": float(np.sum(path.distances)),
        "min_altitude_m": float(altitudes.min()),
        "max_altitude_m": float(altitudes.max()),
        "duration_s": float(path.sensor.time - path.boundary.time),
    }, args.output)
    return 0


def run_forward(args: argparse.Namespace) -> int:
    """Run the polarized forward calculation."""
    from polrad.geometry import trace_path
    from polrad.rte import compute, cosmic_background

    config = _load_config(args)
    spectral = config.spectral
    num_threads = args.threads or config.system.num_threads

    path = trace_path(
        config.build_sensor(),
        config.build_atmosphere(),
        top_altitude=config.path.top_altitude,
        step_length=config.path.step_length,
    )
    frequencies = np.linspace(spectral.flow, spectral.fupp, spectral.size)
    results = compute(
        cosmic_background(frequencies, spectral.stokes_dim),
        path,
        config.build_bands(),
        spectral.flow,
        spectral.fupp,
        spectral.size,
        targets=config.build_targets(),
        polarization=config.build_polarization(),
        num_threads=num_threads,
    )

    radiance = results.sensor_results()
    summary = {
        "points": len(path),
        "stokes_dim": results.stokes_dim,
        "frequencies_hz": frequencies.tolist(),
        "radiance": radiance.tolist(),
    }
    if results.dx.targets:
        summary["jacobian_shape"] = list(results.dx.shape)
        summary["targets"] = [t.name for t in results.dx.targets]
    _emit(summary, args.output)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="polrad",
        description="polrad: polarized radiative transfer along geodetic lines of sight",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Geodetic to Cartesian
    polrad convert ellipsoidal cartesian 10000 45 0

    # Trace a limb view and store the navigation records
    polrad trace --config limb.yaml --nav-output limb.nav

    # Forward calculation with 4 threads
    polrad forward --config limb.yaml --threads 4 --output spectrum.json
        """,
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose output",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"polrad {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    convert = subparsers.add_parser("convert", help="Convert a position")
    convert.add_argument("source", choices=["cartesian", "spherical", "ellipsoidal"])
    convert.add_argument("target", choices=["cartesian", "spherical", "ellipsoidal"])
    convert.add_argument("values", type=float, nargs=3,
                         help="Position components (x y z, r lat lon or h lat lon)")
    convert.add_argument("--a", type=float, default=6378137.0,
                         help="Ellipsoid semi-major axis [m]")
    convert.add_argument("--e", type=float, default=0.0818191908426,
                         help="Ellipsoid eccentricity")
    convert.set_defaults(func=run_convert)

    for name, func, text in (
        ("trace", run_trace, "Trace the sensor line of sight"),
        ("forward", run_forward, "Run the forward calculation"),
    ):
        sub = subparsers.add_parser(name, help=text)
        sub.add_argument("-c", "--config", type=str,
                         help="Path to YAML or JSON configuration file")
        sub.set_defaults(func=func)
        if name == "trace":
            sub.add_argument("--nav-output", type=str,
                             help="Write the path navigation records to this file")
            sub.add_argument("--binary", action="store_true",
                             help="Binary navigation records")
        else:
            sub.add_argument("-t", "--threads", type=int,
                             help="Worker threads over frequencies")

    for sub in subparsers.choices.values():
        sub.add_argument("-o", "--output", type=str, help="Output JSON file path")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    try:
        return args.func(args)
    except Exception as e:
        logging.exception(f"{args.command} failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
