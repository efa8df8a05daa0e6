"""
Main entry point when running the swerve_control module with python -m.
"""

import argparse
import asyncio
import logging
import sys

from . import config
from .client import main, setup_logging
from .data_collector import DataCollector
from .modes import RobotMode, parse_mode_flags
from .simulate import SIM_ENCODER_SCALE, run_simulation

if __name__ == "__main__":
    # Backend mode first, everything else after
    mode, remaining_args = parse_mode_flags()

    parser = argparse.ArgumentParser(
        description="Swerve drive control: WebSocket bridge (real) or offline run (sim/replay)"
    )
    parser.add_argument("--uri", default=config.WS_URI, help="WebSocket URI of the robot bridge")
    parser.add_argument(
        "--duration", type=float, default=config.SIM_DURATION, help="Offline run length in seconds"
    )
    parser.add_argument(
        "--output-dir", default=None, help="Record the run under OUTPUT_DIR/results/run_<timestamp>"
    )
    parser.add_argument("--seed", type=int, default=0, help="Seed for simulated correction noise")
    parser.add_argument(
        "--encoder-scale",
        type=float,
        default=SIM_ENCODER_SCALE,
        help="Drive encoder scale error of simulated modules (1.0 = exact)",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable verbose logging with timestamps"
    )
    args = parser.parse_args(remaining_args)

    setup_logging(args.verbose)

    try:
        if mode is RobotMode.REAL:
            asyncio.run(main(uri=args.uri, output_dir=args.output_dir))
        elif args.output_dir is not None:
            with DataCollector(output_dir=args.output_dir) as collector:
                run_simulation(
                    mode, args.duration, collector, seed=args.seed, encoder_scale=args.encoder_scale
                )
        else:
            run_simulation(mode, args.duration, seed=args.seed, encoder_scale=args.encoder_scale)
    except KeyboardInterrupt:
        logging.info("\nExiting...")
        sys.exit(0)
