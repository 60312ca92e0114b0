#!/usr/bin/env python3
"""
Headless runner for weakly-compressible SPH.
Runs a dam break (or a CSV initial state) and reports performance.
"""

import argparse
import logging
import sys

import numpy as np

from . import api
from .config import SimulationConstants, SimulationMetaData
from .errors import SPHError
from .io import load_particles_csv, save_particles_csv
from .scenarios import create_dam_break
from .simulation import SPHSimulation

logger = logging.getLogger("wcsph")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Weakly-compressible SPH (headless)")
    parser.add_argument("--csv", default=None, help="Initial particle state (default: dam break)")
    parser.add_argument("--dim", type=int, choices=[2, 3], default=2)
    parser.add_argument("--dx", type=float, default=0.02, help="Particle spacing")
    parser.add_argument("--fluid-height", type=float, default=0.4,
                        help="Still-water height used to size the sound speed")
    parser.add_argument("--alpha", type=float, default=0.01, help="Artificial viscosity")
    parser.add_argument("--delta", type=float, default=0.1, help="Density diffusion")
    parser.add_argument("--no-ddt", action="store_true", help="Disable density diffusion")
    parser.add_argument("--backend", choices=["cpu", "numba", "auto"], default="auto")
    parser.add_argument("--max-time", type=float, default=1.0)
    parser.add_argument("--steps", type=int, default=None, help="Stop after this many steps")
    parser.add_argument("--cfl", type=float, default=0.2)
    parser.add_argument("--log-interval", type=int, default=50)
    parser.add_argument("--output", default=None, help="Write the final state to this CSV")
    parser.add_argument("--log-level", default="INFO",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level),
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    if args.csv:
        particles, motion_limiter = load_particles_csv(args.csv, dim=args.dim)
        constants = SimulationConstants.from_resolution(
            args.dx, dim=args.dim, fluid_height=args.fluid_height,
            alpha=args.alpha, delta=args.delta)
    else:
        if args.dim == 2:
            fluid, tank = (0.4, args.fluid_height), (1.6, 0.8)
        else:
            fluid, tank = (0.4, 0.4, args.fluid_height), (1.6, 0.4, 0.8)
        particles, motion_limiter, constants = create_dam_break(
            args.dx, fluid, tank, alpha=args.alpha, delta=args.delta)

    if args.backend == "auto":
        # Rough pair count: each particle sees about (2h/dx)^dim neighbors
        per_particle = (constants.support_radius / args.dx) ** args.dim
        backend = api.auto_select_backend(int(particles.n_particles * per_particle / 2))
        logger.info("Auto-selected %s backend", backend.upper())
    else:
        api.set_backend(args.backend)

    metadata = SimulationMetaData(max_time=args.max_time, max_steps=args.steps,
                                  cfl_number=args.cfl, use_density_diffusion=not args.no_ddt,
                                  log_interval=args.log_interval)
    logger.info("Particles: %d (%d fixed), h=%.4g, c0=%.4g, m0=%.4g",
                particles.n_particles, int(np.sum(motion_limiter == 0)),
                constants.h, constants.c0, constants.m0)

    sim = SPHSimulation(particles, motion_limiter, constants, metadata)
    try:
        sim.run()
    except SPHError as exc:
        logger.error("Simulation aborted: %s", exc)
        return 1

    logger.info("Finished %d steps, t=%.5f", sim.step_count, sim.time)
    if args.output:
        save_particles_csv(args.output, sim.particles, sim.motion_limiter)
        logger.info("Wrote %s", args.output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
