#!/usr/bin/env python3
"""
Partitioned FSI Coupling CLI Runner.

This script provides a command-line interface for running coupled
simulations from YAML configuration files.

Usage:
    python -m fsi_coupling.cli.run_coupling config.yaml [options]

Examples:
    # Run simulation from YAML
    python -m fsi_coupling.cli.run_coupling simulation.yaml

    # Run with custom working directory
    python -m fsi_coupling.cli.run_coupling simulation.yaml --workdir /path/to/case

    # Preview configuration without running
    python -m fsi_coupling.cli.run_coupling simulation.yaml --preview

    # Generate template configuration
    python -m fsi_coupling.cli.run_coupling --template > my_config.yaml
"""

import argparse
import logging
import sys
from pathlib import Path

# Template YAML configuration
TEMPLATE_CONFIG = """# Partitioned FSI Coupling Configuration
# ======================================
# This file defines a complete coupled simulation for fsi-coupling.

#============================================================================
# TIME INTERVAL
#============================================================================
time:
  start_time: 0.0    # Start time [s]
  end_time: 0.5      # End time [s]
  time_step: 0.01    # Time step size [s]

#============================================================================
# PARTITIONED COUPLING
#============================================================================
coupling:
  method: "IQN-ILS"           # "Aitken" or "IQN-ILS"
  abs_tol: 1.0e-12            # Absolute tolerance on |r|
  rel_tol: 1.0e-8             # Tolerance on |r| / |d|
  omega_init: 0.1             # Initial relaxation factor, (0, 1]
  reused_time_steps: 2        # Past time steps reused by IQN-ILS
  partitioned_iter_max: 50    # Maximum partitioned iterations per step
  geometric_tolerance: 1.0e-10
  qr_drop_tolerance: 1.0e-2   # Relative QR threshold for dropped columns

#============================================================================
# COUPLING MODEL
#============================================================================
model:
  # Available models: "mass_spring", "linear_map", "divergent_map"
  name: "mass_spring"
  params:
    mass: [1.0, 1.0]
    stiffness: [[40.0, -10.0], [-10.0, 25.0]]
    added_mass: [[1.5, 0.2], [0.2, 1.2]]
    load: [1.0, 0.5]
    frequency: 1.0

#============================================================================
# DISPLACEMENT PREDICTOR
#============================================================================
predictor:
  order: 1    # 0 (constant), 1 (linear) or 2 (quadratic) extrapolation

#============================================================================
# FLUID MESH MOTION (optional, two-dimensional interfaces only)
#============================================================================
mesh_motion:
  type: "Elasticity"    # "Poisson" or "Elasticity"

#============================================================================
# OUTPUT
#============================================================================
output:
  folder: "results"
  iteration_log: "coupling_iterations.csv"
  separator: ","
"""

MODEL_TEMPLATES = {
    "mass_spring": """
model:
  name: "mass_spring"
  params:
    mass: [1.0, 1.0]                             # Structure mass (diagonal)
    stiffness: [[40.0, -10.0], [-10.0, 25.0]]    # Structure stiffness
    added_mass: [[1.5, 0.2], [0.2, 1.2]]         # Fluid added mass
    load: [1.0, 0.5]                             # Harmonic load amplitude
    frequency: 1.0                               # Load frequency [Hz]
""",
    "linear_map": """
model:
  name: "linear_map"
  params:
    jacobian: [[0.6, 0.3, 0.0], [-0.2, -0.5, 0.1], [0.1, 0.0, 0.3]]
    offset: [1.0, 1.0, 1.0]
""",
    "divergent_map": """
model:
  name: "divergent_map"
  params:
    dimension: 2
    offset: [1.0, 0.0]
""",
}


def setup_logging(verbose: bool = False) -> None:
    """Configure logging for the CLI."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def print_template(model_name: str = None) -> None:
    """Print template configuration to stdout."""
    print(TEMPLATE_CONFIG)

    if model_name and model_name in MODEL_TEMPLATES:
        print("\n# Example model configuration for", model_name)
        print(MODEL_TEMPLATES[model_name])


def list_models() -> None:
    """List available coupling models with descriptions."""
    print("\nAvailable coupling models:")
    print("=" * 50)
    print("\n1. mass_spring")
    print("   Two-DOF mass-spring structure with added-mass fluid")
    print("   Unstable without acceleration, analytic solution per step")

    print("\n2. linear_map")
    print("   Affine map d_tilde = A d + c with known Jacobian")

    print("\n3. divergent_map")
    print("   Constant residual, never converges")

    print("\nUse --template --model <name> for example configuration")


def validate_config(config_path: str) -> bool:
    """Validate configuration file without running."""
    from fsi_coupling.core.config import SimulationConfig

    try:
        config = SimulationConfig.from_yaml(config_path)
        warnings = config.validate()

        print("Configuration validation:")
        print("=" * 50)
        print(config)

        if warnings:
            print("\nWarnings:")
            for w in warnings:
                print(f"  ⚠️  {w}")
            return False
        else:
            print("\n✓ Configuration is valid")
            return True

    except (OSError, ValueError) as e:
        print(f"\n✗ Validation failed: {e}")
        return False


def main(argv=None):
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        description="Run partitioned FSI coupling simulations from YAML configuration files.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s config.yaml                    Run simulation
  %(prog)s config.yaml --preview          Preview configuration
  %(prog)s --template > config.yaml       Generate template
  %(prog)s --template --model linear_map
  %(prog)s --list-models                  List available models
        """,
    )

    parser.add_argument(
        "config",
        nargs="?",
        help="Path to YAML configuration file",
    )

    parser.add_argument(
        "--workdir",
        "-w",
        help="Working directory for simulation",
    )

    parser.add_argument(
        "--preview",
        "-p",
        action="store_true",
        help="Preview configuration without running",
    )

    parser.add_argument(
        "--validate",
        action="store_true",
        help="Validate configuration file",
    )

    parser.add_argument(
        "--template",
        "-t",
        action="store_true",
        help="Print template configuration to stdout",
    )

    parser.add_argument(
        "--model",
        "-m",
        choices=list(MODEL_TEMPLATES.keys()),
        help="Include specific model template",
    )

    parser.add_argument(
        "--list-models",
        action="store_true",
        help="List available coupling models",
    )

    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging",
    )

    args = parser.parse_args(argv)

    # Handle special commands first
    if args.template:
        print_template(args.model)
        return 0

    if args.list_models:
        list_models()
        return 0

    # Require config file for other operations
    if not args.config:
        parser.print_help()
        return 1

    config_path = Path(args.config)
    if not config_path.exists():
        print(f"Error: Configuration file not found: {config_path}")
        return 1

    setup_logging(args.verbose)

    # Validate only
    if args.validate:
        return 0 if validate_config(str(config_path)) else 1

    # Preview configuration
    if args.preview:
        from fsi_coupling.core.config import SimulationConfig

        try:
            config = SimulationConfig.from_yaml(str(config_path))
        except (OSError, ValueError) as e:
            print(f"\n✗ Could not load configuration: {e}")
            return 1
        print(config)
        return 0

    # Run simulation
    from fsi_coupling.core.errors import CouplingError

    try:
        from fsi_coupling.coupling.runner import CouplingRunner

        runner = CouplingRunner(str(config_path), args.workdir)
        runner.run()
        return 0

    except KeyboardInterrupt:
        print("\nSimulation interrupted by user")
        return 130

    except CouplingError as e:
        logging.exception("Simulation failed")
        print(f"\nError: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
