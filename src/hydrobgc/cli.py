# SPDX-License-Identifier: GPL-3.0-or-later
# Copyright (C) 2024-2026 HydroBGC Team

"""
HydroBGC command line interface.

Commands:
    run            Run a simulation (or a spinup) from a YAML configuration
    check-config   Validate a configuration file and print its resolved values

The mesh and forcing are supplied by a domain loader given as
``package.module:function``. The function receives the validated
configuration and returns ``(mesh, forcing)`` or
``(mesh, forcing, ecophys_overrides)``.
"""

import argparse
import importlib
import sys
from typing import Callable, List, Optional

import yaml

from .core.config import HydroBGCConfig
from .core.exceptions import ConfigurationError, HydroBGCError
from .core.logging import configure_logging
from .hydrobgc_version import __version__


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='hydrobgc',
        description='Coupled watershed hydrology and carbon/nitrogen biogeochemistry',
    )
    parser.add_argument('--version', action='version', version=f'hydrobgc {__version__}')
    sub = parser.add_subparsers(dest='command', required=True)

    run = sub.add_parser('run', help='Run a simulation')
    run.add_argument('config', help='YAML configuration file')
    run.add_argument('--domain', required=True,
                     help="Domain loader as 'module:function' returning (mesh, forcing)")
    run.add_argument('--spinup', action='store_true',
                     help='Run spinup cycles regardless of SPINUP_MODE')
    run.add_argument('--log-level', default=None,
                     help='Override LOG_LEVEL from the configuration')

    check = sub.add_parser('check-config', help='Validate a configuration file')
    check.add_argument('config', help='YAML configuration file')
    return parser


def load_domain_loader(target: str) -> Callable:
    """Resolve ``module:function`` to a callable."""
    module_name, sep, attr = target.partition(':')
    if not sep or not module_name or not attr:
        raise ConfigurationError(f"Domain loader must be 'module:function', got '{target}'")
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigurationError(f"Cannot import domain module '{module_name}': {e}") from e
    loader = getattr(module, attr, None)
    if not callable(loader):
        raise ConfigurationError(f"'{attr}' in '{module_name}' is not callable")
    return loader


def _run(args) -> int:
    from .simulation import Simulation

    config = HydroBGCConfig.from_file(args.config)
    system = config.system
    log_file = system.log_file if system.log_to_file else None
    configure_logging(args.log_level or system.log_level, log_file, system.log_format)

    domain = load_domain_loader(args.domain)(config)
    if not isinstance(domain, tuple) or len(domain) not in (2, 3):
        raise ConfigurationError("Domain loader must return (mesh, forcing[, ecophys_overrides])")
    sim = Simulation(config, *domain)
    sim.initialize()

    if args.spinup or config.bgc.spinup:
        result = sim.run_spinup()
        print(result)
    else:
        sim.run()
    restart = sim.finalize()
    if restart is not None:
        print(f"Restart written to {restart}")
    return 0


def _check_config(args) -> int:
    config = HydroBGCConfig.from_file(args.config)
    print(yaml.safe_dump(config.to_dict(flatten=True), sort_keys=True, default_flow_style=False))
    print("✅ Configuration is valid")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        if args.command == 'run':
            return _run(args)
        return _check_config(args)
    except HydroBGCError as e:
        print(f"❌ {type(e).__name__}: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("❌ Interrupted", file=sys.stderr)
        return 130


if __name__ == '__main__':
    sys.exit(main())
