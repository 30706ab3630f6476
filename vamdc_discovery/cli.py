#!/usr/bin/env python3
"""
VAMDC Discovery CLI

Resolve the VAMDC node directory and probe every node for a wavelength range.
"""

import argparse
import asyncio
import json
import sys
import logging
from typing import Any, Dict, Optional

from .core.logging import setup_logging
from .discovery import FanOutCoordinator, summarize
from .discovery_components.config_helper import DiscoveryConfig, load_config
from .discovery_components.errors import ResolutionError
from .discovery_components.models import NodeQueryResult, QueryParams, SUCCESS
from .discovery_components.node_directory import create_node_directory

logger = logging.getLogger(__name__)


def list_nodes(config: DiscoveryConfig) -> Dict[str, Any]:
    """Resolve the node directory - returns data array or error"""
    try:
        nodes = create_node_directory(config).resolve()
    except ResolutionError as e:
        logger.error(f"Node resolution failed ({e.cause}): {e}")
        return {"error": str(e)}
    return {"data": [node.to_dict() for node in nodes]}


def log_settled(result: NodeQueryResult) -> None:
    if result.status == SUCCESS:
        logger.info(f"{result.node_name}: {result.num_species} species, "
                    f"{result.num_states} states, {result.num_transitions} transitions")
    else:
        logger.info(f"{result.node_name}: {result.status} ({result.error})")


def query_wavelength_range(config: DiscoveryConfig, wavelength_min: float,
                           wavelength_max: float) -> Dict[str, Any]:
    """Resolve nodes and run one query round - returns data array and summary, or error"""
    try:
        nodes = create_node_directory(config).resolve()
    except ResolutionError as e:
        logger.error(f"Node resolution failed ({e.cause}): {e}")
        return {"error": str(e)}

    coordinator = FanOutCoordinator(
        deadline=config.probe_deadline,
        max_concurrency=config.max_concurrency,
        user_agent=config.user_agent
    )
    params = QueryParams(wavelength_min=wavelength_min, wavelength_max=wavelength_max)
    results = asyncio.run(coordinator.query_all(nodes, params, log_settled))
    return {
        "data": [result.to_dict() for result in results],
        "summary": summarize(results)
    }


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument('--config', help='YAML configuration file')
    parser.add_argument(
        '--source',
        dest='node_source',
        choices=['live', 'static'],
        help='Node directory: live registry or static node list (default: live)'
    )
    parser.add_argument('--nodes', dest='static_nodes', help='Static node list file or URL')
    parser.add_argument('--registry-url', dest='registry_url', help='VAMDC registry service URL')
    parser.add_argument(
        '--id-scheme',
        dest='id_scheme',
        choices=['ordinal', 'hash'],
        help='Identifier scheme for registry nodes (default: ordinal)'
    )
    parser.add_argument('--verbose', '-v', action='store_true', help='Enable verbose logging')


def _load(args: argparse.Namespace) -> Optional[DiscoveryConfig]:
    overrides = {
        key: getattr(args, key, None)
        for key in ('node_source', 'static_nodes', 'registry_url', 'id_scheme',
                    'probe_deadline', 'max_concurrency')
    }
    try:
        return load_config(args.config, **overrides)
    except (OSError, ValueError) as e:
        logger.error(f"Invalid configuration: {e}")
        print(json.dumps({"error": str(e)}))
        return None


def main(argv=None):
    """Main CLI entry point"""
    parser = argparse.ArgumentParser(
        prog='vamdc-discovery',
        description="VAMDC Discovery - Federated node discovery and fan-out probing",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # List the nodes registered in the VAMDC registry
  vamdc-discovery nodes

  # Probe every node for transitions between 4000 and 5000 Angstrom
  vamdc-discovery query --min 4000 --max 5000

  # Use a static node list and at most 8 probes in flight
  vamdc-discovery query --min 4000 --max 5000 --source static --nodes nodes.json --max-concurrency 8
        """
    )

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    nodes_parser = subparsers.add_parser('nodes', help='Resolve and list VAMDC nodes')
    _add_common_arguments(nodes_parser)

    query_parser = subparsers.add_parser('query', help='Probe all nodes for a wavelength range')
    query_parser.add_argument('--min', dest='wavelength_min', type=float, required=True,
                              help='Minimum wavelength (Angstrom)')
    query_parser.add_argument('--max', dest='wavelength_max', type=float, required=True,
                              help='Maximum wavelength (Angstrom)')
    query_parser.add_argument('--deadline', dest='probe_deadline', type=float,
                              help='Per-node deadline in seconds (default: 30)')
    query_parser.add_argument('--max-concurrency', dest='max_concurrency', type=int,
                              help='Maximum probes in flight (default: unlimited)')
    _add_common_arguments(query_parser)

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    setup_logging("DEBUG" if args.verbose else "INFO", debug=args.verbose)

    config = _load(args)
    if config is None:
        sys.exit(1)

    try:
        if args.command == 'nodes':
            result = list_nodes(config)
        else:
            result = query_wavelength_range(config, args.wavelength_min, args.wavelength_max)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(1)

    print(json.dumps(result))

    if "error" in result:
        sys.exit(1)
    sys.exit(0)


if __name__ == "__main__":
    main()
