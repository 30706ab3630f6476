"""
VAMDC Discovery - Federated node discovery and fan-out probing

Resolves the VAMDC-TAP nodes of the VAMDC federation and probes all of them
in parallel for the amount of data matching a wavelength range.
"""

from .discovery import FanOutCoordinator, query_nodes, summarize
from .discovery_components.errors import ResolutionError
from .discovery_components.models import Node, NodeQueryResult, QueryParams
from .discovery_components.node_directory import (
    RegistryNodeDirectory, StaticNodeDirectory, create_node_directory
)

__version__ = "0.1.0"
__all__ = [
    "FanOutCoordinator", "query_nodes", "summarize", "ResolutionError",
    "Node", "NodeQueryResult", "QueryParams",
    "RegistryNodeDirectory", "StaticNodeDirectory", "create_node_directory",
]


def main():
    """Entry point for the CLI"""
    from .cli import main as cli_main
    cli_main()
