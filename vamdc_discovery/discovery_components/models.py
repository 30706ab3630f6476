"""
Data model shared by the directory, the prober and the fan-out coordinator
"""

from dataclasses import dataclass, asdict, replace
from typing import Dict, Any, Optional


PENDING = "pending"
SUCCESS = "success"
ERROR = "error"
TIMEOUT = "timeout"

TERMINAL_STATUSES = (SUCCESS, ERROR, TIMEOUT)


@dataclass(frozen=True)
class Node:
    """A queryable VAMDC-TAP endpoint"""
    id: str
    name: str
    endpoint_base_url: str

    def to_dict(self) -> Dict[str, str]:
        return {
            "id": self.id,
            "name": self.name,
            "tapEndpoint": self.endpoint_base_url,
        }


@dataclass(frozen=True)
class QueryParams:
    """Wavelength range, in Angstrom. min <= max is not enforced."""
    wavelength_min: float
    wavelength_max: float


@dataclass(frozen=True)
class NodeQueryResult:
    """Outcome of probing a single node during one query round"""
    node_id: str
    node_name: str
    status: str = PENDING
    num_species: Optional[int] = None
    num_states: Optional[int] = None
    num_transitions: Optional[int] = None
    download_url: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def pending(cls, node: Node) -> "NodeQueryResult":
        return cls(node_id=node.id, node_name=node.name)

    @property
    def settled(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def succeed(self, num_species: int, num_states: int, num_transitions: int,
                download_url: str) -> "NodeQueryResult":
        self._check_pending()
        return replace(self, status=SUCCESS, num_species=num_species,
                       num_states=num_states, num_transitions=num_transitions,
                       download_url=download_url)

    def fail(self, error: str) -> "NodeQueryResult":
        self._check_pending()
        return replace(self, status=ERROR, error=error)

    def time_out(self, error: str = "Request timeout") -> "NodeQueryResult":
        self._check_pending()
        return replace(self, status=TIMEOUT, error=error)

    def _check_pending(self) -> None:
        if self.settled:
            raise ValueError(f"Result for {self.node_id} already settled as {self.status}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization, omitting absent fields"""
        keys = {
            "node_id": "nodeId",
            "node_name": "nodeName",
            "status": "status",
            "num_species": "numSpecies",
            "num_states": "numStates",
            "num_transitions": "numTransitions",
            "download_url": "downloadUrl",
            "error": "error",
        }
        return {keys[k]: v for k, v in asdict(self).items() if v is not None}
