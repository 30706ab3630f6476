"""
VAMDC Discovery - Fan-out query engine

Probes every node of a VAMDC federation concurrently, reports each node's
outcome as it settles and returns the complete result set in node order.
"""

import asyncio
import logging
import time
from typing import AsyncIterator, Callable, Dict, List, Optional, Sequence, Union

import httpx

from .discovery_components.config_helper import DEFAULT_USER_AGENT
from .discovery_components.models import (
    Node, NodeQueryResult, QueryParams, SUCCESS, ERROR, TIMEOUT, PENDING
)
from .discovery_components.node_prober import NodeProber

logger = logging.getLogger(__name__)


DEFAULT_DEADLINE = 30.0

SettledCallback = Callable[[NodeQueryResult], None]


class FanOutCoordinator:
    """Runs one probe per node in parallel with an independent per-node deadline"""

    def __init__(self, deadline: float = DEFAULT_DEADLINE, max_concurrency: Optional[int] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None,
                 user_agent: str = DEFAULT_USER_AGENT):
        """
        Initialize the coordinator.

        Args:
            deadline: Seconds allowed for each node, counted from its probe start
            max_concurrency: Maximum probes in flight, None for no limit
            transport: Optional httpx transport, used by tests
            user_agent: User-Agent sent with every probe
        """
        self.deadline = deadline
        self.max_concurrency = max_concurrency
        self.transport = transport
        self.user_agent = user_agent

    def _client(self) -> httpx.AsyncClient:
        # No client timeout: the per-node deadline bounds each probe
        limits = httpx.Limits(max_connections=self.max_concurrency, max_keepalive_connections=None)
        return httpx.AsyncClient(
            timeout=None,
            follow_redirects=True,
            limits=limits,
            transport=self.transport,
            headers={'User-Agent': self.user_agent}
        )

    async def _probe_with_deadline(self, prober: NodeProber, node: Node, params: QueryParams) -> NodeQueryResult:
        cancel_event = asyncio.Event()
        timer = asyncio.get_running_loop().call_later(self.deadline, cancel_event.set)
        try:
            return await prober.probe(node, params, cancel_event)
        finally:
            timer.cancel()

    async def _settle(self, prober: NodeProber, node: Node, params: QueryParams,
                      semaphore: Optional[asyncio.Semaphore]) -> NodeQueryResult:
        if semaphore is None:
            return await self._probe_with_deadline(prober, node, params)
        async with semaphore:
            return await self._probe_with_deadline(prober, node, params)

    async def _run(self, nodes: Sequence[Node], params: QueryParams,
                   emit: SettledCallback) -> List[NodeQueryResult]:
        results = [NodeQueryResult.pending(node) for node in nodes]
        if not results:
            return results

        semaphore = asyncio.Semaphore(self.max_concurrency) if self.max_concurrency else None

        async def run_node(prober: NodeProber, index: int, node: Node) -> None:
            result = await self._settle(prober, node, params, semaphore)
            results[index] = result
            logger.debug(f"{node.name} settled: {result.status}")
            emit(result)

        async with self._client() as client:
            prober = NodeProber(client)
            await asyncio.gather(*(run_node(prober, i, node) for i, node in enumerate(nodes)))
        return results

    async def query_all(self, nodes: Sequence[Node], params: QueryParams,
                        on_settled: Optional[SettledCallback] = None) -> List[NodeQueryResult]:
        """
        Probe all nodes concurrently.

        Args:
            nodes: Nodes to probe; ids must be unique
            params: Wavelength window
            on_settled: Called once per node, in completion order, with its result

        Returns:
            One settled result per node, in the order of ``nodes``
        """
        start_time = time.time()
        logger.info(f"Querying {len(nodes)} nodes for wavelengths "
                    f"{params.wavelength_min}-{params.wavelength_max}")

        def emit(result: NodeQueryResult) -> None:
            if on_settled is None:
                return
            try:
                on_settled(result)
            except Exception:
                logger.exception(f"Progress callback failed for {result.node_id}")

        results = await self._run(nodes, params, emit)
        logger.info(f"Query round completed in {round(time.time() - start_time, 2)}s: {summarize(results)}")
        return results

    async def iter_settled(self, nodes: Sequence[Node], params: QueryParams) -> AsyncIterator[NodeQueryResult]:
        """
        Yield each node's result as soon as it settles.

        Closing the iterator early cancels the probes still in flight.
        """
        queue: "asyncio.Queue[NodeQueryResult]" = asyncio.Queue()
        round_task = asyncio.ensure_future(self._run(nodes, params, queue.put_nowait))
        try:
            for _ in range(len(nodes)):
                getter = asyncio.ensure_future(queue.get())
                done, _ = await asyncio.wait({getter, round_task}, return_when=asyncio.FIRST_COMPLETED)
                if getter not in done:
                    getter.cancel()
                    # round ended early, surface its exception
                    round_task.result()
                    getter = asyncio.ensure_future(queue.get())
                yield await getter
            await round_task
        finally:
            if not round_task.done():
                round_task.cancel()
                await asyncio.wait({round_task})


def summarize(results: Sequence[NodeQueryResult]) -> Dict[str, int]:
    """Totals across a result set"""
    summary = {
        "nodes": len(results),
        SUCCESS: 0,
        ERROR: 0,
        TIMEOUT: 0,
        PENDING: 0,
        "numSpecies": 0,
        "numStates": 0,
        "numTransitions": 0,
    }
    for result in results:
        summary[result.status] += 1
        if result.status == SUCCESS:
            summary["numSpecies"] += result.num_species or 0
            summary["numStates"] += result.num_states or 0
            summary["numTransitions"] += result.num_transitions or 0
    return summary


def query_nodes(nodes: Sequence[Node], params: Union[QueryParams, Sequence[float]],
                on_settled: Optional[SettledCallback] = None, deadline: float = DEFAULT_DEADLINE,
                max_concurrency: Optional[int] = None) -> List[Dict]:
    """
    Convenience function running one query round synchronously.

    Args:
        nodes: Nodes to probe
        params: QueryParams or a (min, max) wavelength pair
        on_settled: Progress callback, called as each node settles
        deadline: Per-node deadline in seconds
        max_concurrency: Maximum probes in flight, None for no limit

    Returns:
        Results as dictionaries, in node order
    """
    if not isinstance(params, QueryParams):
        params = QueryParams(*params)
    coordinator = FanOutCoordinator(deadline=deadline, max_concurrency=max_concurrency)
    results = asyncio.run(coordinator.query_all(nodes, params, on_settled))
    return [result.to_dict() for result in results]
