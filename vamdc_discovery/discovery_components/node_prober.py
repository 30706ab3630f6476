"""
Node Prober - HEAD probe of a VAMDC-TAP node

A VAMDC-TAP node answers a HEAD request on its sync endpoint with the size
of the matching XSAMS document in VAMDC-COUNT-* headers, without sending
the document itself.
"""

import asyncio
import logging
import re
from typing import Optional

import httpx

from .models import Node, NodeQueryResult, QueryParams
from .query_encoder import build_probe_url, build_query_predicate

logger = logging.getLogger(__name__)


XSAMS_MEDIA_TYPE = "application/x-xsams+xml"

# VAMDC-COUNT-COLLISIONS is also defined by VAMDC-TAP but not reported
COUNT_SPECIES_HEADER = "VAMDC-COUNT-SPECIES"
COUNT_STATES_HEADER = "VAMDC-COUNT-STATES"
COUNT_RADIATIVE_HEADER = "VAMDC-COUNT-RADIATIVE"

TIMEOUT_MESSAGE = "Request timeout"

_LEADING_INT = re.compile(r'\s*\+?(\d+)')


def parse_count(value: Optional[str]) -> int:
    """Leading decimal digits of a count header, 0 when absent or non-numeric"""
    if not value:
        return 0
    match = _LEADING_INT.match(value)
    return int(match.group(1)) if match else 0


class NodeProber:
    """Issues one cancellable HEAD probe per call and classifies the outcome"""

    def __init__(self, client: httpx.AsyncClient):
        """
        Args:
            client: Shared async HTTP client; its lifetime is owned by the caller
        """
        self._client = client

    async def probe(self, node: Node, params: QueryParams,
                    cancel_event: Optional[asyncio.Event] = None) -> NodeQueryResult:
        """
        Probe a node for the number of species, states and transitions.

        Never raises for network or HTTP failures; every outcome is returned as
        a settled NodeQueryResult.

        Args:
            node: Node to probe
            params: Wavelength window
            cancel_event: Set by the caller to abandon the request

        Returns:
            Result with status success, error or timeout
        """
        result = NodeQueryResult.pending(node)
        url = build_probe_url(node.endpoint_base_url, build_query_predicate(params))
        logger.debug(f"Probing {node.name} at {url}")

        request = asyncio.ensure_future(
            self._client.head(url, headers={'Accept': XSAMS_MEDIA_TYPE}, follow_redirects=True)
        )
        try:
            if cancel_event is not None:
                waiter = asyncio.ensure_future(cancel_event.wait())
                try:
                    done, _ = await asyncio.wait({request, waiter}, return_when=asyncio.FIRST_COMPLETED)
                finally:
                    waiter.cancel()
                if request not in done:
                    request.cancel()
                    await asyncio.wait({request})
                    logger.warning(f"Probe of {node.name} timed out")
                    return result.time_out(TIMEOUT_MESSAGE)
            response = await request
        except asyncio.CancelledError:
            request.cancel()
            await asyncio.wait({request})
            raise
        except Exception as e:
            message = str(e) or e.__class__.__name__
            logger.warning(f"Probe of {node.name} failed: {message}")
            return result.fail(message)

        if not response.is_success:
            logger.warning(f"Probe of {node.name} returned HTTP {response.status_code}")
            return result.fail(f"HTTP {response.status_code}")

        # httpx headers are case-insensitive
        return result.succeed(
            num_species=parse_count(response.headers.get(COUNT_SPECIES_HEADER)),
            num_states=parse_count(response.headers.get(COUNT_STATES_HEADER)),
            num_transitions=parse_count(response.headers.get(COUNT_RADIATIVE_HEADER)),
            download_url=url
        )
