#!/usr/bin/env python3
"""
Tests for the HEAD probe of a single VAMDC-TAP node
"""

import asyncio
import unittest

import httpx

from vamdc_discovery.discovery_components.models import Node, QueryParams
from vamdc_discovery.discovery_components.node_prober import NodeProber, parse_count


NODE = Node(id="node-0", name="VALD", endpoint_base_url="https://x.org/tap/")
PARAMS = QueryParams(4000, 5000)
EXPECTED_URL = (
    "https://x.org/tap/sync?LANG=VSS2&REQUEST=doQuery&FORMAT=XSAMS"
    "&QUERY=SELECT%20%2A%20WHERE%20RadTransWavelength%20%3E%3D%204000"
    "%20AND%20RadTransWavelength%20%3C%3D%205000"
)


class TestParseCount(unittest.TestCase):
    """Test count header parsing"""

    def test_values(self):
        self.assertEqual(parse_count("12"), 12)
        self.assertEqual(parse_count(" 40 "), 40)
        self.assertEqual(parse_count("7 species"), 7)
        self.assertEqual(parse_count(None), 0)
        self.assertEqual(parse_count(""), 0)
        self.assertEqual(parse_count("n/a"), 0)


class TestNodeProber(unittest.IsolatedAsyncioTestCase):
    """Test NodeProber outcome classification"""

    async def _probe(self, handler, cancel_event=None):
        transport = httpx.MockTransport(handler)
        async with httpx.AsyncClient(transport=transport) as client:
            return await NodeProber(client).probe(NODE, PARAMS, cancel_event)

    async def test_success_with_all_counts(self):
        """Test a successful probe reads the VAMDC-COUNT headers"""
        seen = {}

        def handler(request):
            seen['method'] = request.method
            seen['url'] = str(request.url)
            seen['accept'] = request.headers.get('accept')
            return httpx.Response(200, headers={
                'vamdc-count-species': '3',
                'VAMDC-COUNT-STATES': '250',
                'Vamdc-Count-Radiative': '1200',
                'VAMDC-COUNT-COLLISIONS': '9',
            })

        result = await self._probe(handler)

        self.assertEqual(seen['method'], 'HEAD')
        self.assertEqual(seen['url'], EXPECTED_URL)
        self.assertEqual(seen['accept'], 'application/x-xsams+xml')
        self.assertEqual(result.status, 'success')
        self.assertEqual((result.num_species, result.num_states, result.num_transitions), (3, 250, 1200))
        self.assertEqual(result.download_url, EXPECTED_URL)
        self.assertIsNone(result.error)

    async def test_missing_count_defaults_to_zero(self):
        """Test an absent transitions header yields 0"""
        result = await self._probe(lambda request: httpx.Response(
            200, headers={'VAMDC-COUNT-SPECIES': '12', 'VAMDC-COUNT-STATES': '40'}
        ))

        self.assertEqual(result.to_dict(), {
            'nodeId': 'node-0',
            'nodeName': 'VALD',
            'status': 'success',
            'numSpecies': 12,
            'numStates': 40,
            'numTransitions': 0,
            'downloadUrl': EXPECTED_URL,
        })

    async def test_http_error(self):
        """Test a non-success status gives an error without statistics"""
        result = await self._probe(lambda request: httpx.Response(
            500, headers={'VAMDC-COUNT-SPECIES': '12'}
        ))

        self.assertEqual(result.status, 'error')
        self.assertEqual(result.error, 'HTTP 500')
        self.assertIsNone(result.num_species)
        self.assertIsNone(result.download_url)

    async def test_no_content_is_success(self):
        """Test 204 from a node with no matching data counts as success"""
        result = await self._probe(lambda request: httpx.Response(204))

        self.assertEqual(result.status, 'success')
        self.assertEqual((result.num_species, result.num_states, result.num_transitions), (0, 0, 0))

    async def test_redirect_followed(self):
        """Test a node redirecting http to https reports the counts of the target"""
        def handler(request):
            if request.url.scheme == 'http':
                return httpx.Response(301, headers={'Location': str(request.url.copy_with(scheme='https'))})
            return httpx.Response(200, headers={'VAMDC-COUNT-SPECIES': '12'})

        node = Node(id="node-0", name="VALD", endpoint_base_url="http://x.org/tap/")
        transport = httpx.MockTransport(handler)
        async with httpx.AsyncClient(transport=transport) as client:
            result = await NodeProber(client).probe(node, PARAMS)

        self.assertEqual(result.status, 'success')
        self.assertEqual(result.num_species, 12)
        self.assertTrue(result.download_url.startswith("http://x.org/tap/sync?"))

    async def test_transport_error(self):
        """Test a connection failure is captured as an error"""
        def handler(request):
            raise httpx.ConnectError("Connection refused", request=request)

        result = await self._probe(handler)

        self.assertEqual(result.status, 'error')
        self.assertEqual(result.error, 'Connection refused')

    async def test_cancel_gives_timeout(self):
        """Test setting the cancel event abandons the request"""
        cancelled = asyncio.Event()

        async def handler(request):
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                cancelled.set()
                raise
            return httpx.Response(200)

        cancel_event = asyncio.Event()
        asyncio.get_running_loop().call_later(0.05, cancel_event.set)

        result = await asyncio.wait_for(self._probe(handler, cancel_event), timeout=5)

        self.assertEqual(result.status, 'timeout')
        self.assertEqual(result.error, 'Request timeout')
        self.assertTrue(cancelled.is_set())

    async def test_already_cancelled(self):
        """Test a probe started with the event already set times out"""
        cancel_event = asyncio.Event()
        cancel_event.set()

        async def handler(request):
            await asyncio.sleep(10)
            return httpx.Response(200)

        result = await self._probe(handler, cancel_event)

        self.assertEqual(result.status, 'timeout')


if __name__ == "__main__":
    unittest.main(verbosity=2)
