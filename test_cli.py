#!/usr/bin/env python3
"""
Tests for the vamdc-discovery command line interface
"""

import json
import unittest
from unittest.mock import patch, MagicMock

from vamdc_discovery.cli import list_nodes, main, query_wavelength_range
from vamdc_discovery.discovery_components.config_helper import DiscoveryConfig
from vamdc_discovery.discovery_components.errors import ResolutionError
from vamdc_discovery.discovery_components.models import Node, NodeQueryResult


NODES = [
    Node(id="node-0", name="VALD", endpoint_base_url="http://vald.example/tap/"),
    Node(id="node-1", name="CDMS", endpoint_base_url="http://cdms.example/tap/"),
]


class TestCommands(unittest.TestCase):
    """Test the command functions"""

    @patch('vamdc_discovery.cli.create_node_directory')
    def test_list_nodes(self, mock_create):
        mock_create.return_value.resolve.return_value = NODES

        result = list_nodes(DiscoveryConfig())

        self.assertEqual(result["data"][1], {"id": "node-1", "name": "CDMS", "tapEndpoint": "http://cdms.example/tap/"})

    @patch('vamdc_discovery.cli.create_node_directory')
    def test_list_nodes_resolution_error(self, mock_create):
        mock_create.return_value.resolve.side_effect = ResolutionError("Registry returned HTTP 503")

        self.assertEqual(list_nodes(DiscoveryConfig()), {"error": "Registry returned HTTP 503"})

    @patch('vamdc_discovery.cli.FanOutCoordinator')
    @patch('vamdc_discovery.cli.create_node_directory')
    def test_query(self, mock_create, mock_coordinator_class):
        mock_create.return_value.resolve.return_value = NODES
        results = [
            NodeQueryResult.pending(NODES[0]).succeed(12, 40, 0, "http://vald.example/tap/sync"),
            NodeQueryResult.pending(NODES[1]).time_out(),
        ]

        async def fake_query_all(nodes, params, on_settled):
            for result in reversed(results):
                on_settled(result)
            return results

        mock_coordinator_class.return_value.query_all.side_effect = fake_query_all

        output = query_wavelength_range(DiscoveryConfig(max_concurrency=4), 4000, 5000)

        mock_coordinator_class.assert_called_once_with(
            deadline=30.0, max_concurrency=4, user_agent=DiscoveryConfig().user_agent
        )
        self.assertEqual([r["status"] for r in output["data"]], ["success", "timeout"])
        self.assertEqual(output["summary"]["numSpecies"], 12)
        self.assertEqual(output["summary"]["timeout"], 1)


class TestMain(unittest.TestCase):
    """Test argument handling and exit codes"""

    @patch('vamdc_discovery.cli.setup_logging')
    @patch('vamdc_discovery.cli.query_wavelength_range')
    def test_query_command(self, mock_query, mock_logging):
        mock_query.return_value = {"data": [], "summary": {}}

        with patch('builtins.print') as mock_print:
            with self.assertRaises(SystemExit) as ctx:
                main(['query', '--min', '4000', '--max', '5000', '--source', 'static',
                      '--nodes', 'nodes.json', '--deadline', '10'])

        self.assertEqual(ctx.exception.code, 0)
        config, wavelength_min, wavelength_max = mock_query.call_args[0]
        self.assertEqual(config.node_source, "static")
        self.assertEqual(config.static_nodes, "nodes.json")
        self.assertEqual(config.probe_deadline, 10.0)
        self.assertEqual((wavelength_min, wavelength_max), (4000.0, 5000.0))
        self.assertEqual(json.loads(mock_print.call_args[0][0]), {"data": [], "summary": {}})

    @patch('vamdc_discovery.cli.setup_logging')
    @patch('vamdc_discovery.cli.list_nodes')
    def test_error_exit_code(self, mock_list, mock_logging):
        mock_list.return_value = {"error": "Registry request failed"}

        with patch('builtins.print'):
            with self.assertRaises(SystemExit) as ctx:
                main(['nodes'])

        self.assertEqual(ctx.exception.code, 1)

    @patch('vamdc_discovery.cli.setup_logging')
    def test_invalid_configuration(self, mock_logging):
        with patch('builtins.print') as mock_print:
            with self.assertRaises(SystemExit) as ctx:
                main(['nodes', '--source', 'static'])

        self.assertEqual(ctx.exception.code, 1)
        self.assertIn("error", json.loads(mock_print.call_args[0][0]))

    def test_no_command(self):
        with patch('sys.stdout', new=MagicMock()):
            with self.assertRaises(SystemExit) as ctx:
                main([])
        self.assertEqual(ctx.exception.code, 1)


if __name__ == "__main__":
    unittest.main(verbosity=2)
