"""
Tests for visualization functionality.
"""

import unittest
import sys
import os
import tempfile

import matplotlib
matplotlib.use("Agg")

# Add the repository root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from nrflow.core.config import ScenarioConfig
from nrflow.simulation.engine import SimulationEngine
from nrflow.simulation.metrics import FlowStatisticsAggregator
from nrflow.utils.visualization import FlowVisualizer


class TestFlowVisualizer(unittest.TestCase):
    """Test FlowVisualizer functionality."""

    @classmethod
    def setUpClass(cls):
        cls.results = SimulationEngine(ScenarioConfig()).run()

    def test_create_report(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            paths = FlowVisualizer().create_report(self.results, temp_dir)

            self.assertEqual(len(paths), 2)
            for path in paths:
                self.assertTrue(os.path.exists(path))
                self.assertGreater(os.path.getsize(path), 0)

    def test_empty_report(self):
        with self.assertLogs('nrflow.simulation.metrics', level='WARNING'):
            report = FlowStatisticsAggregator().aggregate([], 0.09)
        with tempfile.TemporaryDirectory() as temp_dir:
            path = FlowVisualizer().plot_flow_performance(report, temp_dir)
            self.assertTrue(os.path.exists(path))

    def test_unknown_style_falls_back(self):
        visualizer = FlowVisualizer(style='no-such-style')
        self.assertEqual(len(visualizer.palette), 8)


if __name__ == '__main__':
    unittest.main()
