"""
Tests for bandwidth-proportional power allocation.
"""

import unittest
import math
import warnings
import sys
import os

# Add the repository root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from nrflow.core.config import ConfigurationError, PartitionConfig
from nrflow.network.gnb import BaseStation
from nrflow.network.power import PowerAllocator


class TestPowerAllocator(unittest.TestCase):
    """Test PowerAllocator functionality."""

    def setUp(self):
        self.allocator = PowerAllocator(35.0)

    def test_equal_bandwidths(self):
        """Two 50 MHz partitions share the budget equally."""
        partitions = [
            PartitionConfig(center_frequency=28e9, bandwidth=50e6, numerology=4),
            PartitionConfig(center_frequency=28.2e9, bandwidth=50e6, numerology=2),
        ]
        allocated = self.allocator.allocate(partitions)

        expected = 10 * math.log10(0.5 * 10 ** 3.5)
        self.assertEqual(len(allocated), 2)
        self.assertAlmostEqual(allocated[0].tx_power, expected, places=9)
        self.assertAlmostEqual(allocated[1].tx_power, expected, places=9)
        self.assertAlmostEqual(expected, 31.9897, places=3)

    def test_power_ratio_follows_bandwidth_ratio(self):
        """p1 - p2 == 10*log10(b1/b2) whatever the budget."""
        total = 150e6
        for budget in (0.0, 10.0, 35.0, 46.0):
            with self.subTest(budget=budget):
                allocator = PowerAllocator(budget)
                p1 = allocator.power_for(100e6, total)
                p2 = allocator.power_for(50e6, total)
                self.assertAlmostEqual(p1 - p2, 10 * math.log10(2.0), places=9)

    def test_zero_bandwidth_partition(self):
        """An empty partition gets no power and the rest keeps the full budget."""
        partitions = [
            PartitionConfig(center_frequency=28e9, bandwidth=0.0, numerology=4),
            PartitionConfig(center_frequency=28.2e9, bandwidth=50e6, numerology=2),
        ]
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            allocated = self.allocator.allocate(partitions)

        self.assertEqual(allocated[0].tx_power, -math.inf)
        self.assertAlmostEqual(allocated[1].tx_power, 35.0, places=9)

    def test_linear_powers_sum_to_budget(self):
        partitions = [
            PartitionConfig(center_frequency=28e9, bandwidth=20e6, numerology=3),
            PartitionConfig(center_frequency=28.1e9, bandwidth=30e6, numerology=3),
            PartitionConfig(center_frequency=28.2e9, bandwidth=50e6, numerology=2),
        ]
        allocated = self.allocator.allocate(partitions)
        linear_sum = sum(10 ** (p.tx_power / 10) for p in allocated)
        self.assertAlmostEqual(linear_sum, self.allocator.linear_budget, places=6)

    def test_partition_fields_carried(self):
        partitions = [PartitionConfig(center_frequency=28e9, bandwidth=50e6, numerology=4)]
        allocated = self.allocator.allocate(partitions)

        self.assertEqual(allocated[0].index, 0)
        self.assertEqual(allocated[0].numerology, 4)
        self.assertAlmostEqual(allocated[0].tx_power, 35.0, places=9)
        self.assertAlmostEqual(allocated[0].slot_duration, 1e-3 / 16)

    def test_invalid_inputs(self):
        with self.assertRaises(ConfigurationError):
            PowerAllocator(-1.0)
        with self.assertRaises(ConfigurationError):
            self.allocator.power_for(50e6, 0.0)
        with self.assertRaises(ConfigurationError):
            self.allocator.power_for(-1.0, 100e6)

    def test_same_split_on_every_station(self):
        partitions = self.allocator.allocate([
            PartitionConfig(center_frequency=28e9, bandwidth=50e6, numerology=4),
            PartitionConfig(center_frequency=28.2e9, bandwidth=50e6, numerology=2),
        ])
        stations = [BaseStation(station_id=i, position=(0.0, 0.0, 10.0)) for i in range(3)]
        for station in stations:
            station.configure_partitions(partitions)

        for station in stations:
            self.assertEqual(station.get_partition(1).tx_power, partitions[1].tx_power)
        with self.assertRaises(KeyError):
            stations[0].get_partition(5)


if __name__ == '__main__':
    unittest.main()
