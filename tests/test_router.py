"""
Tests for traffic-class routing and 5QI mapping.
"""

import unittest
import sys
import os

# Add the repository root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from nrflow.core.config import ConfigurationError, ScenarioConfig, TrafficClass
from nrflow.network.interfaces import GNB_SIDE, UE_SIDE
from nrflow.qos.qci_mapping import QCIMapping, BearerType, ResourceType
from nrflow.qos.router import ResourceRouter, PacketFilter


class RecordingInstaller:
    """Captures bearer to partition routing calls."""

    def __init__(self):
        self.calls = []

    def set_bearer_partition(self, side, bearer_type, partition_index):
        self.calls.append((side, bearer_type, partition_index))


class TestQCIMapping(unittest.TestCase):
    """Test 5QI mapping functionality."""

    def test_bearer_characteristics(self):
        voice = QCIMapping.for_bearer(BearerType.GBR_CONV_VOICE)
        self.assertEqual(voice.resource_type, ResourceType.GBR)
        self.assertEqual(voice.packet_delay_budget, 100)

        embb = QCIMapping.for_bearer(BearerType.NGBR_LOW_LAT_EMBB)
        self.assertEqual(embb.resource_type, ResourceType.NON_GBR)
        self.assertEqual(embb.packet_delay_budget, 10)

    def test_gbr_service(self):
        self.assertTrue(QCIMapping.is_gbr_service(1))
        self.assertFalse(QCIMapping.is_gbr_service(80))
        self.assertFalse(QCIMapping.is_gbr_service(9))

    def test_supported_qcis(self):
        self.assertEqual(sorted(QCIMapping.get_supported_qcis()), [1, 9, 80])

    def test_unknown_qci(self):
        with self.assertRaises(ValueError):
            QCIMapping.get_qos_characteristics(999)


class TestResourceRouter(unittest.TestCase):
    """Test ResourceRouter functionality."""

    def setUp(self):
        self.router = ResourceRouter.from_config(ScenarioConfig())

    def test_default_routes(self):
        """Browsing goes to partition 0 and voice to partition 1."""
        routes = self.router.bind()

        browsing = routes[TrafficClass.BROWSING]
        self.assertEqual(browsing.partition_index, 0)
        self.assertEqual(browsing.bearer.bearer_type, BearerType.NGBR_LOW_LAT_EMBB)
        self.assertEqual(browsing.bearer.packet_filter, PacketFilter(1234, 1234))

        voice = routes[TrafficClass.VOICE]
        self.assertEqual(voice.partition_index, 1)
        self.assertEqual(voice.bearer.bearer_type, BearerType.GBR_CONV_VOICE)
        self.assertTrue(voice.bearer.packet_filter.matches(1235))
        self.assertFalse(voice.bearer.packet_filter.matches(1234))

    def test_bind_is_idempotent(self):
        self.assertEqual(self.router.bind(), self.router.bind())

    def test_route_for(self):
        with self.assertRaises(KeyError):
            self.router.route_for(TrafficClass.VOICE)
        self.router.bind([TrafficClass.VOICE])
        self.assertEqual(self.router.route_for(TrafficClass.VOICE).partition_index, 1)
        with self.assertRaises(KeyError):
            self.router.route_for(TrafficClass.BROWSING)

    def test_partition_out_of_range(self):
        router = ResourceRouter(
            partition_for={TrafficClass.VOICE: 2, TrafficClass.BROWSING: 0},
            ports={TrafficClass.VOICE: 1235, TrafficClass.BROWSING: 1234},
            num_partitions=2
        )
        with self.assertRaises(ConfigurationError):
            router.bind()

    def test_missing_class_route(self):
        router = ResourceRouter(
            partition_for={TrafficClass.BROWSING: 0},
            ports={TrafficClass.BROWSING: 1234},
            num_partitions=2
        )
        router.bind([TrafficClass.BROWSING])
        with self.assertRaises(ConfigurationError):
            router.bind()

    def test_apply_routes_both_sides(self):
        installer = RecordingInstaller()
        self.router.apply(installer)

        self.assertIn((GNB_SIDE, BearerType.NGBR_LOW_LAT_EMBB, 0), installer.calls)
        self.assertIn((UE_SIDE, BearerType.NGBR_LOW_LAT_EMBB, 0), installer.calls)
        self.assertIn((GNB_SIDE, BearerType.GBR_CONV_VOICE, 1), installer.calls)
        self.assertIn((UE_SIDE, BearerType.GBR_CONV_VOICE, 1), installer.calls)
        self.assertEqual(len(installer.calls), 4)


if __name__ == '__main__':
    unittest.main()
