"""
Tests for simulation functionality.
"""

import unittest
import contextlib
import io
import sys
import os
import tempfile

# Add the repository root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from nrflow.core.config import ScenarioConfig, TrafficClass, ConfigurationError
from nrflow.network.gnb import BaseStation
from nrflow.network.power import PowerAllocator
from nrflow.network.ue import Endpoint
from nrflow.qos.qci_mapping import BearerType
from nrflow.qos.router import ResourceRouter
from nrflow.simulation.backend import LoopbackNetwork, HEADER_OVERHEAD
from nrflow.simulation.engine import SimulationEngine
import run_simulation


class TestLoopbackNetwork(unittest.TestCase):
    """Test the loopback network backend."""

    def setUp(self):
        self.network = LoopbackNetwork(random_seed=1)
        self.partitions = PowerAllocator(35.0).allocate(ScenarioConfig().partitions)
        self.station = BaseStation(station_id=0, position=(0.0, 0.0, 10.0))
        self.endpoints = [Endpoint(endpoint_id=1 + i, position=(1.0, 1.0, 1.5),
                                   traffic_class=TrafficClass.BROWSING) for i in range(2)]

        self.network.install_base_station_device([self.station], self.partitions)
        self.network.install_endpoint_device(self.endpoints, self.partitions)
        self.addresses = self.network.assign_address(self.endpoints)
        for endpoint in self.endpoints:
            self.network.set_default_route(endpoint, self.network.gateway_address)

    def test_addressing(self):
        self.assertEqual(self.network.gateway_address, "7.0.0.1")
        self.assertEqual(self.network.remote_host_address, "1.0.0.2")
        self.assertEqual(self.addresses, {1: "7.0.0.2", 2: "7.0.0.3"})

    def test_attached_and_unattached_flows(self):
        """Only packets towards attached endpoints are delivered."""
        self.network.attach_endpoint_to_station(self.endpoints[0], self.station)
        self.network.install_server(1234, self.endpoints)
        for endpoint in self.endpoints:
            self.network.install_client(self.addresses[endpoint.endpoint_id], 1234, 25, 1e-3, 1000)
        self.network.start_applications(0.0, 0.02)
        self.network.run(0.02)

        records = self.network.get_flow_stats()
        self.assertEqual([r.flow_id for r in records], [1, 2])

        attached, unattached = records
        self.assertEqual(attached.five_tuple.destination_address, "7.0.0.2")
        self.assertEqual(attached.five_tuple.protocol, 17)
        self.assertGreater(attached.rx_packets, 0)
        self.assertLessEqual(attached.rx_packets, attached.tx_packets)
        self.assertEqual(attached.tx_bytes, attached.tx_packets * (25 + HEADER_OVERHEAD))
        self.assertGreater(attached.delay_sum, 0.0)

        self.assertGreater(unattached.tx_packets, 0)
        self.assertEqual(unattached.rx_packets, 0)
        self.assertEqual(self.network.find_flow(2), unattached.five_tuple)

    def test_max_packets(self):
        self.network.attach_endpoint_to_station(self.endpoints[0], self.station)
        self.network.install_server(1234, [self.endpoints[0]])
        self.network.install_client(self.addresses[1], 1234, 25, 1e-4, 5)
        self.network.start_applications(0.0, 0.01)
        self.network.run(0.01)

        self.assertEqual(self.network.get_flow_stats()[0].tx_packets, 5)

    def test_missing_server_drops_packets(self):
        self.network.attach_endpoint_to_station(self.endpoints[0], self.station)
        self.network.install_client(self.addresses[1], 1234, 25, 1e-3, 10)
        self.network.start_applications(0.0, 0.02)
        self.network.run(0.02)

        record = self.network.get_flow_stats()[0]
        self.assertEqual(record.tx_packets, 10)
        self.assertEqual(record.rx_packets, 0)
        self.assertEqual(self.network.get_statistics()['dropped_no_server'], 10)

    def test_endpoint_sourced_client(self):
        """A client on an endpoint sends towards a sink on the remote host."""
        self.network.attach_endpoint_to_station(self.endpoints[0], self.station)
        self.network.install_server(1234, [None])
        self.network.install_client(self.network.remote_host_address, 1234, 25, 1e-3, 10,
                                    source=self.endpoints[0])
        self.network.start_applications(0.0, 0.02)
        self.network.run(0.02)

        record = self.network.get_flow_stats()[0]
        self.assertEqual(record.five_tuple.source_address, "7.0.0.2")
        self.assertEqual(record.five_tuple.destination_address, "1.0.0.2")
        self.assertEqual(record.tx_packets, 10)
        self.assertEqual(record.rx_packets, 10)

    def test_unknown_flow(self):
        with self.assertRaises(KeyError):
            self.network.find_flow(42)

    def test_unknown_side(self):
        with self.assertRaises(ValueError):
            self.network.set_bearer_partition("core", BearerType.GBR_CONV_VOICE, 0)


class TestSimulationEngine(unittest.TestCase):
    """Test SimulationEngine functionality."""

    def test_configuration_phase(self):
        config = ScenarioConfig()
        engine = SimulationEngine(config)
        configuration = engine.configure()

        self.assertEqual(len(configuration.endpoints), 6)
        self.assertEqual(len(configuration.stations), 3)
        self.assertEqual([e.endpoint_id for e in configuration.endpoints], [3, 4, 5, 6, 7, 8])
        self.assertEqual(configuration.plan.as_mapping(), {3: 0, 4: 0, 5: 1, 6: 1, 8: 2})
        self.assertEqual(configuration.plan.starved[TrafficClass.VOICE], 1)

        self.assertEqual(configuration.routes[TrafficClass.BROWSING].partition_index, 0)
        self.assertEqual(configuration.routes[TrafficClass.VOICE].partition_index, 1)
        self.assertAlmostEqual(configuration.partitions[0].tx_power,
                               configuration.partitions[1].tx_power)

        # Browsing endpoints are addressed first
        addresses = {e.endpoint_id: e.address for e in configuration.endpoints}
        self.assertEqual(addresses[4], "7.0.0.2")
        self.assertEqual(addresses[3], "7.0.0.5")
        for station in configuration.stations:
            self.assertEqual(len(station.partitions), 2)

    def test_downlink_run(self):
        """Default run: six flows, the starved voice endpoint receives nothing."""
        engine = SimulationEngine(ScenarioConfig())
        results = engine.run()
        report = results.report

        self.assertEqual(report.flow_count, 6)
        self.assertAlmostEqual(report.duration, 0.09)

        ports = [record.five_tuple.destination_port for record, _ in report.flows]
        self.assertEqual(ports, [1234, 1234, 1234, 1235, 1235, 1235])

        starved = [e for e in results.configuration.endpoints if not e.is_attached()]
        self.assertEqual(len(starved), 1)
        for record, metrics in report.flows:
            self.assertEqual(record.five_tuple.source_address, "1.0.0.2")
            self.assertGreater(record.tx_packets, 0)
            if record.five_tuple.destination_address == starved[0].address:
                self.assertEqual(record.rx_packets, 0)
                self.assertEqual(metrics.throughput_mbps, 0.0)
                self.assertEqual(metrics.loss_percent, 100.0)
            else:
                self.assertGreater(record.rx_packets, 0)
                self.assertGreater(metrics.mean_delay_ms, 0.0)

        self.assertGreater(report.mean_flow_throughput_mbps, 0.0)
        self.assertGreater(results.execution_time, 0.0)

    def test_direction_does_not_change_traffic(self):
        """The REM direction leaves the downlink flow set untouched."""
        downlink = SimulationEngine(ScenarioConfig(direction="DL")).run().report
        uplink = SimulationEngine(ScenarioConfig(direction="UL")).run().report

        self.assertEqual([record.five_tuple for record, _ in uplink.flows],
                         [record.five_tuple for record, _ in downlink.flows])
        self.assertEqual([record.rx_packets for record, _ in uplink.flows],
                         [record.rx_packets for record, _ in downlink.flows])
        for record, _ in uplink.flows:
            self.assertEqual(record.five_tuple.source_address, "1.0.0.2")
            self.assertTrue(record.five_tuple.destination_address.startswith("7.0.0."))

    def test_runs_are_reproducible(self):
        first = SimulationEngine(ScenarioConfig(random_seed=7)).run().report
        second = SimulationEngine(ScenarioConfig(random_seed=7)).run().report

        self.assertEqual(first.mean_flow_throughput_mbps, second.mean_flow_throughput_mbps)
        self.assertEqual(first.mean_flow_delay_ms, second.mean_flow_delay_ms)

    def test_dense_scenario(self):
        """Nine endpoints per station: quotas keep only five attached."""
        engine = SimulationEngine(ScenarioConfig(num_ue_per_gnb=9))
        results = engine.run()

        attached = [e for e in results.configuration.endpoints if e.is_attached()]
        self.assertEqual(len(attached), 5)
        self.assertEqual(results.report.flow_count, 27)

    def test_router_rejects_before_installation(self):
        """Routing errors surface before anything is installed."""
        config = ScenarioConfig()
        engine = SimulationEngine(config)
        engine.router = ResourceRouter(partition_for={TrafficClass.BROWSING: 5,
                                                      TrafficClass.VOICE: 1},
                                       ports={TrafficClass.BROWSING: 1234,
                                              TrafficClass.VOICE: 1235},
                                       num_partitions=2)
        with self.assertRaises(ConfigurationError):
            engine.configure()
        self.assertEqual(engine.network.get_statistics()['attached_endpoints'], 0)


class TestCommandLine(unittest.TestCase):
    """Test the scenario runner entry point."""

    def run_main(self, argv):
        stdout = io.StringIO()
        with contextlib.redirect_stdout(stdout):
            status = run_simulation.main(argv)
        return status, stdout.getvalue()

    def test_default_run_writes_and_echoes_report(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            status, output = self.run_main(["--output-dir", temp_dir, "--sim-tag", "run1"])

            self.assertEqual(status, 0)
            with open(os.path.join(temp_dir, "run1")) as f:
                content = f.read()
            self.assertIn(content, output)
            self.assertIn("Mean flow throughput:", content)
            self.assertIn("proto UDP", content)

    def test_baseline_mismatch_fails(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            status, _ = self.run_main(["--output-dir", temp_dir,
                                       "--baseline-throughput", "1.0",
                                       "--baseline-delay", "1.0"])
            self.assertEqual(status, 1)

    def test_invalid_config_file(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            path = os.path.join(temp_dir, "bad.json")
            with open(path, 'w') as f:
                f.write('{"simulation": {"simulation_time": -1}}')
            status, _ = self.run_main(["--config", path, "--output-dir", temp_dir])
            self.assertEqual(status, 1)

    def test_create_scenario_and_run_it(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            config_path = os.path.join(temp_dir, "scenario.yaml")
            status, _ = self.run_main(["--create-scenario", "default",
                                       "--config-output", config_path])
            self.assertEqual(status, 0)
            self.assertTrue(os.path.exists(config_path))

            export_path = os.path.join(temp_dir, "flows.csv")
            status, _ = self.run_main(["--config", config_path, "--output-dir", temp_dir,
                                       "--direction", "UL", "--no-rem",
                                       "--export", export_path])
            self.assertEqual(status, 0)
            self.assertTrue(os.path.exists(export_path))
            self.assertTrue(os.path.exists(os.path.join(temp_dir, "default")))

    def test_unwritable_report(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            blocker = os.path.join(temp_dir, "file")
            with open(blocker, 'w') as f:
                f.write("")
            status, _ = self.run_main(["--output-dir", os.path.join(blocker, "sub")])
            self.assertEqual(status, 1)


if __name__ == '__main__':
    unittest.main()
