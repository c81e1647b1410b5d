"""
Main simulation engine for the 5G NR traffic-class scenario.

This module coordinates the configuration phase (class tagging, routing,
power, devices, addressing, attachment, applications), the network run and
the post-run flow analysis.
"""

import logging
import time
from dataclasses import dataclass
from typing import Dict, List, Optional

from ..core.config import ScenarioConfig, TrafficClass
from ..network.assignment import AttachmentPlan, ClassGroups, TrafficClassAssigner, plan_attachment
from ..network.gnb import BaseStation, SpectrumPartition
from ..network.interfaces import TopologyBuilder
from ..network.power import PowerAllocator
from ..network.topology import GridScenario
from ..network.ue import Endpoint
from ..qos.router import ResourceRouter, TrafficClassRoute
from .backend import LoopbackNetwork
from .metrics import AggregateReport, FlowStatisticsAggregator

logger = logging.getLogger(__name__)

MAX_PACKETS = 0xFFFFFFFF

# Installation order of the class groups
CLASS_ORDER = (TrafficClass.BROWSING, TrafficClass.VOICE)


@dataclass
class ConfigurationResult:
    """Artifacts of the configuration phase"""
    endpoints: List[Endpoint]
    stations: List[BaseStation]
    groups: ClassGroups
    partitions: List[SpectrumPartition]
    routes: Dict[TrafficClass, TrafficClassRoute]
    plan: AttachmentPlan


@dataclass
class SimulationResults:
    """Container for simulation results."""
    config: ScenarioConfig
    configuration: ConfigurationResult
    report: AggregateReport
    execution_time: float = 0.0


class SimulationEngine:
    """
    Scenario engine coordinating all components

    The network backend must provide the device installer, IP layer,
    traffic generator, flow monitor and runner interfaces.
    """

    def __init__(self, config: ScenarioConfig, topology: Optional[TopologyBuilder] = None,
                 network=None):
        self.config = config
        self.topology = topology or GridScenario(
            scenario_length=config.scenario_length,
            scenario_height=config.scenario_height,
            random_seed=config.random_seed
        )
        self.network = network or LoopbackNetwork(random_seed=config.random_seed)

        self.assigner = TrafficClassAssigner()
        self.power_allocator = PowerAllocator(config.total_tx_power)
        self.router = ResourceRouter.from_config(config)
        self.aggregator = FlowStatisticsAggregator()

        self.configuration: Optional[ConfigurationResult] = None

        logger.info(f"Simulation engine initialized with {config.num_gnb} gNBs and "
                    f"{config.num_total_ue} UEs (REM {'on' if config.rem else 'off'}, "
                    f"direction {config.direction}, mode {config.mode})")

    def configure(self) -> ConfigurationResult:
        """
        Run the configuration phase

        Returns:
            ConfigurationResult with the topology, class groups, partitions,
            routes and attachment plan

        Raises:
            ConfigurationError: If the scenario is invalid; nothing has been
                installed on the network backend at that point
        """
        config = self.config
        endpoints, stations = self.topology.create_scenario(
            rows=config.grid_rows,
            columns=config.grid_columns,
            spacing=config.bs_spacing,
            heights=(config.bs_height, config.ut_height),
            num_endpoints=config.num_total_ue
        )

        groups = self.assigner.assign(endpoints)
        partitions = self.power_allocator.allocate(config.partitions)

        present = [cls for cls in CLASS_ORDER if groups.pool(cls)]
        routes = self.router.apply(self.network, present)

        for station in stations:
            station.configure_partitions(partitions)
        self.network.install_base_station_device(stations, partitions)
        for cls in CLASS_ORDER:
            self.network.install_endpoint_device(groups.pool(cls), partitions)

        self._assign_addresses(endpoints, groups)

        plan = plan_attachment(
            stations,
            config.num_ue_per_gnb,
            groups.as_dict(),
            {cls: config.quota_for(cls) for cls in TrafficClass}
        )
        for endpoint, station in plan.assignments:
            self.network.attach_endpoint_to_station(endpoint, station)
            endpoint.attach(station.station_id)

        self._setup_traffic(groups, routes)

        self.configuration = ConfigurationResult(endpoints, stations, groups, partitions, routes, plan)
        return self.configuration

    def _assign_addresses(self, endpoints: List[Endpoint], groups: ClassGroups):
        for cls in CLASS_ORDER:
            pool = groups.pool(cls)
            addresses = self.network.assign_address(pool)
            logger.info(f"Assigned IP addresses for {cls.value} UEs:")
            for endpoint in pool:
                endpoint.address = addresses[endpoint.endpoint_id]
                logger.info(f"- UE with ID {endpoint.endpoint_id} has IP address: {endpoint.address}")

        gateway = self.network.gateway_address
        for endpoint in endpoints:
            self.network.set_default_route(endpoint, gateway)

    def _setup_traffic(self, groups: ClassGroups, routes: Dict[TrafficClass, TrafficClassRoute]):
        """
        Install sinks, constant-rate clients and dedicated bearers per class

        Traffic always flows from the remote host to the endpoint sinks; the
        configured direction only applies to the radio environment map.
        """
        config = self.config
        for cls in CLASS_ORDER:
            pool = groups.pool(cls)
            if not pool:
                continue
            port = config.port_for(cls)
            bearer = routes[cls].bearer

            self.network.install_server(port, pool)

            for endpoint in pool:
                logger.info(f"Setting up {cls.value} client for UE ID: {endpoint.endpoint_id}")
                self.network.install_client(endpoint.address, port,
                                            config.packet_size_for(cls),
                                            config.packet_interval_for(cls), MAX_PACKETS)
                self.network.activate_bearer(endpoint, bearer, bearer.packet_filter)

        self.network.start_applications(config.app_start_time, config.simulation_time)

    def run(self) -> SimulationResults:
        """
        Configure the scenario, run the network and aggregate the flows

        Returns:
            SimulationResults with the aggregated flow report
        """
        start = time.time()
        configuration = self.configure()

        logger.info("Starting the simulation ...")
        self.network.run(self.config.simulation_time)
        logger.info("Simulation finished ...")

        records = self.network.get_flow_stats()
        report = self.aggregator.aggregate(records, self.config.flow_duration)

        return SimulationResults(
            config=self.config,
            configuration=configuration,
            report=report,
            execution_time=time.time() - start
        )
