"""
Loopback network backend built on SimPy.

This backend stands in for a full 5G NR system simulator. It installs the
devices, bearers, addresses and UDP applications the scenario asks for and
moves packets through one single-server queue per (base station, partition).
There is no propagation model: a packet's delay is its queueing time, its
serialisation time at the partition rate, and a wait for the next slot
boundary.
"""

import ipaddress
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Set, Tuple

import numpy as np
import simpy

from ..network.gnb import BaseStation, SpectrumPartition
from ..network.interfaces import (DeviceInstaller, FlowMonitor, IpLayer, NetworkRunner,
                                  TrafficGenerator, GNB_SIDE, UE_SIDE)
from ..network.ue import Endpoint
from ..qos.qci_mapping import BearerType
from .metrics import FiveTuple, FlowRecord

logger = logging.getLogger(__name__)

UDP_PROTOCOL = 17
HEADER_OVERHEAD = 28  # IPv4 (20) + UDP (8) bytes
EPHEMERAL_PORT_BASE = 49153
DEFAULT_BEARER = BearerType.NGBR_VIDEO_TCP_DEFAULT
DEFAULT_PARTITION = 0


@dataclass
class _FlowState:
    """Mutable counters of a flow while the run is in progress"""
    flow_id: int
    five_tuple: FiveTuple
    tx_packets: int = 0
    tx_bytes: int = 0
    rx_packets: int = 0
    rx_bytes: int = 0
    delay_sum: float = 0.0
    jitter_sum: float = 0.0
    last_delay: Optional[float] = None

    def record_rx(self, size: int, delay: float):
        if self.last_delay is not None:
            self.jitter_sum += abs(delay - self.last_delay)
        self.last_delay = delay
        self.rx_packets += 1
        self.rx_bytes += size
        self.delay_sum += delay

    def to_record(self) -> FlowRecord:
        return FlowRecord(
            flow_id=self.flow_id,
            five_tuple=self.five_tuple,
            tx_packets=self.tx_packets,
            tx_bytes=self.tx_bytes,
            rx_packets=self.rx_packets,
            rx_bytes=self.rx_bytes,
            delay_sum=self.delay_sum,
            jitter_sum=self.jitter_sum
        )


class _PartitionQueue:
    """Single-server transmission queue of one partition at one station"""

    def __init__(self, env: simpy.Environment, partition: SpectrumPartition,
                 spectral_efficiency: float):
        self.partition = partition
        self.server = simpy.Resource(env, capacity=1)
        self.rate = partition.bandwidth * spectral_efficiency  # bit/s
        self.packets_served = 0

    def service_time(self, size: int) -> float:
        return size * 8.0 / self.rate


@dataclass
class _Client:
    source: Optional[Endpoint]
    source_address: str
    source_port: int
    destination_address: str
    port: int
    packet_size: int
    interval: float
    max_packets: int


class LoopbackNetwork(DeviceInstaller, IpLayer, TrafficGenerator, FlowMonitor, NetworkRunner):
    """
    In-process network backend

    Features:
    - Bearer to partition routing on the gNB and UE side
    - Per-partition FIFO transmission at bandwidth x spectral efficiency
    - Sequential endpoint addressing behind a single gateway
    - Constant-rate UDP clients and sinks
    - Per 5-tuple flow counters (delay and jitter sums in seconds)
    """

    def __init__(self, random_seed: Optional[int] = None, spectral_efficiency: float = 4.0,
                 max_queue_packets: int = 10000, endpoint_network: str = "7.0.0.0/8",
                 remote_host_address: str = "1.0.0.2"):
        self.env = simpy.Environment()
        self.rng = np.random.default_rng(random_seed)
        self.spectral_efficiency = spectral_efficiency
        self.max_queue_packets = max_queue_packets

        # Devices
        self._routes: Dict[str, Dict[BearerType, int]] = {GNB_SIDE: {}, UE_SIDE: {}}
        self._stations: Dict[int, Dict[int, _PartitionQueue]] = {}
        self._endpoints: Dict[int, Endpoint] = {}
        self._serving: Dict[int, int] = {}  # endpoint id -> station id
        self._bearers: Dict[int, List[Tuple[BearerType, object]]] = {}

        # Addressing
        self._network = ipaddress.IPv4Network(endpoint_network)
        self._next_host = 2  # .1 is the gateway
        self._remote_host_address = remote_host_address
        self._address_owner: Dict[str, int] = {}
        self._default_routes: Dict[int, str] = {}

        # Applications
        self._servers: Set[Tuple[str, int]] = set()
        self._clients: List[_Client] = []
        self._next_source_port: Dict[str, int] = {}

        # Flow monitor
        self._flows: Dict[FiveTuple, _FlowState] = {}
        self._flows_by_id: Dict[int, _FlowState] = {}

        self.stats = {
            'packets_sent': 0,
            'packets_delivered': 0,
            'dropped_unattached': 0,
            'dropped_no_server': 0,
            'dropped_queue_full': 0
        }

    # ------------------------------------------------------------------
    # Device installation
    # ------------------------------------------------------------------

    def set_bearer_partition(self, side: str, bearer_type: BearerType, partition_index: int):
        if side not in self._routes:
            raise ValueError(f"Unknown side: {side}")
        self._routes[side][bearer_type] = partition_index

    def install_base_station_device(self, stations: Sequence[BaseStation],
                                    partitions: Sequence[SpectrumPartition]):
        for station in stations:
            self._stations[station.station_id] = {
                p.index: _PartitionQueue(self.env, p, self.spectral_efficiency) for p in partitions
            }
            logger.debug(f"Installed gNB device on station {station.station_id} "
                         f"with {len(partitions)} partitions")

    def install_endpoint_device(self, endpoints: Sequence[Endpoint],
                                partitions: Sequence[SpectrumPartition]):
        for endpoint in endpoints:
            self._endpoints[endpoint.endpoint_id] = endpoint
            self._bearers.setdefault(endpoint.endpoint_id, [])
            logger.debug(f"Installed UE device on endpoint {endpoint.endpoint_id}")

    def attach_endpoint_to_station(self, endpoint: Endpoint, station: BaseStation):
        if station.station_id not in self._stations:
            raise ValueError(f"No gNB device installed on station {station.station_id}")
        if endpoint.endpoint_id not in self._endpoints:
            raise ValueError(f"No UE device installed on endpoint {endpoint.endpoint_id}")
        self._serving[endpoint.endpoint_id] = station.station_id

    def activate_bearer(self, endpoint: Endpoint, bearer, packet_filter):
        if endpoint.endpoint_id not in self._endpoints:
            raise ValueError(f"No UE device installed on endpoint {endpoint.endpoint_id}")
        self._bearers[endpoint.endpoint_id].append((bearer.bearer_type, packet_filter))
        logger.debug(f"Activated {bearer.bearer_type.name} bearer on endpoint {endpoint.endpoint_id}")

    # ------------------------------------------------------------------
    # IP layer
    # ------------------------------------------------------------------

    @property
    def gateway_address(self) -> str:
        return str(self._network.network_address + 1)

    @property
    def remote_host_address(self) -> str:
        return self._remote_host_address

    def assign_address(self, endpoints: Sequence[Endpoint]) -> Dict[int, str]:
        addresses = {}
        for endpoint in endpoints:
            address = str(self._network.network_address + self._next_host)
            self._next_host += 1
            self._address_owner[address] = endpoint.endpoint_id
            addresses[endpoint.endpoint_id] = address
        return addresses

    def set_default_route(self, endpoint: Endpoint, gateway: str):
        self._default_routes[endpoint.endpoint_id] = gateway

    def _address_of(self, endpoint: Optional[Endpoint]) -> str:
        if endpoint is None:
            return self._remote_host_address
        for address, owner in self._address_owner.items():
            if owner == endpoint.endpoint_id:
                return address
        raise ValueError(f"Endpoint {endpoint.endpoint_id} has no address")

    # ------------------------------------------------------------------
    # Applications
    # ------------------------------------------------------------------

    def install_server(self, port: int, nodes: Sequence[Optional[Endpoint]]):
        for node in nodes:
            self._servers.add((self._address_of(node), port))

    def install_client(self, destination_address: str, port: int, packet_size: int,
                       interval: float, max_packets: int,
                       source: Optional[Endpoint] = None):
        source_address = self._address_of(source)
        source_port = self._next_source_port.get(source_address, EPHEMERAL_PORT_BASE)
        self._next_source_port[source_address] = source_port + 1
        self._clients.append(_Client(source, source_address, source_port, destination_address,
                                     port, packet_size, interval, max_packets))

    def start_applications(self, start_time: float, stop_time: float):
        for client in self._clients:
            self.env.process(self._client_process(client, start_time, stop_time))
        logger.info(f"Started {len(self._clients)} clients and {len(self._servers)} servers "
                    f"from {start_time}s to {stop_time}s")

    def _client_process(self, client: _Client, start_time: float, stop_time: float):
        yield self.env.timeout(max(0.0, start_time - self.env.now))
        sent = 0
        while self.env.now < stop_time and sent < client.max_packets:
            self._transmit(client)
            sent += 1
            yield self.env.timeout(client.interval)

    # ------------------------------------------------------------------
    # Packet path
    # ------------------------------------------------------------------

    def _flow_for(self, five_tuple: FiveTuple) -> _FlowState:
        flow = self._flows.get(five_tuple)
        if flow is None:
            flow = _FlowState(flow_id=len(self._flows) + 1, five_tuple=five_tuple)
            self._flows[five_tuple] = flow
            self._flows_by_id[flow.flow_id] = flow
        return flow

    def _transmit(self, client: _Client):
        five_tuple = FiveTuple(client.source_address, client.destination_address,
                               client.source_port, client.port, UDP_PROTOCOL)
        flow = self._flow_for(five_tuple)
        size = client.packet_size + HEADER_OVERHEAD
        flow.tx_packets += 1
        flow.tx_bytes += size
        self.stats['packets_sent'] += 1

        queue = self._select_queue(client)
        if queue is not None:
            self.env.process(self._deliver(flow, queue, size, self.env.now))

    def _select_queue(self, client: _Client) -> Optional[_PartitionQueue]:
        """Partition queue carrying the client's packets, None when the packet is lost"""
        if client.source is None:
            side = GNB_SIDE
            owner = self._address_owner.get(client.destination_address)
            endpoint = self._endpoints.get(owner) if owner is not None else None
        else:
            side = UE_SIDE
            endpoint = client.source
            if endpoint.endpoint_id not in self._default_routes:
                endpoint = None

        if endpoint is None or endpoint.endpoint_id not in self._serving:
            self.stats['dropped_unattached'] += 1
            return None
        if (client.destination_address, client.port) not in self._servers:
            self.stats['dropped_no_server'] += 1
            return None

        bearer_type = DEFAULT_BEARER
        for candidate, packet_filter in self._bearers.get(endpoint.endpoint_id, []):
            if packet_filter.matches(client.port):
                bearer_type = candidate
                break
        index = self._routes[side].get(bearer_type, DEFAULT_PARTITION)

        queue = self._stations[self._serving[endpoint.endpoint_id]].get(index)
        if queue is None or queue.rate <= 0 or len(queue.server.queue) >= self.max_queue_packets:
            self.stats['dropped_queue_full'] += 1
            return None
        return queue

    def _deliver(self, flow: _FlowState, queue: _PartitionQueue, size: int, sent_at: float):
        with queue.server.request() as request:
            yield request
            yield self.env.timeout(queue.service_time(size))
        queue.packets_served += 1

        # Wait for the next slot boundary
        yield self.env.timeout(queue.partition.slot_duration * self.rng.uniform())

        flow.record_rx(size, self.env.now - sent_at)
        self.stats['packets_delivered'] += 1

    # ------------------------------------------------------------------
    # Run and flow monitor
    # ------------------------------------------------------------------

    def run(self, stop_time: float):
        self.env.run(until=stop_time)
        logger.info(f"Run stopped at {self.env.now}s: {self.stats['packets_sent']} packets sent, "
                    f"{self.stats['packets_delivered']} delivered")

    def get_flow_stats(self) -> List[FlowRecord]:
        return [self._flows_by_id[i].to_record() for i in sorted(self._flows_by_id)]

    def find_flow(self, flow_id: int) -> FiveTuple:
        if flow_id not in self._flows_by_id:
            raise KeyError(f"Unknown flow id: {flow_id}")
        return self._flows_by_id[flow_id].five_tuple

    def get_statistics(self) -> Dict[str, int]:
        stats = self.stats.copy()
        stats['flows'] = len(self._flows)
        stats['attached_endpoints'] = len(self._serving)
        return stats
