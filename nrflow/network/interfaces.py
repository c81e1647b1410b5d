"""
Collaborator interfaces for the network run.

The scenario core only configures these collaborators before the run and
reads a final snapshot from them afterwards.
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Sequence, Tuple

from .gnb import BaseStation, SpectrumPartition
from .ue import Endpoint

# Sides of the air interface that route bearers to partitions
GNB_SIDE = "gnb"
UE_SIDE = "ue"


class TopologyBuilder(ABC):
    """Creates the endpoints and base stations of a scenario"""

    @abstractmethod
    def create_scenario(self, rows: int, columns: int, spacing: float,
                        heights: Tuple[float, float],
                        num_endpoints: int) -> Tuple[List[Endpoint], List[BaseStation]]:
        """Return the ordered endpoint list and the ordered base station list"""
        pass


class DeviceInstaller(ABC):
    """Installs radio devices and binds bearers"""

    @abstractmethod
    def set_bearer_partition(self, side: str, bearer_type, partition_index: int):
        """Route a bearer type to a partition on one side of the air interface"""
        pass

    @abstractmethod
    def install_base_station_device(self, stations: Sequence[BaseStation],
                                    partitions: Sequence[SpectrumPartition]):
        pass

    @abstractmethod
    def install_endpoint_device(self, endpoints: Sequence[Endpoint],
                                partitions: Sequence[SpectrumPartition]):
        pass

    @abstractmethod
    def attach_endpoint_to_station(self, endpoint: Endpoint, station: BaseStation):
        pass

    @abstractmethod
    def activate_bearer(self, endpoint: Endpoint, bearer, packet_filter):
        """Activate a dedicated bearer for the endpoint with its packet filter"""
        pass


class IpLayer(ABC):
    """Addressing and routing towards the core network"""

    @property
    @abstractmethod
    def gateway_address(self) -> str:
        pass

    @property
    @abstractmethod
    def remote_host_address(self) -> str:
        pass

    @abstractmethod
    def assign_address(self, endpoints: Sequence[Endpoint]) -> Dict[int, str]:
        """Assign an address to each endpoint, keyed by endpoint id"""
        pass

    @abstractmethod
    def set_default_route(self, endpoint: Endpoint, gateway: str):
        pass


class TrafficGenerator(ABC):
    """UDP client/server applications"""

    @abstractmethod
    def install_server(self, port: int, nodes: Sequence[Optional[Endpoint]]):
        """Install a packet sink on each node; None stands for the remote host"""
        pass

    @abstractmethod
    def install_client(self, destination_address: str, port: int, packet_size: int,
                       interval: float, max_packets: int,
                       source: Optional[Endpoint] = None):
        """Install a constant-rate sender; the remote host sends when source is None"""
        pass

    @abstractmethod
    def start_applications(self, start_time: float, stop_time: float):
        pass


class FlowMonitor(ABC):
    """Per-flow counters collected during the run"""

    @abstractmethod
    def get_flow_stats(self) -> List['FlowRecord']:
        pass

    @abstractmethod
    def find_flow(self, flow_id: int) -> 'FiveTuple':
        pass


class NetworkRunner(ABC):
    """Drives the event-ordered run to a fixed stop time"""

    @abstractmethod
    def run(self, stop_time: float):
        pass
