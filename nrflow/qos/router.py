"""
Traffic-class to spectrum-partition routing.

Each traffic class gets one dedicated bearer (with a packet filter on its
destination port) and one partition. The binding is static and shared by
every base station and every endpoint of the class.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, Optional

from ..core.config import ConfigurationError, ScenarioConfig, TrafficClass
from ..network.interfaces import GNB_SIDE, UE_SIDE
from .qci_mapping import BearerType, QCIMapping, QoSCharacteristics

logger = logging.getLogger(__name__)

# Bearer carrying each traffic class
CLASS_BEARERS = {
    TrafficClass.VOICE: BearerType.GBR_CONV_VOICE,
    TrafficClass.BROWSING: BearerType.NGBR_LOW_LAT_EMBB,
}


@dataclass(frozen=True)
class PacketFilter:
    """Traffic flow template filter on a destination port range"""
    port_start: int
    port_end: int

    def matches(self, port: int) -> bool:
        return self.port_start <= port <= self.port_end


@dataclass(frozen=True)
class BearerDescriptor:
    """Dedicated bearer with its QoS class and packet filter"""
    bearer_type: BearerType
    qos: QoSCharacteristics
    packet_filter: PacketFilter


@dataclass(frozen=True)
class TrafficClassRoute:
    traffic_class: TrafficClass
    partition_index: int
    bearer: BearerDescriptor


class ResourceRouter:
    """Static traffic-class routing to partitions and bearers"""

    def __init__(self, partition_for: Dict[TrafficClass, int], ports: Dict[TrafficClass, int],
                 num_partitions: int):
        self.partition_for = dict(partition_for)
        self.ports = dict(ports)
        self.num_partitions = num_partitions
        self.routes: Dict[TrafficClass, TrafficClassRoute] = {}

    @classmethod
    def from_config(cls, config: ScenarioConfig) -> 'ResourceRouter':
        return cls(
            partition_for={c: config.partition_for(c) for c in TrafficClass},
            ports={c: config.port_for(c) for c in TrafficClass},
            num_partitions=len(config.partitions)
        )

    def bind(self, traffic_classes: Optional[Iterable[TrafficClass]] = None) -> Dict[TrafficClass, TrafficClassRoute]:
        """
        Bind each traffic class to its partition and bearer

        Rebinding an unchanged class set returns an identical mapping.

        Raises:
            ConfigurationError: If a class has no partition/port or points
                outside the partition list
        """
        if traffic_classes is None:
            traffic_classes = list(TrafficClass)

        routes = {}
        for traffic_class in traffic_classes:
            if traffic_class not in self.partition_for or traffic_class not in self.ports:
                raise ConfigurationError(f"No route configured for {traffic_class.value} traffic")
            index = self.partition_for[traffic_class]
            if not 0 <= index < self.num_partitions:
                raise ConfigurationError(
                    f"{traffic_class.value} traffic routed to partition {index}, "
                    f"but only {self.num_partitions} partitions exist")

            port = self.ports[traffic_class]
            bearer_type = CLASS_BEARERS[traffic_class]
            bearer = BearerDescriptor(
                bearer_type=bearer_type,
                qos=QCIMapping.for_bearer(bearer_type),
                packet_filter=PacketFilter(port_start=port, port_end=port)
            )
            routes[traffic_class] = TrafficClassRoute(traffic_class, index, bearer)

        self.routes = routes
        return dict(routes)

    def route_for(self, traffic_class: TrafficClass) -> TrafficClassRoute:
        if traffic_class not in self.routes:
            raise KeyError(f"{traffic_class.value} traffic is not bound")
        return self.routes[traffic_class]

    def apply(self, installer, traffic_classes: Optional[Iterable[TrafficClass]] = None) -> Dict[TrafficClass, TrafficClassRoute]:
        """
        Push the bearer to partition routing to both sides of the air interface

        Args:
            installer: DeviceInstaller receiving the routing
            traffic_classes: Classes present in the current grouping

        Returns:
            The bound routes
        """
        routes = self.bind(traffic_classes)
        for traffic_class, route in routes.items():
            installer.set_bearer_partition(GNB_SIDE, route.bearer.bearer_type, route.partition_index)
            installer.set_bearer_partition(UE_SIDE, route.bearer.bearer_type, route.partition_index)
            logger.info(f"Routing {route.bearer.bearer_type.name} ({traffic_class.value}) "
                        f"to partition {route.partition_index}")
        return routes
