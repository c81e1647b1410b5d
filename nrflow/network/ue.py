"""
Endpoint (UE) Implementation for the 5G NR Scenario

This module implements the endpoint record carried through configuration:
its traffic-class tag, its serving base station and its IP address.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

from ..core.config import ConfigurationError, TrafficClass

logger = logging.getLogger(__name__)


@dataclass
class Endpoint:
    """
    5G User Equipment (endpoint)

    The traffic class is tagged once by the class assigner and the serving
    base station is bound once by the attachment plan.
    """
    endpoint_id: int
    position: Tuple[float, float, float]
    traffic_class: Optional[TrafficClass] = None
    base_station_id: Optional[int] = None
    address: Optional[str] = None

    def assign_class(self, traffic_class: TrafficClass):
        """Tag the endpoint with a traffic class (re-tagging with the same class is a no-op)"""
        if self.traffic_class is not None and self.traffic_class is not traffic_class:
            raise ConfigurationError(
                f"Endpoint {self.endpoint_id} already tagged as {self.traffic_class.value}, "
                f"cannot re-tag as {traffic_class.value}")
        self.traffic_class = traffic_class

    def attach(self, station_id: int):
        """Bind the endpoint to its serving base station"""
        if self.traffic_class is None:
            raise ConfigurationError(f"Endpoint {self.endpoint_id} must be tagged before attachment")
        if self.base_station_id is not None and self.base_station_id != station_id:
            raise ValueError(
                f"Endpoint {self.endpoint_id} already attached to base station {self.base_station_id}")
        self.base_station_id = station_id
        logger.debug(f"Endpoint {self.endpoint_id} bound to base station {station_id}")

    def is_attached(self) -> bool:
        return self.base_station_id is not None
