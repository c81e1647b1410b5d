"""
Traffic-class assignment and quota-bounded attachment planning.

Endpoints are split into voice and browsing groups by index parity, then
bound to base stations slot by slot while each class stays inside its
global quota.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

from ..core.config import ConfigurationError, TrafficClass, MIN_TOTAL_ENDPOINTS
from .gnb import BaseStation
from .ue import Endpoint

logger = logging.getLogger(__name__)

MIN_VOICE_ENDPOINTS = 2
MIN_BROWSING_ENDPOINTS = 3


@dataclass
class ClassGroups:
    """Endpoints grouped per traffic class, in original order"""
    voice: List[Endpoint] = field(default_factory=list)
    browsing: List[Endpoint] = field(default_factory=list)

    def pool(self, traffic_class: TrafficClass) -> List[Endpoint]:
        if traffic_class is TrafficClass.VOICE:
            return self.voice
        return self.browsing

    def as_dict(self) -> Dict[TrafficClass, List[Endpoint]]:
        return {TrafficClass.VOICE: self.voice, TrafficClass.BROWSING: self.browsing}


class TrafficClassAssigner:
    """Alternating voice/browsing split of an ordered endpoint list"""

    def __init__(self, min_voice: int = MIN_VOICE_ENDPOINTS,
                 min_browsing: int = MIN_BROWSING_ENDPOINTS):
        self.min_voice = min_voice
        self.min_browsing = min_browsing

    def assign(self, endpoints: Sequence[Endpoint]) -> ClassGroups:
        """
        Tag endpoints by positional parity (even -> voice, odd -> browsing)

        Args:
            endpoints: Endpoints in topology order

        Returns:
            ClassGroups with both pools in original order

        Raises:
            ConfigurationError: If fewer than 5 endpoints are given or a pool
                ends up below its minimum size
        """
        if len(endpoints) < MIN_TOTAL_ENDPOINTS:
            raise ConfigurationError(
                f"At least {MIN_TOTAL_ENDPOINTS} endpoints required, got {len(endpoints)}")

        groups = ClassGroups()
        for index, endpoint in enumerate(endpoints):
            if index % 2 == 0:
                endpoint.assign_class(TrafficClass.VOICE)
                groups.voice.append(endpoint)
                logger.info(f"Adding UE with ID {endpoint.endpoint_id} to voice call group")
            else:
                endpoint.assign_class(TrafficClass.BROWSING)
                groups.browsing.append(endpoint)
                logger.info(f"Adding UE with ID {endpoint.endpoint_id} to web browsing group")

        if len(groups.voice) < self.min_voice:
            raise ConfigurationError(
                f"Voice group has {len(groups.voice)} endpoints, at least {self.min_voice} required")
        if len(groups.browsing) < self.min_browsing:
            raise ConfigurationError(
                f"Browsing group has {len(groups.browsing)} endpoints, "
                f"at least {self.min_browsing} required")

        return groups


class SkipReason(Enum):
    QUOTA_EXHAUSTED = "quota_exhausted"
    POOL_EXHAUSTED = "pool_exhausted"


@dataclass(frozen=True)
class SkippedSlot:
    """An attachment slot left empty"""
    station_id: int
    slot: int
    traffic_class: TrafficClass
    reason: SkipReason
    endpoint_id: Optional[int] = None  # endpoint that would have been attached


@dataclass
class AttachmentPlan:
    """Result of attachment planning"""
    assignments: List[Tuple[Endpoint, BaseStation]]
    skipped: List[SkippedSlot]
    attached: Dict[TrafficClass, int]
    starved: Dict[TrafficClass, int]

    def station_for(self, endpoint: Endpoint) -> Optional[BaseStation]:
        for candidate, station in self.assignments:
            if candidate is endpoint:
                return station
        return None

    def as_mapping(self) -> Dict[int, int]:
        """Endpoint id -> station id"""
        return {endpoint.endpoint_id: station.station_id for endpoint, station in self.assignments}


def plan_attachment(stations: Sequence[BaseStation], slots_per_station: int,
                    pools: Dict[TrafficClass, Sequence[Endpoint]],
                    quotas: Dict[TrafficClass, int]) -> AttachmentPlan:
    """
    Bind endpoints to base stations under global per-class quotas

    Stations are visited in order, and each station's slots in order. Even
    slots take the next voice endpoint, odd slots the next browsing
    endpoint. A slot whose class quota is used up (or whose pool is empty)
    stays empty and is recorded in the plan's skipped list.

    Args:
        stations: Base stations in attachment order
        slots_per_station: Attachment slots per base station
        pools: Tagged endpoints per class, in assignment order
        quotas: Maximum attached endpoints per class across all stations

    Returns:
        AttachmentPlan with the ordered (endpoint, station) pairs and diagnostics
    """
    if slots_per_station < 0:
        raise ConfigurationError(f"Negative slot count per station: {slots_per_station}")
    for traffic_class, quota in quotas.items():
        if quota < 0:
            raise ConfigurationError(f"Negative quota for {traffic_class.value}: {quota}")

    next_index = {cls: 0 for cls in TrafficClass}
    assignments = []
    skipped = []

    for station in stations:
        for slot in range(slots_per_station):
            traffic_class = TrafficClass.VOICE if slot % 2 == 0 else TrafficClass.BROWSING
            pool = pools.get(traffic_class, [])
            index = next_index[traffic_class]

            if index >= quotas.get(traffic_class, 0):
                pending = pool[index].endpoint_id if index < len(pool) else None
                skipped.append(SkippedSlot(station.station_id, slot, traffic_class,
                                           SkipReason.QUOTA_EXHAUSTED, pending))
                if pending is not None:
                    logger.warning(f"UE with ID {pending} won't be added to BS {station.station_id} "
                                   f"due to the limit on {traffic_class.value} UEs.")
                else:
                    logger.warning(f"Slot {slot} of BS {station.station_id} left empty: "
                                   f"{traffic_class.value} quota reached")
                continue

            if index >= len(pool):
                skipped.append(SkippedSlot(station.station_id, slot, traffic_class,
                                           SkipReason.POOL_EXHAUSTED))
                logger.warning(f"Slot {slot} of BS {station.station_id} left empty: "
                               f"no {traffic_class.value} UE left")
                continue

            endpoint = pool[index]
            next_index[traffic_class] = index + 1
            assignments.append((endpoint, station))
            logger.info(f"Adding UE with ID {endpoint.endpoint_id} to BS {station.station_id}")

    attached = {cls: next_index[cls] for cls in TrafficClass}
    starved = {cls: len(pools.get(cls, [])) - attached[cls] for cls in TrafficClass}

    for cls in TrafficClass:
        if attached[cls] < quotas.get(cls, 0):
            logger.warning(f"Some {cls.value} UEs were not assigned to any gNB "
                           f"({attached[cls]} of quota {quotas[cls]}).")
        if starved[cls] > 0:
            logger.info(f"{starved[cls]} {cls.value} UE(s) left unattached")

    return AttachmentPlan(assignments=assignments, skipped=skipped,
                          attached=attached, starved=starved)
