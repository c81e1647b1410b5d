"""
gNodeB (gNB) Implementation for the 5G NR Scenario

This module implements the base station record and the spectrum partitions
(bandwidth parts) it serves.
"""

import logging
from dataclasses import dataclass
from typing import Tuple

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SpectrumPartition:
    """Configured spectrum partition (bandwidth part)"""
    index: int
    center_frequency: float  # Hz
    bandwidth: float  # Hz
    numerology: int
    tx_power: float  # dBm
    channel_model: str = "UMi_StreetCanyon"

    @property
    def slot_duration(self) -> float:
        """Slot length in seconds (1 ms subframe / 2^numerology)"""
        return 1e-3 / (2 ** self.numerology)


@dataclass
class BaseStation:
    """
    5G gNodeB (base station)

    Partitions are installed once during configuration and never change
    afterwards.
    """
    station_id: int
    position: Tuple[float, float, float]
    partitions: Tuple[SpectrumPartition, ...] = ()

    def configure_partitions(self, partitions):
        """Install the station's spectrum partitions"""
        partitions = tuple(partitions)
        if self.partitions and self.partitions != partitions:
            raise ValueError(f"Base station {self.station_id} partitions are already configured")
        self.partitions = partitions
        for partition in partitions:
            logger.debug(f"gNB {self.station_id} partition {partition.index}: "
                         f"numerology {partition.numerology}, TxPower {partition.tx_power:.3f} dBm")

    def get_partition(self, index: int) -> SpectrumPartition:
        for partition in self.partitions:
            if partition.index == index:
                return partition
        raise KeyError(f"Base station {self.station_id} has no partition {index}")
