"""
Transmit power allocation across spectrum partitions.

The total power budget is split in proportion to each partition's share of
the total bandwidth. The same split is applied to every base station.
"""

import logging
import math
from typing import List, Sequence

import numpy as np

from ..core.config import ConfigurationError, PartitionConfig
from .gnb import SpectrumPartition

logger = logging.getLogger(__name__)


class PowerAllocator:
    """Bandwidth-proportional power split"""

    def __init__(self, total_tx_power: float):
        """
        Args:
            total_tx_power: Total transmit power budget in dBm
        """
        if total_tx_power < 0:
            raise ConfigurationError(f"Negative power budget: {total_tx_power} dBm")
        self.total_tx_power = total_tx_power

    @property
    def linear_budget(self) -> float:
        """Budget in linear units (mW)"""
        return 10 ** (self.total_tx_power / 10)

    def power_for(self, bandwidth: float, total_bandwidth: float) -> float:
        """Power in dBm for one partition given the precomputed total bandwidth"""
        if total_bandwidth <= 0:
            raise ConfigurationError(f"Total bandwidth must be positive, got {total_bandwidth}")
        if bandwidth < 0:
            raise ConfigurationError(f"Negative partition bandwidth: {bandwidth}")
        if bandwidth == 0:
            # Silent partition
            return -math.inf
        return float(10 * np.log10((bandwidth / total_bandwidth) * self.linear_budget))

    def allocate(self, partitions: Sequence[PartitionConfig]) -> List[SpectrumPartition]:
        """
        Derive the configured partitions with their transmit power

        Args:
            partitions: Partition parameters in index order

        Returns:
            SpectrumPartition list, index i for partitions[i]
        """
        total_bandwidth = sum(p.bandwidth for p in partitions)

        allocated = []
        for index, partition in enumerate(partitions):
            tx_power = self.power_for(partition.bandwidth, total_bandwidth)
            allocated.append(SpectrumPartition(
                index=index,
                center_frequency=partition.center_frequency,
                bandwidth=partition.bandwidth,
                numerology=partition.numerology,
                tx_power=tx_power,
                channel_model=partition.channel_model
            ))
            logger.info(f"Partition {index}: {partition.center_frequency / 1e9:.2f} GHz, "
                        f"{partition.bandwidth / 1e6:.1f} MHz, numerology {partition.numerology}, "
                        f"TxPower {tx_power:.3f} dBm")

        return allocated
