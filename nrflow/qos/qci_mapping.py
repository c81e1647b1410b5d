"""
3GPP 5QI (5G QoS Identifier) mapping for the scenario bearers.

This module provides the standardized QoS characteristics of the bearer
types used by the traffic classes, according to 3GPP TS 23.501.
"""

from typing import NamedTuple
from enum import Enum


class ResourceType(Enum):
    """Resource types for 5QI."""
    GBR = "GBR"  # Guaranteed Bit Rate
    NON_GBR = "Non-GBR"  # Non-Guaranteed Bit Rate
    DELAY_CRITICAL_GBR = "Delay Critical GBR"


class BearerType(Enum):
    """EPS bearer classes, valued by their standardized 5QI."""
    GBR_CONV_VOICE = 1
    NGBR_VIDEO_TCP_DEFAULT = 9
    NGBR_LOW_LAT_EMBB = 80


class QoSCharacteristics(NamedTuple):
    """QoS characteristics for a 5QI."""
    resource_type: ResourceType
    priority_level: int
    packet_delay_budget: int  # milliseconds
    packet_error_rate: float
    description: str


class QCIMapping:
    """3GPP 5QI to QoS characteristics mapping."""

    _5QI_MAPPING = {
        1: QoSCharacteristics(
            ResourceType.GBR, 20, 100, 1e-2,
            "Conversational Voice"
        ),
        9: QoSCharacteristics(
            ResourceType.NON_GBR, 90, 300, 1e-6,
            "Video (Buffered Streaming) TCP-based (default bearer)"
        ),
        80: QoSCharacteristics(
            ResourceType.NON_GBR, 68, 10, 1e-6,
            "Low Latency eMBB applications, Augmented Reality"
        ),
    }

    @classmethod
    def get_qos_characteristics(cls, qci: int) -> QoSCharacteristics:
        """Get QoS characteristics for a given 5QI value."""
        if qci not in cls._5QI_MAPPING:
            raise ValueError(f"Unknown 5QI value: {qci}")
        return cls._5QI_MAPPING[qci]

    @classmethod
    def for_bearer(cls, bearer_type: BearerType) -> QoSCharacteristics:
        return cls.get_qos_characteristics(bearer_type.value)

    @classmethod
    def get_supported_qcis(cls) -> list[int]:
        """Get list of supported 5QI values."""
        return list(cls._5QI_MAPPING.keys())

    @classmethod
    def is_gbr_service(cls, qci: int) -> bool:
        """Check if a 5QI corresponds to a GBR service."""
        characteristics = cls.get_qos_characteristics(qci)
        return characteristics.resource_type in [ResourceType.GBR, ResourceType.DELAY_CRITICAL_GBR]
