"""
Configuration classes for the scenario framework
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple


DIRECTIONS = ("UL", "DL")
MODES = ("BEAM_SHAPE", "COVERAGE_AREA", "UE_COVERAGE")

# mmWave-adjacent carrier range accepted for every partition
MIN_CARRIER_FREQUENCY = 2e9  # Hz
MAX_CARRIER_FREQUENCY = 100e9  # Hz

MIN_TOTAL_ENDPOINTS = 5
MIN_BASE_STATIONS = 2


class ConfigurationError(ValueError):
    """Raised when a scenario cannot be built from the given parameters"""


class TrafficClass(Enum):
    """Application traffic classes carried by the scenario"""
    VOICE = "voice"
    BROWSING = "browsing"


@dataclass(frozen=True)
class PartitionConfig:
    """Spectrum partition (bandwidth part) parameters"""
    center_frequency: float  # Hz
    bandwidth: float  # Hz
    numerology: int
    channel_model: str = "UMi_StreetCanyon"


@dataclass(frozen=True)
class RegressionBaseline:
    """Known-good aggregate values a run is compared against"""
    mean_flow_throughput_mbps: float
    mean_flow_delay_ms: float
    relative_tolerance: float = 1e-4  # 0.01%


def _default_partitions() -> Tuple[PartitionConfig, ...]:
    return (
        PartitionConfig(center_frequency=28e9, bandwidth=50e6, numerology=4),
        PartitionConfig(center_frequency=28.2e9, bandwidth=50e6, numerology=2),
    )


@dataclass(frozen=True)
class ScenarioConfig:
    """Immutable scenario parameters, validated on construction"""
    # Operator inputs
    direction: str = "DL"  # radio environment map direction
    mode: str = "COVERAGE_AREA"
    rem: bool = True

    # Topology
    num_gnb: int = 3
    num_ue_per_gnb: int = 2
    total_ues_call: int = 2  # voice quota across all stations
    total_ues_browse: int = 3  # browsing quota across all stations
    grid_rows: int = 1
    bs_spacing: float = 10.0  # meters
    bs_height: float = 10.0  # meters
    ut_height: float = 1.5  # meters
    scenario_length: float = 3.0  # meters
    scenario_height: float = 3.0  # meters

    # Traffic
    udp_packet_size_browsing: int = 25  # bytes
    udp_packet_size_voice_call: int = 50  # bytes
    lambda_browsing: int = 10000  # packets per second
    lambda_voice_call: int = 10000  # packets per second
    port_browsing: int = 1234
    port_voice_call: int = 1235

    # Timing
    simulation_time: float = 0.1  # seconds
    app_start_time: float = 0.01  # seconds

    # Radio resources
    partitions: Tuple[PartitionConfig, ...] = field(default_factory=_default_partitions)
    total_tx_power: float = 35.0  # dBm
    partition_for_browsing: int = 0
    partition_for_voice_call: int = 1

    # Output
    output_dir: str = "./"
    sim_tag: str = "default"
    random_seed: Optional[int] = 1
    log_level: str = "INFO"
    baseline: Optional[RegressionBaseline] = None

    def __post_init__(self):
        # Lists coming from parsed files are frozen into tuples
        if not isinstance(self.partitions, tuple):
            object.__setattr__(self, 'partitions', tuple(self.partitions))
        self.validate()

    def validate(self):
        """
        Check the hard scenario preconditions

        Raises:
            ConfigurationError: If the scenario is misconfigured
        """
        if self.direction not in DIRECTIONS:
            raise ConfigurationError(f"Unknown direction '{self.direction}', expected one of {DIRECTIONS}")
        if self.mode not in MODES:
            raise ConfigurationError(f"Unknown mode '{self.mode}', expected one of {MODES}")

        if self.num_gnb < MIN_BASE_STATIONS:
            raise ConfigurationError(f"At least {MIN_BASE_STATIONS} base stations required, got {self.num_gnb}")
        if self.num_total_ue < MIN_TOTAL_ENDPOINTS:
            raise ConfigurationError(
                f"At least {MIN_TOTAL_ENDPOINTS} endpoints required, got {self.num_total_ue}")
        if self.grid_rows < 1 or self.num_gnb % self.grid_rows != 0:
            raise ConfigurationError(
                f"Grid rows ({self.grid_rows}) must evenly divide the base station count ({self.num_gnb})")
        if self.total_ues_call < 0 or self.total_ues_browse < 0:
            raise ConfigurationError("Traffic class quotas must be non-negative")

        if len(self.partitions) < 1:
            raise ConfigurationError("At least one spectrum partition is required")
        frequencies = [p.center_frequency for p in self.partitions]
        if len(set(frequencies)) != len(frequencies):
            raise ConfigurationError(f"Partition carrier frequencies must differ: {frequencies}")
        for partition in self.partitions:
            if not MIN_CARRIER_FREQUENCY <= partition.center_frequency <= MAX_CARRIER_FREQUENCY:
                raise ConfigurationError(
                    f"Carrier frequency {partition.center_frequency / 1e9:.3f} GHz outside "
                    f"[{MIN_CARRIER_FREQUENCY / 1e9:.0f}, {MAX_CARRIER_FREQUENCY / 1e9:.0f}] GHz")
            if partition.bandwidth < 0:
                raise ConfigurationError(f"Negative partition bandwidth: {partition.bandwidth}")
            if partition.numerology < 0:
                raise ConfigurationError(f"Negative numerology: {partition.numerology}")

        for cls in TrafficClass:
            index = self.partition_for(cls)
            if not 0 <= index < len(self.partitions):
                raise ConfigurationError(
                    f"{cls.value} traffic routed to partition {index}, "
                    f"but only {len(self.partitions)} partitions exist")

        if self.port_browsing == self.port_voice_call:
            raise ConfigurationError("Browsing and voice traffic must use different ports")
        if self.simulation_time <= 0 or not 0 <= self.app_start_time < self.simulation_time:
            raise ConfigurationError(
                f"Application start ({self.app_start_time}s) must fall inside the "
                f"simulation time ({self.simulation_time}s)")
        if self.lambda_browsing <= 0 or self.lambda_voice_call <= 0:
            raise ConfigurationError("Packet rates must be positive")

    @property
    def num_total_ue(self) -> int:
        return self.num_gnb * self.num_ue_per_gnb

    @property
    def grid_columns(self) -> int:
        return math.ceil(self.num_gnb / self.grid_rows)

    @property
    def flow_duration(self) -> float:
        """Active window in which applications exchange traffic"""
        return self.simulation_time - self.app_start_time

    def quota_for(self, traffic_class: TrafficClass) -> int:
        if traffic_class is TrafficClass.VOICE:
            return self.total_ues_call
        return self.total_ues_browse

    def packet_size_for(self, traffic_class: TrafficClass) -> int:
        if traffic_class is TrafficClass.VOICE:
            return self.udp_packet_size_voice_call
        return self.udp_packet_size_browsing

    def packet_interval_for(self, traffic_class: TrafficClass) -> float:
        if traffic_class is TrafficClass.VOICE:
            return 1.0 / self.lambda_voice_call
        return 1.0 / self.lambda_browsing

    def port_for(self, traffic_class: TrafficClass) -> int:
        if traffic_class is TrafficClass.VOICE:
            return self.port_voice_call
        return self.port_browsing

    def partition_for(self, traffic_class: TrafficClass) -> int:
        if traffic_class is TrafficClass.VOICE:
            return self.partition_for_voice_call
        return self.partition_for_browsing
