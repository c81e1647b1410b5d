"""Core configuration components."""

from .config import (ScenarioConfig, PartitionConfig, RegressionBaseline,
                     ConfigurationError, TrafficClass)

__all__ = ['ScenarioConfig', 'PartitionConfig', 'RegressionBaseline',
           'ConfigurationError', 'TrafficClass']
