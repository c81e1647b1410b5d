"""
Simulation module for the 5G NR scenario.

This module provides the scenario engine, the loopback network backend,
flow statistics aggregation and the flow report.
"""

from .engine import SimulationEngine, SimulationResults, ConfigurationResult
from .backend import LoopbackNetwork
from .metrics import FlowRecord, FiveTuple, FlowMetrics, AggregateReport, FlowStatisticsAggregator
from .report import ReportWriter, RegressionChecker

__all__ = ['SimulationEngine', 'SimulationResults', 'ConfigurationResult', 'LoopbackNetwork',
           'FlowRecord', 'FiveTuple', 'FlowMetrics', 'AggregateReport',
           'FlowStatisticsAggregator', 'ReportWriter', 'RegressionChecker']
