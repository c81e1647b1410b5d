"""
Network module for the 5G NR scenario.

This module implements base stations, endpoints, the grid topology builder,
traffic-class assignment, attachment planning and power allocation.
"""

from .gnb import BaseStation, SpectrumPartition
from .ue import Endpoint
from .topology import GridScenario
from .assignment import TrafficClassAssigner, ClassGroups, AttachmentPlan, plan_attachment
from .power import PowerAllocator

__all__ = ['BaseStation', 'SpectrumPartition', 'Endpoint', 'GridScenario',
           'TrafficClassAssigner', 'ClassGroups', 'AttachmentPlan', 'plan_attachment',
           'PowerAllocator']
