"""
Quality of Service (QoS) module for the 5G NR scenario.

This module implements the 3GPP 5QI bearer characteristics and the
traffic-class to partition routing.
"""

from .qci_mapping import QCIMapping, BearerType
from .router import ResourceRouter, TrafficClassRoute, BearerDescriptor, PacketFilter

__all__ = ['QCIMapping', 'BearerType', 'ResourceRouter', 'TrafficClassRoute',
           'BearerDescriptor', 'PacketFilter']
