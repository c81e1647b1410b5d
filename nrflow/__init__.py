"""
5G NR Traffic-Class Scenario Framework

This package configures a two-band 5G NR scenario (traffic-class tagging,
quota-bounded attachment, bearer routing and power allocation), drives a
network run, and turns the resulting per-flow counters into a report with
regression checks.
"""

__version__ = "1.0.0"
__author__ = "Carlos Lopes"
