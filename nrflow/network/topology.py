"""
Grid topology builder for the 5G NR scenario.

Base stations are laid out on a rows x columns grid; endpoints are dropped
uniformly in a small area around the grid origin.
"""

import logging
from typing import List, Optional, Tuple

import numpy as np

from .gnb import BaseStation
from .interfaces import TopologyBuilder
from .ue import Endpoint

logger = logging.getLogger(__name__)


class GridScenario(TopologyBuilder):
    """Grid scenario with single-sector base stations"""

    def __init__(self, scenario_length: float = 3.0, scenario_height: float = 3.0,
                 random_seed: Optional[int] = None):
        self.scenario_length = scenario_length
        self.scenario_height = scenario_height
        self.rng = np.random.default_rng(random_seed)

    def create_scenario(self, rows: int, columns: int, spacing: float,
                        heights: Tuple[float, float],
                        num_endpoints: int) -> Tuple[List[Endpoint], List[BaseStation]]:
        """
        Create base stations and endpoints

        Args:
            rows: Grid rows
            columns: Grid columns
            spacing: Horizontal and vertical distance between stations in meters
            heights: (base station height, endpoint height) in meters
            num_endpoints: Number of endpoints to create

        Returns:
            (endpoints, base_stations), both in creation order
        """
        bs_height, ut_height = heights

        stations = []
        for i in range(rows * columns):
            row = i // columns
            col = i % columns
            position = (col * spacing, row * spacing, bs_height)
            stations.append(BaseStation(station_id=i, position=position))
            logger.debug(f"Created gNB {i} at position {position}")

        # Endpoint ids continue after the station ids
        xs = self.rng.uniform(0, self.scenario_length, size=num_endpoints)
        ys = self.rng.uniform(0, self.scenario_height, size=num_endpoints)
        endpoints = []
        for j in range(num_endpoints):
            position = (float(xs[j]), float(ys[j]), ut_height)
            endpoints.append(Endpoint(endpoint_id=len(stations) + j, position=position))

        logger.info(f"Creating {len(endpoints)} user terminals and {len(stations)} gNBs")
        return endpoints, stations
