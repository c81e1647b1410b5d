#!/usr/bin/env python3
"""
Basic 5G NR Scenario Example

This script demonstrates the basic usage of the traffic-class framework:
configure the default two-band scenario, run it on the loopback backend and
inspect the attachment plan and the flow statistics.
"""

import sys
import os
import logging

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from nrflow.core.config import ScenarioConfig, TrafficClass
from nrflow.qos.qci_mapping import QCIMapping
from nrflow.simulation.engine import SimulationEngine
from nrflow.simulation.metrics import summarize_by_port
from nrflow.simulation.report import ReportWriter


def main():
    """Run basic scenario example"""

    # Setup logging
    logging.basicConfig(level=logging.INFO)
    logger = logging.getLogger(__name__)

    logger.info("Starting basic 5G NR scenario example")

    output_dir = "examples/results"
    os.makedirs(output_dir, exist_ok=True)

    # Create configuration
    config = ScenarioConfig(
        direction="DL",
        num_gnb=3,
        num_ue_per_gnb=2,
        random_seed=42,
        output_dir=output_dir,
        sim_tag="basic_simulation"
    )

    engine = SimulationEngine(config)
    results = engine.run()
    configuration = results.configuration

    # Print bearer information per traffic class
    logger.info("Traffic class routes:")
    for cls in TrafficClass:
        route = configuration.routes.get(cls)
        if route is None:
            continue
        qos = route.bearer.qos
        logger.info(f"  {cls.value}: 5QI {route.bearer.bearer_type.value} on partition "
                    f"{route.partition_index}, priority={qos.priority_level}, "
                    f"delay budget={qos.packet_delay_budget}ms, "
                    f"GBR={QCIMapping.is_gbr_service(route.bearer.bearer_type.value)}")

    logger.info("Attachments:")
    for endpoint_id, station_id in configuration.plan.as_mapping().items():
        logger.info(f"  UE {endpoint_id} -> gNB {station_id}")

    report = results.report
    logger.info(f"Flows: {report.flow_count}")
    logger.info(f"Mean flow throughput: {report.mean_flow_throughput_mbps:.6f} Mbps")
    logger.info(f"Mean flow delay: {report.mean_flow_delay_ms:.6f} ms")
    logger.info("Per-port summary:\n" + summarize_by_port(report).to_string(index=False))

    report_file = os.path.join(output_dir, config.sim_tag)
    ReportWriter().write(report, report_file)

    logger.info(f"Report saved to {report_file}")
    logger.info("Basic scenario example completed successfully!")


if __name__ == "__main__":
    main()
