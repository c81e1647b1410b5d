#!/usr/bin/env python3
"""
Main scenario runner for the 5G NR traffic-class framework.

This script configures the two-band scenario, runs it, writes the flow report
to <output_dir>/<sim_tag>, echoes it, and optionally checks the aggregates
against a regression baseline.

Usage:
    python run_simulation.py
    python run_simulation.py --direction UL --scenario dense
    python run_simulation.py --config scenarios/default.yaml --plot
    python run_simulation.py --help
"""

import argparse
import dataclasses
import logging
import os
import sys
from pathlib import Path

import jsonschema

# Add the repository root to the Python path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from nrflow.core.config import ConfigurationError, RegressionBaseline, DIRECTIONS, MODES
from nrflow.simulation.engine import SimulationEngine
from nrflow.simulation.metrics import export_results, summarize_by_port
from nrflow.simulation.report import ReportWriter, RegressionChecker
from nrflow.utils.config import ConfigManager
from nrflow.utils.visualization import FlowVisualizer

logger = logging.getLogger("run_simulation")


def parse_arguments(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description='5G NR traffic-class scenario: attachment, routing and flow statistics',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s --direction DL --mode COVERAGE_AREA
  %(prog)s --scenario dense --sim-tag dense
  %(prog)s --baseline-throughput 56.25856 --baseline-delay 0.553292
  %(prog)s --create-scenario default --config-output scenarios/default.yaml
        """
    )

    # Scenario source
    group = parser.add_mutually_exclusive_group()
    group.add_argument('--config', '-c', type=str,
                       help='Configuration file path (JSON or YAML)')
    group.add_argument('--scenario', '-s', type=str,
                       choices=ConfigManager.get_available_scenarios(),
                       help='Use predefined scenario (default: default)')
    group.add_argument('--create-scenario', type=str,
                       choices=ConfigManager.get_available_scenarios(),
                       help='Create a new scenario configuration file')

    # Operator inputs
    parser.add_argument('--direction', type=str, choices=DIRECTIONS,
                        help='Direction of the radio environment map (traffic is always downlink)')
    parser.add_argument('--mode', type=str, choices=MODES,
                        help='Radio environment map mode')
    parser.add_argument('--rem', dest='rem', action='store_true', default=None,
                        help='Enable the radio environment map toggle')
    parser.add_argument('--no-rem', dest='rem', action='store_false',
                        help='Disable the radio environment map toggle')

    # Output
    parser.add_argument('--output-dir', type=str,
                        help='Directory of the flow report (overrides config)')
    parser.add_argument('--sim-tag', type=str,
                        help='File name of the flow report (overrides config)')
    parser.add_argument('--config-output', type=str,
                        help='Output path for created scenario (used with --create-scenario)')
    parser.add_argument('--export', type=str,
                        help='Export per-flow results to a .csv or .json file')
    parser.add_argument('--plot', action='store_true',
                        help='Generate flow performance and topology plots in the output directory')

    # Regression
    parser.add_argument('--baseline-throughput', type=float,
                        help='Expected mean flow throughput in Mbps')
    parser.add_argument('--baseline-delay', type=float,
                        help='Expected mean flow delay in ms')
    parser.add_argument('--tolerance', type=float, default=1e-4,
                        help='Relative tolerance of the regression check (default: 0.0001)')

    parser.add_argument('--verbose', '-v', action='store_true',
                        help='Enable verbose output')

    args = parser.parse_args(argv)
    if (args.baseline_throughput is None) != (args.baseline_delay is None):
        parser.error('--baseline-throughput and --baseline-delay must be given together')
    return args


def setup_logging(level: str):
    logging.basicConfig(
        level=getattr(logging, level),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s'
    )
    logging.getLogger().setLevel(getattr(logging, level))


def load_scenario(args):
    """Build the scenario configuration from a file or predefined scenario plus CLI overrides."""
    if args.config:
        logger.info(f"Loading configuration from: {args.config}")
        config = ConfigManager.load_config(args.config)
    else:
        scenario = args.scenario or "default"
        logger.info(f"Using predefined scenario: {scenario}")
        config = ConfigManager.config_from_dict(ConfigManager.get_scenario_config(scenario))

    overrides = {}
    if args.direction is not None:
        overrides['direction'] = args.direction
    if args.mode is not None:
        overrides['mode'] = args.mode
    if args.rem is not None:
        overrides['rem'] = args.rem
    if args.output_dir is not None:
        overrides['output_dir'] = args.output_dir
    if args.sim_tag is not None:
        overrides['sim_tag'] = args.sim_tag
    if args.baseline_throughput is not None:
        overrides['baseline'] = RegressionBaseline(
            mean_flow_throughput_mbps=args.baseline_throughput,
            mean_flow_delay_ms=args.baseline_delay,
            relative_tolerance=args.tolerance
        )
    if args.verbose:
        overrides['log_level'] = 'DEBUG'

    # replace() re-runs validation
    return dataclasses.replace(config, **overrides) if overrides else config


def create_scenario_config(scenario: str, args) -> bool:
    """Create a new scenario configuration file."""
    output_file = args.config_output or f"scenarios/{scenario}.yaml"
    Path(output_file).parent.mkdir(parents=True, exist_ok=True)

    print(f"Creating {scenario} scenario configuration...")
    try:
        ConfigManager.create_default_config(output_file, scenario)
    except OSError as e:
        logger.error(f"Error creating configuration: {e}")
        return False

    print(f"Configuration created: {output_file}")
    print("You can now modify this file and run it with:")
    print(f"  python run_simulation.py --config {output_file}")
    return True


def run_scenario(config, args) -> bool:
    """Run the scenario, write and echo the report, and apply the regression check."""
    engine = SimulationEngine(config)
    results = engine.run()
    report = results.report

    report_file = os.path.join(config.output_dir, config.sim_tag)
    writer = ReportWriter()
    try:
        Path(config.output_dir).mkdir(parents=True, exist_ok=True)
        writer.write(report, report_file)
    except OSError as e:
        logger.error(f"Flow report not written: {e}")
        return False
    writer.echo(report_file)

    if args.verbose:
        print(summarize_by_port(report).to_string(index=False))
    logger.info(f"Execution time: {results.execution_time:.2f} seconds")

    if args.export:
        try:
            export_results(report, args.export)
        except (OSError, ValueError) as e:
            logger.error(f"Error exporting results: {e}")
            return False

    if args.plot:
        FlowVisualizer().create_report(results, config.output_dir)

    return RegressionChecker(config.baseline).check(report)


def main(argv=None) -> int:
    """Main entry point, returns the process exit status."""
    args = parse_arguments(argv)
    setup_logging('DEBUG' if args.verbose else 'INFO')

    if args.create_scenario:
        return 0 if create_scenario_config(args.create_scenario, args) else 1

    try:
        config = load_scenario(args)
    except (ConfigurationError, jsonschema.ValidationError) as e:
        logger.error(f"Invalid scenario configuration: {e}")
        return 1
    except (FileNotFoundError, ValueError) as e:
        logger.error(f"Error loading configuration: {e}")
        return 1

    logging.getLogger().setLevel(getattr(logging, config.log_level))

    try:
        success = run_scenario(config, args)
    except ConfigurationError as e:
        logger.error(f"Invalid scenario configuration: {e}")
        return 1

    return 0 if success else 1


if __name__ == '__main__':
    sys.exit(main())
