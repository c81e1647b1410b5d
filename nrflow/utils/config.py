"""
Configuration management for 5G NR scenarios.

This module provides utilities for loading and validating scenario configurations.
"""

import copy
import json
import yaml
from typing import Dict, Any
from pathlib import Path
import jsonschema

from ..core.config import (ScenarioConfig, PartitionConfig, RegressionBaseline,
                           DIRECTIONS, MODES)


_TRAFFIC_CLASS_SCHEMA = {
    "type": "object",
    "properties": {
        "quota": {"type": "integer", "minimum": 0},
        "packet_size": {"type": "integer", "minimum": 1},
        "packet_rate": {"type": "number", "exclusiveMinimum": 0},
        "port": {"type": "integer", "minimum": 1, "maximum": 65535},
        "partition": {"type": "integer", "minimum": 0}
    },
    "additionalProperties": False
}


class ConfigManager:
    """Manages scenario configuration loading and validation."""

    # Configuration schema for validation
    CONFIG_SCHEMA = {
        "type": "object",
        "properties": {
            "simulation": {
                "type": "object",
                "properties": {
                    "simulation_time": {"type": "number", "exclusiveMinimum": 0},
                    "app_start_time": {"type": "number", "minimum": 0},
                    "output_dir": {"type": "string"},
                    "sim_tag": {"type": "string", "minLength": 1},
                    "random_seed": {"type": ["integer", "null"]},
                    "log_level": {"type": "string", "enum": ["DEBUG", "INFO", "WARNING", "ERROR"]}
                },
                "required": ["simulation_time"],
                "additionalProperties": False
            },
            "scenario": {
                "type": "object",
                "properties": {
                    "direction": {"type": "string", "enum": list(DIRECTIONS)},
                    "mode": {"type": "string", "enum": list(MODES)},
                    "rem": {"type": "boolean"}
                },
                "additionalProperties": False
            },
            "topology": {
                "type": "object",
                "properties": {
                    "num_gnb": {"type": "integer", "minimum": 1},
                    "num_ue_per_gnb": {"type": "integer", "minimum": 1},
                    "grid_rows": {"type": "integer", "minimum": 1},
                    "bs_spacing": {"type": "number", "minimum": 0},
                    "bs_height": {"type": "number", "minimum": 0},
                    "ut_height": {"type": "number", "minimum": 0},
                    "scenario_length": {"type": "number", "minimum": 0},
                    "scenario_height": {"type": "number", "minimum": 0}
                },
                "required": ["num_gnb", "num_ue_per_gnb"],
                "additionalProperties": False
            },
            "traffic": {
                "type": "object",
                "properties": {
                    "voice": _TRAFFIC_CLASS_SCHEMA,
                    "browsing": _TRAFFIC_CLASS_SCHEMA
                },
                "additionalProperties": False
            },
            "spectrum": {
                "type": "object",
                "properties": {
                    "total_tx_power": {"type": "number", "minimum": 0},
                    "partitions": {
                        "type": "array",
                        "minItems": 1,
                        "items": {
                            "type": "object",
                            "properties": {
                                "center_frequency": {"type": "number", "exclusiveMinimum": 0},
                                "bandwidth": {"type": "number", "minimum": 0},
                                "numerology": {"type": "integer", "minimum": 0, "maximum": 6},
                                "channel_model": {"type": "string"}
                            },
                            "required": ["center_frequency", "bandwidth", "numerology"],
                            "additionalProperties": False
                        }
                    }
                },
                "additionalProperties": False
            },
            "regression": {
                "type": "object",
                "properties": {
                    "mean_flow_throughput_mbps": {"type": "number"},
                    "mean_flow_delay_ms": {"type": "number"},
                    "relative_tolerance": {"type": "number", "minimum": 0}
                },
                "required": ["mean_flow_throughput_mbps", "mean_flow_delay_ms"],
                "additionalProperties": False
            }
        },
        "required": ["simulation", "topology"],
        "additionalProperties": False
    }

    @classmethod
    def load_config(cls, config_file: str) -> ScenarioConfig:
        """
        Load configuration from file.

        Args:
            config_file: Path to configuration file (JSON or YAML)

        Returns:
            Validated ScenarioConfig

        Raises:
            FileNotFoundError: If config file doesn't exist
            ValueError: If the file format is unsupported
            jsonschema.ValidationError: If config doesn't match the schema
            ConfigurationError: If the scenario preconditions fail
        """
        config_path = Path(config_file)
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_file}")

        # Load configuration based on file extension
        with open(config_path, 'r') as f:
            if config_path.suffix.lower() in ['.yaml', '.yml']:
                config_data = yaml.safe_load(f)
            elif config_path.suffix.lower() == '.json':
                config_data = json.load(f)
            else:
                raise ValueError(f"Unsupported configuration file format: {config_path.suffix}")

        return cls.config_from_dict(config_data)

    @classmethod
    def validate_config(cls, config_data: Dict[str, Any]):
        """
        Validate configuration against schema.

        Raises:
            jsonschema.ValidationError: If config is invalid
        """
        jsonschema.validate(config_data, cls.CONFIG_SCHEMA)

    @classmethod
    def config_from_dict(cls, config_data: Dict[str, Any]) -> ScenarioConfig:
        """Validate a configuration dictionary and build the ScenarioConfig"""
        cls.validate_config(config_data)

        defaults = ScenarioConfig()
        sim_config = config_data.get('simulation', {})
        scenario_config = config_data.get('scenario', {})
        topology_config = config_data.get('topology', {})
        traffic_config = config_data.get('traffic', {})
        voice = traffic_config.get('voice', {})
        browsing = traffic_config.get('browsing', {})
        spectrum_config = config_data.get('spectrum', {})
        regression_config = config_data.get('regression')

        if 'partitions' in spectrum_config:
            partitions = tuple(
                PartitionConfig(
                    center_frequency=p['center_frequency'],
                    bandwidth=p['bandwidth'],
                    numerology=p['numerology'],
                    channel_model=p.get('channel_model', 'UMi_StreetCanyon')
                )
                for p in spectrum_config['partitions']
            )
        else:
            partitions = defaults.partitions

        baseline = None
        if regression_config is not None:
            baseline = RegressionBaseline(
                mean_flow_throughput_mbps=regression_config['mean_flow_throughput_mbps'],
                mean_flow_delay_ms=regression_config['mean_flow_delay_ms'],
                relative_tolerance=regression_config.get('relative_tolerance', 1e-4)
            )

        return ScenarioConfig(
            # Operator inputs
            direction=scenario_config.get('direction', defaults.direction),
            mode=scenario_config.get('mode', defaults.mode),
            rem=scenario_config.get('rem', defaults.rem),

            # Topology
            num_gnb=topology_config['num_gnb'],
            num_ue_per_gnb=topology_config['num_ue_per_gnb'],
            grid_rows=topology_config.get('grid_rows', defaults.grid_rows),
            bs_spacing=topology_config.get('bs_spacing', defaults.bs_spacing),
            bs_height=topology_config.get('bs_height', defaults.bs_height),
            ut_height=topology_config.get('ut_height', defaults.ut_height),
            scenario_length=topology_config.get('scenario_length', defaults.scenario_length),
            scenario_height=topology_config.get('scenario_height', defaults.scenario_height),

            # Traffic
            total_ues_call=voice.get('quota', defaults.total_ues_call),
            total_ues_browse=browsing.get('quota', defaults.total_ues_browse),
            udp_packet_size_voice_call=voice.get('packet_size', defaults.udp_packet_size_voice_call),
            udp_packet_size_browsing=browsing.get('packet_size', defaults.udp_packet_size_browsing),
            lambda_voice_call=voice.get('packet_rate', defaults.lambda_voice_call),
            lambda_browsing=browsing.get('packet_rate', defaults.lambda_browsing),
            port_voice_call=voice.get('port', defaults.port_voice_call),
            port_browsing=browsing.get('port', defaults.port_browsing),
            partition_for_voice_call=voice.get('partition', defaults.partition_for_voice_call),
            partition_for_browsing=browsing.get('partition', defaults.partition_for_browsing),

            # Timing
            simulation_time=sim_config['simulation_time'],
            app_start_time=sim_config.get('app_start_time', defaults.app_start_time),

            # Radio resources
            partitions=partitions,
            total_tx_power=spectrum_config.get('total_tx_power', defaults.total_tx_power),

            # Output
            output_dir=sim_config.get('output_dir', defaults.output_dir),
            sim_tag=sim_config.get('sim_tag', defaults.sim_tag),
            random_seed=sim_config.get('random_seed', defaults.random_seed),
            log_level=sim_config.get('log_level', defaults.log_level),
            baseline=baseline
        )

    @classmethod
    def create_default_config(cls, config_file: str, scenario: str = "default"):
        """
        Create a default configuration file.

        Args:
            config_file: Output configuration file path
            scenario: Scenario type ("default", "dense")
        """
        config = cls.get_scenario_config(scenario)

        # Save configuration
        config_path = Path(config_file)
        with open(config_path, 'w') as f:
            if config_path.suffix.lower() in ['.yaml', '.yml']:
                yaml.dump(config, f, default_flow_style=False, indent=2)
            else:
                json.dump(config, f, indent=2)

    @classmethod
    def get_scenario_config(cls, scenario: str) -> Dict[str, Any]:
        if scenario == "default":
            return cls._create_default_scenario_config()
        elif scenario == "dense":
            return cls._create_dense_scenario_config()
        else:
            raise ValueError(f"Unknown scenario: {scenario}")

    @classmethod
    def _create_default_scenario_config(cls) -> Dict[str, Any]:
        """Three gNBs, two UEs each, two 50 MHz bands at 28 GHz."""
        return {
            "simulation": {
                "simulation_time": 0.1,
                "app_start_time": 0.01,
                "output_dir": "./",
                "sim_tag": "default",
                "random_seed": 1,
                "log_level": "INFO"
            },
            "scenario": {
                "direction": "DL",
                "mode": "COVERAGE_AREA",
                "rem": True
            },
            "topology": {
                "num_gnb": 3,
                "num_ue_per_gnb": 2,
                "grid_rows": 1,
                "bs_spacing": 10.0,
                "bs_height": 10.0,
                "ut_height": 1.5,
                "scenario_length": 3.0,
                "scenario_height": 3.0
            },
            "traffic": {
                "voice": {"quota": 2, "packet_size": 50, "packet_rate": 10000, "port": 1235, "partition": 1},
                "browsing": {"quota": 3, "packet_size": 25, "packet_rate": 10000, "port": 1234, "partition": 0}
            },
            "spectrum": {
                "total_tx_power": 35.0,
                "partitions": [
                    {"center_frequency": 28e9, "bandwidth": 50e6, "numerology": 4},
                    {"center_frequency": 28.2e9, "bandwidth": 50e6, "numerology": 2}
                ]
            }
        }

    @classmethod
    def _create_dense_scenario_config(cls) -> Dict[str, Any]:
        """Nine UEs per gNB with the default quotas, leaving most UEs unattached."""
        config = cls.merge_configs(cls._create_default_scenario_config(), {
            "simulation": {"sim_tag": "dense"},
            "topology": {"num_ue_per_gnb": 9}
        })
        return config

    @classmethod
    def get_available_scenarios(cls) -> list[str]:
        """Get list of available predefined scenarios."""
        return ["default", "dense"]

    @classmethod
    def merge_configs(cls, base_config: Dict, override_config: Dict) -> Dict:
        """
        Merge two configuration dictionaries

        Args:
            base_config: Base configuration
            override_config: Override values

        Returns:
            Merged configuration
        """
        def deep_merge(base: Dict, override: Dict) -> Dict:
            result = copy.deepcopy(base)

            for key, value in override.items():
                if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                    result[key] = deep_merge(result[key], value)
                else:
                    result[key] = value

            return result

        return deep_merge(base_config, override_config)
