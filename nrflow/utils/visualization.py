"""
Visualization utilities for 5G NR scenario runs.

Plots per-flow performance and the scenario topology with the attachments
that were made during configuration.
"""

import logging
import os
from typing import Dict, List

import matplotlib.pyplot as plt
import numpy as np
import seaborn as sns

from ..core.config import TrafficClass
from ..simulation.engine import ConfigurationResult, SimulationResults
from ..simulation.metrics import AggregateReport

logger = logging.getLogger(__name__)

CLASS_COLORS = {
    TrafficClass.VOICE: 'tab:red',
    TrafficClass.BROWSING: 'tab:blue'
}


class FlowVisualizer:
    """Visualization for flow statistics and scenario layout."""

    def __init__(self, style: str = 'seaborn-v0_8'):
        try:
            plt.style.use(style)
        except OSError:
            # Fallback to default if seaborn style not available
            plt.style.use('default')
        self.palette = sns.color_palette("Set2", 8)

    def create_report(self, results: SimulationResults, output_dir: str = "./results/") -> List[str]:
        """
        Create every plot for a finished run

        Returns:
            Paths of the generated images
        """
        os.makedirs(output_dir, exist_ok=True)
        paths = [
            self.plot_flow_performance(results.report, output_dir),
            self.plot_topology(results.configuration, output_dir)
        ]
        logger.info(f"Visualization report created in {output_dir}")
        return paths

    def plot_flow_performance(self, report: AggregateReport, output_dir: str) -> str:
        """Bar charts of throughput, delay and loss per flow."""
        df = report.to_dataframe()
        fig, (ax1, ax2, ax3) = plt.subplots(1, 3, figsize=(16, 5))

        if not df.empty:
            labels = [f"{fid}\n:{port}" for fid, port in zip(df['flow_id'], df['destination_port'])]
            x = np.arange(len(df))
            ports = sorted(df['destination_port'].unique())
            colors = [self.palette[ports.index(p) % len(self.palette)] for p in df['destination_port']]

            ax1.bar(x, df['throughput_mbps'], color=colors, edgecolor='black', alpha=0.8)
            ax1.axhline(report.mean_flow_throughput_mbps, color='black', linestyle='--',
                        label=f'Mean: {report.mean_flow_throughput_mbps:.3f} Mbps')
            ax1.set_title('Throughput per Flow')
            ax1.set_ylabel('Throughput (Mbps)')

            ax2.bar(x, df['mean_delay_ms'], color=colors, edgecolor='black', alpha=0.8)
            ax2.axhline(report.mean_flow_delay_ms, color='black', linestyle='--',
                        label=f'Mean: {report.mean_flow_delay_ms:.3f} ms')
            ax2.set_title('Mean Delay per Flow')
            ax2.set_ylabel('Delay (ms)')

            ax3.bar(x, df['loss_percent'].fillna(0.0).astype(float), color=colors, edgecolor='black', alpha=0.8)
            ax3.set_title('Packet Loss per Flow')
            ax3.set_ylabel('Loss (%)')
            ax3.set_ylim(0, 105)

            for ax in (ax1, ax2, ax3):
                ax.set_xticks(x)
                ax.set_xticklabels(labels)
                ax.set_xlabel('Flow ID / destination port')
                ax.grid(True, alpha=0.3)
            ax1.legend()
            ax2.legend()
        else:
            for ax in (ax1, ax2, ax3):
                ax.text(0.5, 0.5, 'No flows recorded', ha='center', va='center',
                        transform=ax.transAxes)

        plt.suptitle('Flow Performance', fontsize=16, fontweight='bold')
        plt.tight_layout()
        path = os.path.join(output_dir, "flow_performance.png")
        plt.savefig(path, dpi=150, bbox_inches='tight')
        plt.close(fig)
        return path

    def plot_topology(self, configuration: ConfigurationResult, output_dir: str) -> str:
        """Plot stations, endpoints and the attachment links."""
        fig, ax = plt.subplots(figsize=(10, 8))

        stations: Dict[int, tuple] = {}
        for station in configuration.stations:
            x, y = station.position[0], station.position[1]
            stations[station.station_id] = (x, y)
            ax.scatter(x, y, s=300, c='black', marker='^', zorder=3)
            ax.annotate(f'gNB {station.station_id}', (x, y), xytext=(6, 6),
                        textcoords='offset points', fontweight='bold')

        for cls in TrafficClass:
            pool = configuration.groups.pool(cls)
            if not pool:
                continue
            xs = [e.position[0] for e in pool]
            ys = [e.position[1] for e in pool]
            ax.scatter(xs, ys, s=60, c=CLASS_COLORS[cls], label=f'{cls.value} UEs',
                       edgecolors='black', zorder=2)

        for endpoint, station in configuration.plan.assignments:
            sx, sy = stations[station.station_id]
            ax.plot([endpoint.position[0], sx], [endpoint.position[1], sy],
                    color=CLASS_COLORS.get(endpoint.traffic_class, 'gray'),
                    alpha=0.5, linewidth=1)

        # Unattached endpoints are ringed
        for endpoint in configuration.endpoints:
            if not endpoint.is_attached():
                ax.scatter(endpoint.position[0], endpoint.position[1], s=160,
                           facecolors='none', edgecolors='gray', linestyle='--', zorder=1)

        ax.set_title('Scenario Topology and Attachments', fontsize=14, fontweight='bold')
        ax.set_xlabel('X Position (m)')
        ax.set_ylabel('Y Position (m)')
        ax.legend()
        ax.grid(True, alpha=0.3)
        ax.set_aspect('equal', adjustable='datalim')

        path = os.path.join(output_dir, "topology.png")
        plt.savefig(path, dpi=150, bbox_inches='tight')
        plt.close(fig)
        return path
