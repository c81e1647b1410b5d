"""
Flow statistics aggregation for 5G NR scenario runs.

This module reduces the per-flow counters collected during a run into
per-flow metrics and the two global figures used for regression checks,
and exports them for further analysis.
"""

import json
import logging
import math
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, NamedTuple, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)

PROTOCOL_LABELS = {6: "TCP", 17: "UDP"}


def protocol_label(protocol: int) -> str:
    """Name of an IP protocol number (TCP/UDP) or the number itself"""
    return PROTOCOL_LABELS.get(protocol, str(protocol))


class FiveTuple(NamedTuple):
    source_address: str
    destination_address: str
    source_port: int
    destination_port: int
    protocol: int


@dataclass(frozen=True)
class FlowRecord:
    """Counters of one flow as reported by the flow monitor"""
    flow_id: int
    five_tuple: FiveTuple
    tx_packets: int
    tx_bytes: int
    rx_packets: int
    rx_bytes: int
    delay_sum: float  # seconds
    jitter_sum: float  # seconds


@dataclass(frozen=True)
class FlowMetrics:
    """Derived per-flow view"""
    flow_id: int
    tx_offered_mbps: float
    throughput_mbps: float
    mean_delay_ms: float
    mean_jitter_ms: float
    lost_packets: int
    loss_percent: Optional[float]  # None when nothing was transmitted
    degenerate: bool = False


@dataclass
class AggregateReport:
    """Per-flow metrics plus the global means of a run"""
    mean_flow_throughput_mbps: float
    mean_flow_delay_ms: float
    duration: float
    flows: List[Tuple[FlowRecord, FlowMetrics]] = field(default_factory=list)

    @property
    def flow_count(self) -> int:
        return len(self.flows)

    def to_dataframe(self) -> pd.DataFrame:
        """One row per flow with 5-tuple, counters and derived metrics"""
        rows = []
        for record, metrics in self.flows:
            t = record.five_tuple
            rows.append({
                'flow_id': record.flow_id,
                'source_address': t.source_address,
                'source_port': t.source_port,
                'destination_address': t.destination_address,
                'destination_port': t.destination_port,
                'protocol': protocol_label(t.protocol),
                'tx_packets': record.tx_packets,
                'tx_bytes': record.tx_bytes,
                'rx_packets': record.rx_packets,
                'rx_bytes': record.rx_bytes,
                'tx_offered_mbps': metrics.tx_offered_mbps,
                'throughput_mbps': metrics.throughput_mbps,
                'mean_delay_ms': metrics.mean_delay_ms,
                'mean_jitter_ms': metrics.mean_jitter_ms,
                'lost_packets': metrics.lost_packets,
                'loss_percent': metrics.loss_percent,
                'degenerate': metrics.degenerate
            })
        return pd.DataFrame(rows, columns=[
            'flow_id', 'source_address', 'source_port', 'destination_address',
            'destination_port', 'protocol', 'tx_packets', 'tx_bytes', 'rx_packets',
            'rx_bytes', 'tx_offered_mbps', 'throughput_mbps', 'mean_delay_ms',
            'mean_jitter_ms', 'lost_packets', 'loss_percent', 'degenerate'
        ])


class FlowStatisticsAggregator:
    """Reduces flow records into per-flow and global metrics"""

    def compute_flow_metrics(self, record: FlowRecord, duration: float) -> FlowMetrics:
        """
        Derive the metrics of a single flow

        Args:
            record: Flow counters
            duration: Active duration of the run in seconds

        Returns:
            FlowMetrics for the record
        """
        if duration <= 0:
            raise ValueError(f"Flow duration must be positive, got {duration}")

        tx_offered = record.tx_bytes * 8.0 / duration / 1e6
        throughput = record.rx_bytes * 8.0 / duration / 1e6

        if record.rx_packets > 0:
            mean_delay = 1000 * record.delay_sum / record.rx_packets
            mean_jitter = 1000 * record.jitter_sum / record.rx_packets
        else:
            mean_delay = 0.0
            mean_jitter = 0.0

        lost = record.tx_packets - record.rx_packets
        if record.tx_packets > 0:
            loss_percent = lost / record.tx_packets * 100
            degenerate = False
        else:
            loss_percent = None
            degenerate = True
            logger.warning(f"Flow {record.flow_id} transmitted no packets, packet loss undefined")

        return FlowMetrics(
            flow_id=record.flow_id,
            tx_offered_mbps=tx_offered,
            throughput_mbps=throughput,
            mean_delay_ms=mean_delay,
            mean_jitter_ms=mean_jitter,
            lost_packets=lost,
            loss_percent=loss_percent,
            degenerate=degenerate
        )

    def aggregate(self, records: Sequence[FlowRecord], duration: float) -> AggregateReport:
        """
        Compute per-flow metrics and the mean flow throughput/delay

        Both means divide by the total number of flows, so flows that
        received nothing pull the means down. With no flows at all both
        means are NaN.

        Args:
            records: Flow records in any order
            duration: Active duration of the run in seconds

        Returns:
            AggregateReport with flows ordered by flow id
        """
        if duration <= 0:
            raise ValueError(f"Flow duration must be positive, got {duration}")

        ordered = sorted(records, key=lambda r: r.flow_id)
        flows = [(record, self.compute_flow_metrics(record, duration)) for record in ordered]

        if not flows:
            logger.warning("No flows recorded, mean flow throughput and delay are undefined")
            return AggregateReport(math.nan, math.nan, duration, flows)

        throughputs = np.array([m.throughput_mbps for _, m in flows])
        delays = np.array([m.mean_delay_ms for _, m in flows])
        mean_throughput = float(throughputs.sum() / len(flows))
        mean_delay = float(delays.sum() / len(flows))

        logger.info(f"Aggregated {len(flows)} flows: mean throughput {mean_throughput:.6f} Mbps, "
                    f"mean delay {mean_delay:.6f} ms")
        return AggregateReport(mean_throughput, mean_delay, duration, flows)


def summarize_by_port(report: AggregateReport) -> pd.DataFrame:
    """Per destination port (one port per traffic class) flow statistics"""
    df = report.to_dataframe()
    if df.empty:
        return pd.DataFrame(columns=['destination_port', 'flows', 'mean_throughput_mbps',
                                     'mean_delay_ms', 'lost_packets'])

    summary = df.groupby('destination_port').agg(
        flows=('flow_id', 'count'),
        mean_throughput_mbps=('throughput_mbps', 'mean'),
        mean_delay_ms=('mean_delay_ms', 'mean'),
        lost_packets=('lost_packets', 'sum')
    ).reset_index()
    return summary


def export_results(report: AggregateReport, output_file: str):
    """Export per-flow results to CSV or JSON"""
    if output_file.endswith('.csv'):
        report.to_dataframe().to_csv(output_file, index=False)
    elif output_file.endswith('.json'):
        export_data: Dict[str, Any] = {
            'mean_flow_throughput_mbps': report.mean_flow_throughput_mbps,
            'mean_flow_delay_ms': report.mean_flow_delay_ms,
            'duration': report.duration,
            'flows': [
                {'record': {**asdict(record), 'five_tuple': record.five_tuple._asdict()},
                 'metrics': asdict(metrics)}
                for record, metrics in report.flows
            ]
        }
        with open(output_file, 'w') as f:
            json.dump(export_data, f, indent=2, default=str)
    else:
        raise ValueError(f"Unsupported file format: {output_file}")

    logger.info(f"Flow results exported to {output_file}")
