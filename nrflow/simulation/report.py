"""
Flow report rendering and regression checking.
"""

import logging
import math
import sys
from pathlib import Path
from typing import Optional, TextIO

from ..core.config import RegressionBaseline
from .metrics import AggregateReport, FlowMetrics, FlowRecord, protocol_label

logger = logging.getLogger(__name__)


class ReportWriter:
    """Renders an AggregateReport as the line-oriented flow report"""

    @staticmethod
    def _fixed(value: float) -> str:
        return f"{value:.6f}"

    def render_flow(self, record: FlowRecord, metrics: FlowMetrics) -> str:
        t = record.five_tuple
        lines = [
            f"Flow {record.flow_id} ({t.source_address}:{t.source_port} -> "
            f"{t.destination_address}:{t.destination_port}) proto {protocol_label(t.protocol)}",
            f"  Tx Packets: {record.tx_packets}",
            f"  Tx Bytes:   {record.tx_bytes}",
            f"  TxOffered:  {self._fixed(metrics.tx_offered_mbps)} Mbps",
            f"  Rx Bytes:   {record.rx_bytes}",
            f"  Lost Packets: {metrics.lost_packets}",
        ]
        if metrics.loss_percent is None:
            lines.append("  Packet loss: undefined")
        else:
            lines.append(f"  Packet loss: {self._fixed(metrics.loss_percent)}%")

        if record.rx_packets > 0:
            lines.append(f"  Throughput: {self._fixed(metrics.throughput_mbps)} Mbps")
            lines.append(f"  Mean delay:  {self._fixed(metrics.mean_delay_ms)} ms")
            lines.append(f"  Mean jitter:  {self._fixed(metrics.mean_jitter_ms)} ms")
        else:
            lines.append("  Throughput:  0 Mbps")
            lines.append("  Mean delay:  0 ms")
            lines.append("  Mean jitter: 0 ms")
        lines.append(f"  Rx Packets: {record.rx_packets}")
        return "\n".join(lines) + "\n"

    def render(self, report: AggregateReport) -> str:
        """Full report text: every flow block, then the two aggregate lines"""
        text = "".join(self.render_flow(record, metrics) for record, metrics in report.flows)
        text += f"\n\n  Mean flow throughput: {self._fixed(report.mean_flow_throughput_mbps)}\n"
        text += f"  Mean flow delay: {self._fixed(report.mean_flow_delay_ms)}\n"
        return text

    def write(self, report: AggregateReport, destination: str) -> str:
        """
        Write the rendered report, truncating any existing file

        Args:
            report: Aggregated run results
            destination: Output file path

        Returns:
            The text written

        Raises:
            OSError: If the destination cannot be opened
        """
        text = self.render(report)
        try:
            with open(destination, 'w', newline='\n') as f:
                f.write(text)
        except OSError as e:
            logger.error(f"Can't open file {destination}: {e}")
            raise
        logger.info(f"Flow report written to {destination}")
        return text

    def echo(self, destination: str, stream: Optional[TextIO] = None) -> str:
        """Read the written report back and copy it to the stream (stdout by default)"""
        text = Path(destination).read_text()
        (stream or sys.stdout).write(text)
        return text


class RegressionChecker:
    """Compares aggregate metrics against a known-good baseline"""

    def __init__(self, baseline: Optional[RegressionBaseline] = None):
        self.baseline = baseline

    @staticmethod
    def within_tolerance(value: float, reference: float, relative_tolerance: float) -> bool:
        if math.isnan(value):
            return False
        tolerance = relative_tolerance * abs(reference)
        return reference - tolerance <= value <= reference + tolerance

    def check(self, report: AggregateReport) -> bool:
        """
        Check both aggregates against the baseline

        Returns:
            True without a baseline, otherwise True only when both the mean
            flow throughput and the mean flow delay are within tolerance
        """
        if self.baseline is None:
            logger.debug("No regression baseline configured")
            return True

        b = self.baseline
        throughput_ok = self.within_tolerance(report.mean_flow_throughput_mbps,
                                              b.mean_flow_throughput_mbps, b.relative_tolerance)
        delay_ok = self.within_tolerance(report.mean_flow_delay_ms,
                                         b.mean_flow_delay_ms, b.relative_tolerance)

        if not throughput_ok:
            logger.error(f"Mean flow throughput {report.mean_flow_throughput_mbps:.6f} outside "
                         f"{b.mean_flow_throughput_mbps:.6f} +/- {b.relative_tolerance:.2%}")
        if not delay_ok:
            logger.error(f"Mean flow delay {report.mean_flow_delay_ms:.6f} outside "
                         f"{b.mean_flow_delay_ms:.6f} +/- {b.relative_tolerance:.2%}")
        if throughput_ok and delay_ok:
            logger.info("Regression check passed")
        return throughput_ok and delay_ok
