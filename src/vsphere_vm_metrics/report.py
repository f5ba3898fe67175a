"""
Metric Report Output

Writes one human-readable line per VM and value series.

Author: uldyssian-sh
License: MIT
"""

import sys
from typing import Optional, Sequence, TextIO

from .models import CounterDescriptor, MetricSample

# Labels for the counters people usually ask for
COUNTER_LABELS = {
    "cpu.usagemhz.average": "CPU Usage (MHz)",
    "cpu.usage.average": "CPU Usage (%)",
    "mem.usage.average": "Memory Usage (%)",
    "mem.consumed.average": "Memory Consumed (KB)",
}


def counter_label(counter: CounterDescriptor) -> str:
    if counter.name in COUNTER_LABELS:
        return COUNTER_LABELS[counter.name]
    return f"{counter.name} ({counter.unit})"


class ReportEmitter:
    """Formats extracted values for the operator"""

    def __init__(self, label: str = COUNTER_LABELS["cpu.usagemhz.average"],
                 stream: Optional[TextIO] = None):
        self.label = label
        self.stream = stream
        self.lines_written = 0

    @classmethod
    def for_counter(cls, counter: CounterDescriptor, stream: Optional[TextIO] = None) -> "ReportEmitter":
        return cls(counter_label(counter), stream)

    def format(self, entity_name: str, values: Sequence[int]) -> str:
        return f"VM: {entity_name}, {self.label}: {', '.join(str(v) for v in values)}"

    def emit(self, entity_name: str, values: Sequence[int]) -> None:
        stream = self.stream or sys.stdout
        stream.write(self.format(entity_name, values) + "\n")
        stream.flush()
        self.lines_written += 1

    def emit_sample(self, sample: MetricSample) -> None:
        """One line per non-empty series of the sample"""
        for values in sample.series:
            if values:
                self.emit(sample.entity_name, values)
