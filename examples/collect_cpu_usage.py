#!/usr/bin/env python3
"""
Library Usage Example

Drives the collection steps one by one instead of through the CLI:
connect, list VMs, resolve two counters against one catalog, and query
each VM in parallel.

Author: uldyssian-sh
License: MIT
"""

import asyncio
import sys
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

from vsphere_vm_metrics import (
    CounterCatalogResolver,
    ReportEmitter,
    VMMetricsError,
    collect_metrics,
    connect,
    list_virtual_machines,
    load_config
)
from vsphere_vm_metrics.logging_config import setup_logging


async def main() -> None:
    config = load_config()

    with await connect(config.endpoint_url, config.username, config.password,
                       insecure=config.insecure) as session:
        vms = await list_virtual_machines(session)
        print(f"Found {len(vms)} virtual machines")

        resolver = CounterCatalogResolver(session)
        for metric in ("cpu.usagemhz.average", "mem.usage.average"):
            counter = await resolver.resolve(metric)
            emitter = ReportEmitter.for_counter(counter)

            outcomes = await collect_metrics(session, vms, counter, concurrency=8)
            for outcome in outcomes:
                if outcome.ok:
                    emitter.emit_sample(outcome.sample)
                else:
                    print(f"  {outcome.entity.name}: {outcome.error}", file=sys.stderr)


if __name__ == "__main__":
    setup_logging("WARNING")
    try:
        asyncio.run(main())
    except VMMetricsError as e:
        print(f"Error during {e.step}: {e}", file=sys.stderr)
        sys.exit(1)
