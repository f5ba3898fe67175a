"""
Metrics Collection Pipeline

Connect, enumerate VMs, resolve the counter once, query every VM and hand
the samples to the report emitter.

Fatal errors (session, inventory, counter resolution) stop the run before
any later step starts. Query errors are recorded against the VM and the
pass continues with the next one.

Author: uldyssian-sh
License: MIT
"""

import asyncio
from typing import List, Optional, Sequence

import structlog

from .config import MonitorConfig
from .counters import CounterCatalogResolver
from .exceptions import QueryError
from .inventory import list_virtual_machines
from .logging_config import timed_operation
from .models import CounterDescriptor, QueryOutcome, RunResult, VirtualMachineRef
from .query import query_metric
from .report import ReportEmitter
from .session import RemoteExecutor, Session, connect

logger = structlog.get_logger(__name__)


async def query_entity(session: Session, entity: VirtualMachineRef, counter: CounterDescriptor,
                       interval_seconds: int, max_samples: int) -> QueryOutcome:
    """Query one VM, turning a query failure into an error outcome"""
    try:
        sample = await query_metric(session, entity, counter.key, interval_seconds, max_samples)
    except QueryError as e:
        logger.error("Metric query failed", vm=entity.name, moid=entity.moid, error=str(e))
        return QueryOutcome(entity=entity, error=e)
    return QueryOutcome(entity=entity, sample=sample)


async def collect_metrics(session: Session, vms: Sequence[VirtualMachineRef],
                          counter: CounterDescriptor, interval_seconds: int = 20,
                          max_samples: int = 1, concurrency: int = 1) -> List[QueryOutcome]:
    """
    Query every VM and return one outcome per VM in inventory order.

    With concurrency above one, up to that many queries run at a time
    against the shared read-only session and counter.
    """
    if concurrency <= 1:
        outcomes = []
        for vm in vms:
            outcomes.append(await query_entity(session, vm, counter, interval_seconds, max_samples))
        return outcomes

    semaphore = asyncio.Semaphore(concurrency)

    async def bounded(vm: VirtualMachineRef) -> QueryOutcome:
        async with semaphore:
            return await query_entity(session, vm, counter, interval_seconds, max_samples)

    return list(await asyncio.gather(*(bounded(vm) for vm in vms)))


async def collect(session: Session, config: MonitorConfig) -> RunResult:
    """Run the inventory, resolution and query steps on an open session"""
    with timed_operation("inventory"):
        vms = await list_virtual_machines(session)

    with timed_operation("counter_resolution", metric=config.metric):
        counter = await CounterCatalogResolver(session).resolve(config.metric)

    with timed_operation("query", vms=len(vms), counter_id=counter.key):
        outcomes = await collect_metrics(
            session, vms, counter,
            interval_seconds=config.interval_seconds,
            max_samples=config.max_samples,
            concurrency=config.concurrency
        )

    return RunResult(counter=counter, outcomes=outcomes)


async def run(config: MonitorConfig, emitter: Optional[ReportEmitter] = None) -> RunResult:
    """
    Execute one collection pass and emit the results.

    Remote calls run on worker threads owned by this pass. When the pass
    is cancelled the in-flight call is abandoned, the session is left to
    expire on the server and the threads are released without joining.

    Raises:
        VCenterConnectionError, VCenterAuthenticationError: Session failed
        InventoryError: VM enumeration failed
        UnknownMetricError: The metric name could not be resolved
    """
    executor = RemoteExecutor(max_workers=config.concurrency)
    try:
        with timed_operation("session"):
            session = await connect(
                config.endpoint_url, config.username, config.password,
                insecure=config.insecure, timeout=config.timeout, executor=executor
            )

        try:
            result = await collect(session, config)
        except asyncio.CancelledError:
            # No remote calls after cancellation
            session.abandon()
            raise
        finally:
            await session.aclose()
    finally:
        executor.shutdown(wait=False)

    emitter = emitter or ReportEmitter.for_counter(result.counter)
    for sample in result.samples:
        emitter.emit_sample(sample)

    logger.info("Collection finished", metric=result.counter.name, **result.summary())
    return result
