import logging
import math
from typing import Dict
from typing import List
from typing import Sequence

import numpy as np

from cluster_sizing.interface import ClusterCapacity
from cluster_sizing.interface import ClusterConfig
from cluster_sizing.interface import DataReduction
from cluster_sizing.interface import Headroom
from cluster_sizing.interface import MAX_ITERATIONS_WARNING
from cluster_sizing.interface import MAX_STORAGE_ITERATIONS
from cluster_sizing.interface import MaxWorkloadUnits
from cluster_sizing.interface import NodeCountUtilization
from cluster_sizing.interface import NodesRequiredBy
from cluster_sizing.interface import OPERATIONAL_RESERVE_FRACTION
from cluster_sizing.interface import ResiliencyPolicy
from cluster_sizing.interface import SizingResult
from cluster_sizing.interface import StorageOverhead
from cluster_sizing.interface import Utilization
from cluster_sizing.interface import WORKLOAD_UNITS_PER_NODE
from cluster_sizing.interface import WorkloadDemand


logger = logging.getLogger(__name__)


# Fraction of raw capacity left after mirroring or erasure coding
_RESILIENCY_FRACTION: Dict[ResiliencyPolicy, float] = {
    ResiliencyPolicy.ftt1: 0.5,  # RAID-1
    ResiliencyPolicy.ftt2: 0.33,  # RAID-6
    ResiliencyPolicy.ftt3: 0.25,  # triple mirroring
}


def ftt_level(policy: ResiliencyPolicy) -> int:
    return policy.failures_to_tolerate


def resiliency_fraction(policy: ResiliencyPolicy) -> float:
    return _RESILIENCY_FRACTION[policy]


def nodes_for_resiliency(policy: ResiliencyPolicy) -> int:
    """A majority of nodes must survive FTT simultaneous failures"""
    return 2 * ftt_level(policy) + 1


def storage_overhead(policy: ResiliencyPolicy) -> StorageOverhead:
    ftt = ftt_level(policy)
    return StorageOverhead(multiplier=ftt + 1, percentage=ftt * 100)


def reduction_multiplier(data_reduction: DataReduction) -> float:
    # Deduplication on its own earns nothing, only paired with compression
    if data_reduction.dedup and data_reduction.compression:
        return 2.0
    if data_reduction.compression:
        return 1.5
    return 1.0


def compute_usable_capacity_per_cluster(
    config: ClusterConfig, node_count: int
) -> float:
    """Usable storage in GiB across node_count nodes

    Raw capacity shrinks by the resiliency fraction, grows by the data
    reduction multiplier and finally loses the operational reserve.
    """
    if node_count <= 0:
        return 0.0
    return _apply_storage_policies(config, config.raw_storage_per_node_gib * node_count)


def _apply_storage_policies(config: ClusterConfig, raw):
    # raw may be a numpy array of per node count totals
    usable = raw * resiliency_fraction(config.resiliency_policy)
    usable *= reduction_multiplier(config.data_reduction)
    if config.operational_reserve:
        usable *= OPERATIONAL_RESERVE_FRACTION
    return usable


def storage_consumption_gib(demand: WorkloadDemand, config: ClusterConfig) -> float:
    """Stored data inflated by one extra copy per tolerated failure"""
    return demand.storage_gib * storage_overhead(config.resiliency_policy).multiplier


def storage_utilization(
    demand: WorkloadDemand, config: ClusterConfig, node_count: int
) -> float:
    consumed = storage_consumption_gib(demand, config)
    if consumed == 0:
        return 0.0
    usable = compute_usable_capacity_per_cluster(config, node_count)
    if usable <= 0:
        return math.inf
    return consumed / usable * 100


def _ceil_nodes(needed: float, per_node: float) -> int:
    if needed <= 0:
        return 0
    return int(math.ceil(needed / per_node))


def nodes_for_storage(demand: WorkloadDemand, config: ClusterConfig) -> int:
    """Nodes storage alone would need to stay under the utilization ceiling"""
    per_node = compute_usable_capacity_per_cluster(config, 1)
    allowed_per_node = per_node * config.max_utilization_percent / 100
    return _ceil_nodes(storage_consumption_gib(demand, config), allowed_per_node)


def _format_limit(limit: float) -> str:
    if float(limit).is_integer():
        return f"{limit:g}"
    return repr(float(limit))


def _over_limit_warning(resource: str, utilization: float, limit: float) -> str:
    return (
        f"{resource} utilization ({utilization:.1f}%) exceeds recommended "
        f"maximum of {_format_limit(limit)}%"
    )


def _max_units(capacity: float, consumed: float, unit_count: int, cap: int) -> int:
    # A resource nothing consumes never limits how many units fit
    if consumed <= 0:
        return cap
    units = capacity / consumed * unit_count
    # Vanishingly small consumption overflows, treat it as unconstrained
    if not math.isfinite(units):
        return cap
    return int(math.floor(units))


# pylint: disable=too-many-locals
def compute_minimum_nodes(
    demand: WorkloadDemand, config: ClusterConfig
) -> SizingResult:
    """Smallest node count meeting every resource dimension at once

    Compute, memory, resiliency and workload count each give a closed form
    floor. Storage is then grown one node at a time until utilization
    falls under the ceiling, giving up after MAX_STORAGE_ITERATIONS steps
    with a warning rather than looping forever on unreachable targets.
    """
    warnings: List[str] = []
    limit = config.max_utilization_percent

    required = NodesRequiredBy(
        resiliency=nodes_for_resiliency(config.resiliency_policy),
        workload_count=_ceil_nodes(demand.unit_count, WORKLOAD_UNITS_PER_NODE),
        compute=_ceil_nodes(demand.effective_vcpu, config.cores_per_node),
        memory=_ceil_nodes(demand.memory_gib, config.memory_per_node_gib),
        storage=nodes_for_storage(demand, config),
    )

    nodes = max(
        required.resiliency,
        required.workload_count,
        required.compute,
        required.memory,
    )

    iterations = 0
    converged = False
    storage_pct = storage_utilization(demand, config, nodes)
    while iterations < MAX_STORAGE_ITERATIONS:
        if storage_pct <= limit:
            converged = True
            break
        nodes += 1
        iterations += 1
        storage_pct = storage_utilization(demand, config, nodes)
    else:
        converged = storage_pct <= limit

    if not converged:
        logger.warning(
            "Storage did not converge after %s iterations at %s nodes (%s%%)",
            iterations,
            nodes,
            storage_pct,
        )
        warnings.append(MAX_ITERATIONS_WARNING)

    cpu_cores = nodes * config.cores_per_node
    memory_gib = nodes * config.memory_per_node_gib
    usable_gib = compute_usable_capacity_per_cluster(config, nodes)
    consumed_gib = storage_consumption_gib(demand, config)

    utilization = Utilization(
        cpu=demand.effective_vcpu / cpu_cores * 100,
        memory=demand.memory_gib / memory_gib * 100,
        storage=storage_pct,
    )
    for resource, value in (
        ("CPU", utilization.cpu),
        ("Memory", utilization.memory),
        ("Storage", utilization.storage),
    ):
        if value > limit:
            warnings.append(_over_limit_warning(resource, value, limit))

    count_cap = nodes * WORKLOAD_UNITS_PER_NODE
    by_cpu = _max_units(cpu_cores, demand.effective_vcpu, demand.unit_count, count_cap)
    by_memory = _max_units(memory_gib, demand.memory_gib, demand.unit_count, count_cap)
    by_storage = _max_units(usable_gib, consumed_gib, demand.unit_count, count_cap)

    logger.debug(
        "For (effective_vcpu, memory_gib, storage_gib) = (%s, %s, %s) "
        "need %s nodes (required_by=%s, iterations=%s)",
        demand.effective_vcpu,
        demand.memory_gib,
        demand.storage_gib,
        nodes,
        required,
        iterations,
    )

    return SizingResult(
        minimum_nodes=nodes,
        recommended_nodes=nodes + 1,
        nodes_required_by=required,
        utilization=utilization,
        warnings=warnings,
        max_supportable_workload_units=MaxWorkloadUnits(
            by_cpu=by_cpu,
            by_memory=by_memory,
            by_storage=by_storage,
            overall=min(by_cpu, by_memory, by_storage, count_cap),
        ),
        storage_overhead=storage_overhead(config.resiliency_policy),
        capacity=ClusterCapacity(
            cpu_cores=cpu_cores,
            memory_gib=memory_gib,
            raw_storage_gib=nodes * config.raw_storage_per_node_gib,
            usable_storage_gib=usable_gib,
        ),
        headroom=Headroom(
            cpu_cores=cpu_cores - demand.effective_vcpu,
            memory_gib=memory_gib - demand.memory_gib,
            storage_gib=usable_gib - consumed_gib,
        ),
        iterations=iterations,
        converged=converged,
    )


def utilization_curve(
    demand: WorkloadDemand, config: ClusterConfig, node_counts: Sequence[int]
) -> List[NodeCountUtilization]:
    """Utilization of every resource across a range of cluster sizes"""
    nodes = np.asarray(node_counts, dtype=float)
    if nodes.size == 0:
        return []
    if np.any(nodes <= 0):
        raise ValueError(f"Node counts must be positive, got {list(node_counts)}")

    usable = _apply_storage_policies(config, config.raw_storage_per_node_gib * nodes)
    cpu = demand.effective_vcpu / (nodes * config.cores_per_node) * 100
    memory = demand.memory_gib / (nodes * config.memory_per_node_gib) * 100
    storage = storage_consumption_gib(demand, config) / usable * 100
    within = np.maximum.reduce([cpu, memory, storage]) <= config.max_utilization_percent

    return [
        NodeCountUtilization(
            nodes=int(n),
            cpu=float(c),
            memory=float(m),
            storage=float(s),
            within_limit=bool(w),
        )
        for n, c, m, s, w in zip(nodes, cpu, memory, storage, within)
    ]
