from __future__ import annotations

from enum import Enum
from typing import Dict
from typing import List
from typing import Optional
from typing import Sequence

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field

# Conservative limit of workload units placed on a single node
WORKLOAD_UNITS_PER_NODE = 100
# Hard ceiling on storage convergence steps
MAX_STORAGE_ITERATIONS = 100
# Fraction of usable capacity kept when the operational reserve is on
OPERATIONAL_RESERVE_FRACTION = 0.7

MAX_ITERATIONS_WARNING = "Maximum iteration limit reached; review configuration"


class ExcludeUnsetModel(BaseModel):
    def model_dump(self, *args, **kwargs):
        if "exclude_unset" not in kwargs:
            kwargs["exclude_unset"] = True
        return super().model_dump(*args, **kwargs)

    def model_dump_json(self, *args, **kwargs):
        if "exclude_unset" not in kwargs:
            kwargs["exclude_unset"] = True
        return super().model_dump_json(*args, **kwargs)


###############################################################################
#              Models (structs) for how we describe workloads                 #
###############################################################################


class WorkloadUnit(ExcludeUnsetModel):
    """A homogeneous group of workload units (e.g. identical VMs)

    Each unit asks for the same vCPU, memory and storage and the whole group
    shares a vCPU to physical core consolidation ratio.
    """

    name: str = "workload"
    vcpus: int = Field(default=2, ge=0)
    memory_gib: float = Field(default=4, ge=0)
    storage_gib: float = Field(default=1024, ge=0)
    count: int = Field(default=1, ge=0)
    # A workload with a higher ratio consumes proportionally fewer cores
    core_ratio: float = Field(default=2, gt=0)
    model_config = ConfigDict(frozen=True)


class WorkloadDemand(ExcludeUnsetModel):
    """Aggregate demand of every workload unit that must fit the cluster"""

    vcpu_total: float = Field(default=0, ge=0)
    effective_vcpu: float = Field(default=0, ge=0)
    memory_gib: float = Field(default=0, ge=0)
    storage_gib: float = Field(default=0, ge=0)
    unit_count: int = Field(default=0, ge=0)
    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_workloads(cls, workloads: Sequence[WorkloadUnit]) -> WorkloadDemand:
        return cls(
            vcpu_total=sum(w.vcpus * w.count for w in workloads),
            effective_vcpu=sum(w.vcpus * w.count / w.core_ratio for w in workloads),
            memory_gib=sum(w.memory_gib * w.count for w in workloads),
            storage_gib=sum(w.storage_gib * w.count for w in workloads),
            unit_count=sum(w.count for w in workloads),
        )


###############################################################################
#              Models (structs) for how we describe clusters                  #
###############################################################################


class ResiliencyPolicy(str, Enum):
    """How many simultaneous node failures the cluster survives

    Drives both the minimum node floor (2 * FTT + 1) and the fraction of
    raw storage left after mirroring or erasure coding.
    """

    def __str__(self):
        return str(self.value)

    ftt1 = "ftt1"
    ftt2 = "ftt2"
    ftt3 = "ftt3"

    @property
    def failures_to_tolerate(self) -> int:
        return int(self.value[-1])


class DataReduction(ExcludeUnsetModel):
    dedup: bool = False
    compression: bool = False
    model_config = ConfigDict(frozen=True)


class ClusterConfig(ExcludeUnsetModel):
    """Per node capacity plus the policies applied across the cluster"""

    cores_per_node: int = Field(gt=0)
    memory_per_node_gib: float = Field(gt=0)
    # Disk capacity times disk count, before redundancy or reduction
    raw_storage_per_node_gib: float = Field(gt=0)

    resiliency_policy: ResiliencyPolicy = ResiliencyPolicy.ftt1
    data_reduction: DataReduction = DataReduction(compression=True)
    # Holds back 30% of usable capacity for internal operations
    operational_reserve: bool = False
    max_utilization_percent: float = Field(default=90, gt=0, le=100)
    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_sockets(
        cls, cores_per_socket: int, sockets_per_node: int, **kwargs
    ) -> ClusterConfig:
        return cls(cores_per_node=cores_per_socket * sockets_per_node, **kwargs)


###############################################################################
#              Models (structs) for how we describe hardware                  #
###############################################################################


class Chassis(str, Enum):
    def __str__(self):
        return str(self.value)

    one_u = "1U"
    two_u = "2U"


class DiskFormFactor(str, Enum):
    def __str__(self):
        return str(self.value)

    small = "2.5"
    large = "3.5"


class DriveType(str, Enum):
    def __str__(self):
        return str(self.value)

    ssd = "SSD"
    nvme = "NVMe"
    nl_sas = "NL-SAS"


class Disk(ExcludeUnsetModel):
    """A capacity disk that can populate a node's bays"""

    id: str
    model: str
    capacity_gib: float = Field(gt=0)
    form_factor: DiskFormFactor = DiskFormFactor.small
    drive_type: DriveType = DriveType.ssd
    interface: str = "SAS"
    model_config = ConfigDict(frozen=True, protected_namespaces=())


class DiskCatalog(ExcludeUnsetModel):
    disks: Dict[str, Disk] = {}

    def disk(self, disk_id: str) -> Disk:
        if disk_id not in self.disks:
            raise KeyError(f"Unknown disk {disk_id}")
        return self.disks[disk_id]

    def by_type(self, drive_type: DriveType) -> List[Disk]:
        return sorted(
            (d for d in self.disks.values() if d.drive_type == drive_type),
            key=lambda d: d.capacity_gib,
        )


class NodeShape(ExcludeUnsetModel):
    """A server build: sockets, memory and a homogeneous set of disks

    If disk_count is unset every bay matching the disk form factor is
    populated.
    """

    cores_per_socket: int = Field(default=12, gt=0)
    sockets_per_node: int = Field(default=2, gt=0)
    memory_per_node_gib: float = Field(default=768, gt=0)
    chassis: Chassis = Chassis.two_u
    disk_id: str = "ssd-960"
    disk_count: Optional[int] = Field(default=None, gt=0)
    model_config = ConfigDict(frozen=True)

    @property
    def cores_per_node(self) -> int:
        return self.cores_per_socket * self.sockets_per_node


###############################################################################
#              Models (structs) for what a sizing returns                     #
###############################################################################


class NodesRequiredBy(ExcludeUnsetModel):
    resiliency: int = 0
    workload_count: int = 0
    compute: int = 0
    memory: int = 0
    # Closed form count for storage alone, the convergence loop decides
    storage: int = 0


class Utilization(ExcludeUnsetModel):
    """Percent of each resource consumed at the minimum node count"""

    cpu: float = 0
    memory: float = 0
    storage: float = 0


class MaxWorkloadUnits(ExcludeUnsetModel):
    by_cpu: int = 0
    by_memory: int = 0
    by_storage: int = 0
    overall: int = 0


class StorageOverhead(ExcludeUnsetModel):
    multiplier: int = 2
    percentage: int = 100


class ClusterCapacity(ExcludeUnsetModel):
    cpu_cores: float = 0
    memory_gib: float = 0
    raw_storage_gib: float = 0
    usable_storage_gib: float = 0


class Headroom(ExcludeUnsetModel):
    """Capacity left after demand, negative when the cluster is short"""

    cpu_cores: float = 0
    memory_gib: float = 0
    storage_gib: float = 0


class SizingResult(ExcludeUnsetModel):
    minimum_nodes: int
    recommended_nodes: int
    nodes_required_by: NodesRequiredBy = NodesRequiredBy()
    utilization: Utilization = Utilization()
    warnings: List[str] = []
    max_supportable_workload_units: MaxWorkloadUnits = MaxWorkloadUnits()

    storage_overhead: StorageOverhead = StorageOverhead()
    capacity: ClusterCapacity = ClusterCapacity()
    headroom: Headroom = Headroom()
    # Storage loop increments taken and whether the ceiling was met
    iterations: int = 0
    converged: bool = True


class NodeCountUtilization(ExcludeUnsetModel):
    nodes: int
    cpu: float
    memory: float
    storage: float
    within_limit: bool


###############################################################################
#              Models (structs) for sizing requests on disk                   #
###############################################################################


class ClusterPolicy(ExcludeUnsetModel):
    """Cluster wide policies, applied on top of a node shape"""

    resiliency_policy: ResiliencyPolicy = ResiliencyPolicy.ftt1
    data_reduction: DataReduction = DataReduction(compression=True)
    operational_reserve: bool = False
    max_utilization_percent: float = Field(default=90, gt=0, le=100)


class SizingRequest(ExcludeUnsetModel):
    """What a caller asks to size, as read from a JSON document

    Give either a fully specified ``cluster`` or a ``node`` shape resolved
    through the disk catalog with an optional ``policy``. With neither the
    policy is applied to the model's default cluster.
    """

    model: str = "hci.vsan"
    workloads: List[WorkloadUnit] = []
    cluster: Optional[ClusterConfig] = None
    node: Optional[NodeShape] = None
    policy: Optional[ClusterPolicy] = None
