from cluster_sizing.interface import ClusterConfig
from cluster_sizing.interface import DataReduction
from cluster_sizing.interface import ResiliencyPolicy
from cluster_sizing.interface import SizingResult
from cluster_sizing.interface import WorkloadDemand
from cluster_sizing.models import ClusterSizingModel
from cluster_sizing.models.common import compute_minimum_nodes


class VsanClusterSizingModel(ClusterSizingModel):
    @staticmethod
    def size(demand: WorkloadDemand, config: ClusterConfig) -> SizingResult:
        return compute_minimum_nodes(demand, config)

    @staticmethod
    def description():
        return "Hyper-converged vSAN style cluster sizing model"

    @staticmethod
    def default_config() -> ClusterConfig:
        # Dual socket 12 core 2U node with 24 x 960 GiB SSD
        return ClusterConfig.from_sockets(
            cores_per_socket=12,
            sockets_per_node=2,
            memory_per_node_gib=768,
            raw_storage_per_node_gib=24 * 960,
            resiliency_policy=ResiliencyPolicy.ftt1,
            data_reduction=DataReduction(dedup=False, compression=True),
            operational_reserve=False,
            max_utilization_percent=90,
        )


vsan_cluster_sizing_model = VsanClusterSizingModel()
