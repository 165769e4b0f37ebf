from typing import List
from typing import Sequence

from cluster_sizing.interface import ClusterConfig
from cluster_sizing.interface import NodeCountUtilization
from cluster_sizing.interface import SizingResult
from cluster_sizing.interface import WorkloadDemand
from cluster_sizing.models.common import utilization_curve


class ClusterSizingModel:
    """Stateless interface for defining a cluster sizing model

    To define a sizing model you must implement one pure function, `size`,
    which turns the aggregate demand of a set of workloads and a cluster
    configuration into a SizingResult. The model must not keep state between
    calls: callers re-run it from scratch whenever any input changes.

    Models may also provide a description and a default configuration that
    callers fall back to when they only know their workloads.
    """

    def __init__(self):
        pass

    @staticmethod
    def size(demand: WorkloadDemand, config: ClusterConfig) -> SizingResult:
        """Given demand and a cluster configuration return the sizing

        This is the only required method on this interface.
        """
        raise NotImplementedError

    @staticmethod
    def utilization_curve(
        demand: WorkloadDemand, config: ClusterConfig, node_counts: Sequence[int]
    ) -> List[NodeCountUtilization]:
        """Optional per node count utilization, used for charts"""
        return utilization_curve(demand, config, node_counts)

    @staticmethod
    def description() -> str:
        """ Optional description of the model """
        return "No description"

    @staticmethod
    def default_config() -> ClusterConfig:
        """Optional configuration used when the caller supplies none"""
        raise NotImplementedError
