# -*- coding: utf-8 -*-
import logging
from typing import Any
from typing import Dict
from typing import List
from typing import Optional
from typing import Sequence

from cluster_sizing.hardware import cluster_config_for
from cluster_sizing.hardware import DiskCatalogs
from cluster_sizing.hardware import disks
from cluster_sizing.interface import ClusterConfig
from cluster_sizing.interface import NodeCountUtilization
from cluster_sizing.interface import SizingRequest
from cluster_sizing.interface import SizingResult
from cluster_sizing.interface import WorkloadDemand
from cluster_sizing.interface import WorkloadUnit
from cluster_sizing.models import ClusterSizingModel
from cluster_sizing.models.vsan import vsan_cluster_sizing_model

logger = logging.getLogger(__name__)


class ClusterPlanner:
    def __init__(self):
        self._disks: DiskCatalogs = disks
        self._models: Dict[str, ClusterSizingModel] = {}

    def register_model(self, name: str, model: ClusterSizingModel) -> None:
        self._models[name] = model

    @property
    def models(self) -> Sequence[str]:
        return sorted(self._models.keys())

    def model(self, name: str) -> ClusterSizingModel:
        if name not in self._models:
            raise KeyError(f"Unknown model {name}, known models: {self.models}")
        return self._models[name]

    def plan(
        self,
        model_name: str,
        workloads: Sequence[WorkloadUnit],
        config: Optional[ClusterConfig] = None,
    ) -> SizingResult:
        model = self.model(model_name)
        if config is None:
            config = model.default_config()

        demand = WorkloadDemand.from_workloads(workloads)
        logger.debug(
            "Sizing %s workload units with model=%s config=%s",
            demand.unit_count,
            model_name,
            config,
        )
        return model.size(demand, config)

    def resolve_config(self, request: SizingRequest) -> ClusterConfig:
        """Turn the cluster, node and policy sections of a request into one
        ClusterConfig, falling back to the model's default cluster
        """
        if request.cluster is not None:
            if request.node is not None or request.policy is not None:
                raise ValueError(
                    "A sizing request takes either a cluster or a node shape "
                    "with policy, not both"
                )
            return request.cluster

        policy: Dict[str, Any] = {}
        if request.policy is not None:
            policy = {
                f: getattr(request.policy, f) for f in request.policy.model_fields_set
            }

        if request.node is not None:
            return cluster_config_for(
                request.node, catalog=self._disks.catalog, **policy
            )
        return self.model(request.model).default_config().model_copy(update=policy)

    def plan_request(self, request: SizingRequest) -> SizingResult:
        return self.plan(
            model_name=request.model,
            workloads=request.workloads,
            config=self.resolve_config(request),
        )

    def utilization_curve(
        self,
        model_name: str,
        workloads: Sequence[WorkloadUnit],
        node_counts: Sequence[int],
        config: Optional[ClusterConfig] = None,
    ) -> List[NodeCountUtilization]:
        model = self.model(model_name)
        if config is None:
            config = model.default_config()
        return model.utilization_curve(
            WorkloadDemand.from_workloads(workloads), config, node_counts
        )


planner = ClusterPlanner()
planner.register_model(name="hci.vsan", model=vsan_cluster_sizing_model)
