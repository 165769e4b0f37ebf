import pytest

from cluster_sizing.hardware import disks
from cluster_sizing.interface import ClusterConfig
from cluster_sizing.interface import DataReduction
from cluster_sizing.interface import ResiliencyPolicy


@pytest.fixture
def plain_config() -> ClusterConfig:
    """1000 GiB raw per node with no data reduction or reserve"""
    return ClusterConfig(
        cores_per_node=24,
        memory_per_node_gib=768,
        raw_storage_per_node_gib=1000,
        resiliency_policy=ResiliencyPolicy.ftt1,
        data_reduction=DataReduction(),
        operational_reserve=False,
        max_utilization_percent=90,
    )


@pytest.fixture
def restore_disks():
    """Put the packaged disk catalog back after a test swaps it out"""
    original = disks.catalog
    yield disks
    disks.load(original)
