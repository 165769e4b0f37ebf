import json
import logging
import os
from functools import reduce
from pathlib import Path
from typing import Dict
from typing import List
from typing import Optional
from typing import Tuple
from typing import Union

from cluster_sizing.interface import Chassis
from cluster_sizing.interface import ClusterConfig
from cluster_sizing.interface import Disk
from cluster_sizing.interface import DiskCatalog
from cluster_sizing.interface import DiskFormFactor
from cluster_sizing.interface import DriveType
from cluster_sizing.interface import NodeShape

logger = logging.getLogger(__name__)

default_catalog_path = Path(Path(__file__).parent, "profiles", "disks.json")

# (chassis, disk form factor) -> number of front bays
_chassis_bays: Dict[Tuple[Chassis, DiskFormFactor], int] = {
    (Chassis.one_u, DiskFormFactor.small): 12,
    (Chassis.one_u, DiskFormFactor.large): 4,
    (Chassis.two_u, DiskFormFactor.small): 24,
    (Chassis.two_u, DiskFormFactor.large): 12,
}


def max_disks(chassis: Chassis, form_factor: DiskFormFactor) -> int:
    return _chassis_bays[(chassis, form_factor)]


def validate_disk_combination(
    chassis: Chassis, drive_type: DriveType, form_factor: DiskFormFactor
) -> bool:
    """Large form factor bays only take NL-SAS spinning disks"""
    if (chassis, form_factor) not in _chassis_bays:
        return False
    if form_factor == DiskFormFactor.large and drive_type != DriveType.nl_sas:
        return False
    return True


def merge_catalogs(existing: DiskCatalog, override: DiskCatalog) -> DiskCatalog:
    """Merge two disk catalogs, each disk id must live in exactly one file"""
    merged = dict(existing.disks)
    for disk_id, disk in override.disks.items():
        if disk_id in merged:
            raise ValueError(
                f"Duplicate disk {disk_id}! Only one file should contain a disk"
            )
        merged[disk_id] = disk
    return DiskCatalog(disks=merged)


def load_disks_from_disk(
    paths: Union[List[Path], Optional[str]] = os.environ.get("DISK_CATALOG"),
) -> DiskCatalog:
    if isinstance(paths, str):
        paths = [Path(p) for p in paths.split(os.pathsep) if p]
    if paths is None:
        paths = [default_catalog_path]

    catalogs = [DiskCatalog()]
    for path in paths:
        logger.debug("Loading disks from: %s", path)
        with open(path, encoding="utf-8") as fd:
            catalogs.append(DiskCatalog(**json.load(fd)))

    return reduce(merge_catalogs, catalogs)


def raw_storage_per_node_gib(shape: NodeShape, catalog: DiskCatalog) -> float:
    disk: Disk = catalog.disk(shape.disk_id)
    if not validate_disk_combination(shape.chassis, disk.drive_type, disk.form_factor):
        raise ValueError(
            f"{shape.chassis} chassis cannot hold {disk.form_factor}in "
            f"{disk.drive_type} disk {disk.id}"
        )

    bays = max_disks(shape.chassis, disk.form_factor)
    count = bays if shape.disk_count is None else shape.disk_count
    if count > bays:
        raise ValueError(
            f"{shape.chassis} chassis only has {bays} bays for "
            f"{disk.form_factor}in disks, asked for {count}"
        )
    return disk.capacity_gib * count


def cluster_config_for(
    shape: NodeShape, catalog: Optional[DiskCatalog] = None, **policy
) -> ClusterConfig:
    """Build a ClusterConfig for a node shape, policies pass straight through"""
    if catalog is None:
        catalog = disks.catalog
    return ClusterConfig(
        cores_per_node=shape.cores_per_node,
        memory_per_node_gib=shape.memory_per_node_gib,
        raw_storage_per_node_gib=raw_storage_per_node_gib(shape, catalog),
        **policy,
    )


class DiskCatalogs:
    def __init__(self):
        self._catalog: Optional[DiskCatalog] = None

    def load(self, new_catalog: DiskCatalog) -> None:
        self._catalog = new_catalog

    @property
    def catalog(self) -> DiskCatalog:
        if self._catalog is None:
            self._catalog = load_disks_from_disk()
            logger.info("Loaded %s disks", len(self._catalog.disks))
        return self._catalog

    def disk(self, disk_id: str) -> Disk:
        return self.catalog.disk(disk_id)


disks: DiskCatalogs = DiskCatalogs()
