import json
import os

import pytest

from cluster_sizing.hardware import cluster_config_for
from cluster_sizing.hardware import default_catalog_path
from cluster_sizing.hardware import disks
from cluster_sizing.hardware import load_disks_from_disk
from cluster_sizing.hardware import max_disks
from cluster_sizing.hardware import merge_catalogs
from cluster_sizing.hardware import raw_storage_per_node_gib
from cluster_sizing.hardware import validate_disk_combination
from cluster_sizing.interface import Chassis
from cluster_sizing.interface import Disk
from cluster_sizing.interface import DiskCatalog
from cluster_sizing.interface import DiskFormFactor
from cluster_sizing.interface import DriveType
from cluster_sizing.interface import NodeShape
from cluster_sizing.interface import ResiliencyPolicy


def _write_catalog(path, *catalog_disks):
    data = {"disks": {d.id: d.model_dump(mode="json") for d in catalog_disks}}
    with open(path, "w", encoding="utf-8") as fd:
        json.dump(data, fd)
    return path


def test_packaged_catalog():
    catalog = load_disks_from_disk([default_catalog_path])
    assert len(catalog.disks) == 25

    ssd = catalog.disk("ssd-960")
    assert ssd.capacity_gib == 960
    assert ssd.drive_type == DriveType.ssd
    assert ssd.form_factor == DiskFormFactor.small

    assert disks.disk("nvme-30720").capacity_gib == 30720


def test_unknown_disk():
    with pytest.raises(KeyError):
        disks.disk("floppy-1")


def test_by_type_sorted_by_capacity():
    nl_sas = disks.catalog.by_type(DriveType.nl_sas)
    assert [d.capacity_gib for d in nl_sas] == sorted(d.capacity_gib for d in nl_sas)
    assert nl_sas[0].id == "nlsas-1024"
    assert all(d.form_factor == DiskFormFactor.large for d in nl_sas)


def test_chassis_bays():
    assert max_disks(Chassis.one_u, DiskFormFactor.small) == 12
    assert max_disks(Chassis.one_u, DiskFormFactor.large) == 4
    assert max_disks(Chassis.two_u, DiskFormFactor.small) == 24
    assert max_disks(Chassis.two_u, DiskFormFactor.large) == 12


def test_large_bays_only_take_nl_sas():
    assert validate_disk_combination(
        Chassis.two_u, DriveType.nl_sas, DiskFormFactor.large
    )
    assert validate_disk_combination(Chassis.one_u, DriveType.ssd, DiskFormFactor.small)
    assert not validate_disk_combination(
        Chassis.two_u, DriveType.nvme, DiskFormFactor.large
    )
    assert not validate_disk_combination(
        Chassis.one_u, DriveType.ssd, DiskFormFactor.large
    )


def test_raw_storage_fills_every_bay_by_default():
    shape = NodeShape(chassis=Chassis.two_u, disk_id="ssd-960")
    assert raw_storage_per_node_gib(shape, disks.catalog) == 24 * 960

    shape = NodeShape(chassis=Chassis.one_u, disk_id="nlsas-8192")
    assert raw_storage_per_node_gib(shape, disks.catalog) == 4 * 8192


def test_raw_storage_explicit_count():
    shape = NodeShape(chassis=Chassis.one_u, disk_id="nvme-3840", disk_count=6)
    assert raw_storage_per_node_gib(shape, disks.catalog) == 6 * 3840


def test_raw_storage_too_many_disks():
    shape = NodeShape(chassis=Chassis.one_u, disk_id="ssd-1920", disk_count=13)
    with pytest.raises(ValueError, match="12 bays"):
        raw_storage_per_node_gib(shape, disks.catalog)


def test_raw_storage_invalid_combination():
    catalog = DiskCatalog(
        disks={
            "nvme-lff": Disk(
                id="nvme-lff",
                model="NVMe 3.5in",
                capacity_gib=8000,
                form_factor=DiskFormFactor.large,
                drive_type=DriveType.nvme,
            )
        }
    )
    with pytest.raises(ValueError, match="cannot hold"):
        raw_storage_per_node_gib(NodeShape(disk_id="nvme-lff"), catalog)


def test_cluster_config_for_node_shape():
    shape = NodeShape(
        cores_per_socket=16,
        sockets_per_node=2,
        memory_per_node_gib=1024,
        chassis=Chassis.two_u,
        disk_id="ssd-3840",
        disk_count=10,
    )
    config = cluster_config_for(shape, resiliency_policy=ResiliencyPolicy.ftt2)

    assert config.cores_per_node == 32
    assert config.memory_per_node_gib == 1024
    assert config.raw_storage_per_node_gib == 38400
    assert config.resiliency_policy == ResiliencyPolicy.ftt2
    assert config.max_utilization_percent == 90


def test_merge_rejects_duplicates():
    disk = Disk(id="ssd-x", model="SSD X", capacity_gib=100)
    left = DiskCatalog(disks={"ssd-x": disk})
    with pytest.raises(ValueError, match="Duplicate disk"):
        merge_catalogs(left, DiskCatalog(disks={"ssd-x": disk}))


def test_load_and_merge_files(tmp_path):
    first = _write_catalog(
        tmp_path / "first.json", Disk(id="ssd-a", model="SSD A", capacity_gib=100)
    )
    second = _write_catalog(
        tmp_path / "second.json",
        Disk(
            id="hdd-b",
            model="HDD B",
            capacity_gib=4000,
            form_factor=DiskFormFactor.large,
            drive_type=DriveType.nl_sas,
        ),
    )

    catalog = load_disks_from_disk([first, second])
    assert sorted(catalog.disks) == ["hdd-b", "ssd-a"]

    # Environment style configuration separates paths with os.pathsep
    catalog = load_disks_from_disk(f"{first}{os.pathsep}{second}")
    assert catalog.disk("hdd-b").drive_type == DriveType.nl_sas


def test_swap_catalog(tmp_path, restore_disks):
    path = _write_catalog(
        tmp_path / "lab.json", Disk(id="lab-ssd", model="Lab SSD", capacity_gib=500)
    )
    restore_disks.load(load_disks_from_disk([path]))

    assert restore_disks.disk("lab-ssd").capacity_gib == 500
    with pytest.raises(KeyError):
        restore_disks.disk("ssd-960")
