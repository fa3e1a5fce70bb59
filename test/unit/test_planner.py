###############################################################################
#
# MIT License
#
# Copyright (c) 2025 Advanced Micro Devices, Inc.
#
# Permission is hereby granted, free of charge, to any person obtaining a copy
# of this software and associated documentation files (the "Software"), to deal
# in the Software without restriction, including without limitation the rights
# to use, copy, modify, merge, publish, distribute, sublicense, and/or sell
# copies of the Software, and to permit persons to whom the Software is
# furnished to do so, subject to the following conditions:
#
# The above copyright notice and this permission notice shall be included in all
# copies or substantial portions of the Software.
#
# THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND, EXPRESS OR
# IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY,
# FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL THE
# AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER
# LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM,
# OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN THE
# SOFTWARE.
#
###############################################################################
import subprocess
from unittest.mock import MagicMock

import pytest

from guestnic.affinity import AffinityPlanner, parse_max_combined, partition_cpus
from guestnic.connection.inband import CommandArtifact
from guestnic.enums import EventCategory, EventPriority, ExecutionStatus, SystemInteractionLevel

ETHTOOL_OUTPUT = """Channel parameters for ens4:
Pre-set maximums:
RX:             n/a
TX:             n/a
Other:          n/a
Combined:       4
Current hardware settings:
RX:             n/a
TX:             n/a
Other:          n/a
Combined:       1
"""

GVE_PATH = "devices/pci0000:00/0000:00:08.0"
GVE_PATH_2 = "devices/pci0000:00/0000:00:09.0"


def commands(shell) -> list[str]:
    return [call.kwargs["command"] for call in shell.run_command.call_args_list]


@pytest.fixture
def metadata_client():
    client = MagicMock()
    client.is_multinic_accelerator_platform.return_value = False
    return client


@pytest.fixture
def planner(local_shell, config, logger, metadata_client):
    return AffinityPlanner(
        local_shell, config=config, metadata_client=metadata_client, logger=logger
    )


def add_virtio_nic(sysfs, device="virtio0", interface="ens4"):
    sysfs.mkdir(f"bus/virtio/drivers/virtio_net/{device}/net/{interface}")


def add_irq(procfs, irq: int, action: str, hint=None):
    procfs.mkdir(f"irq/{irq}/{action}")
    procfs.write(f"irq/{irq}/smp_affinity", "ffff")
    if hint is not None:
        procfs.write(f"irq/{irq}/affinity_hint", hint)


def add_gve_nic(sysfs, procfs, pci_path, interface, numa_node, irqs, queues=2):
    device = sysfs.add_pci_device(pci_path, "1ae0", "0042")
    sysfs.write(f"{pci_path}/numa_node", f"{numa_node}\n")
    for irq in irqs:
        sysfs.mkdir(f"{pci_path}/msi_irqs/{irq}")
        procfs.mkdir(f"irq/{irq}")
    driver = sysfs.mkdir("bus/pci/drivers/gve")
    sysfs.symlink(f"{pci_path}/driver", driver)
    sysfs.symlink(f"class/net/{interface}/device", device)
    for queue in range(queues):
        sysfs.mkdir(f"class/net/{interface}/queues/rx-{queue}")
        sysfs.mkdir(f"class/net/{interface}/queues/tx-{queue}")


def add_cpus(sysfs, online="0-15", nodes=("0-7", "8-15")):
    sysfs.write("devices/system/cpu/online", f"{online}\n")
    sysfs.write("devices/system/cpu/possible", f"{online}\n")
    for node_id, cpulist in enumerate(nodes):
        sysfs.write(f"devices/system/node/node{node_id}/cpulist", f"{cpulist}\n")


def test_partition_cpus_tail_absorbs_remainder():
    assert partition_cpus(list(range(1, 15)), 4) == [
        [1, 2, 3],
        [4, 5, 6],
        [7, 8, 9, 10],
        [11, 12, 13, 14],
    ]


def test_partition_cpus_even():
    assert partition_cpus([8, 9, 10, 11], 2) == [[8, 9], [10, 11]]


def test_partition_cpus_round_robin():
    assert partition_cpus([1, 2], 3) == [[1], [2], [1]]


def test_partition_cpus_invalid():
    with pytest.raises(ValueError):
        partition_cpus([], 2)
    with pytest.raises(ValueError):
        partition_cpus([1], 0)


def test_parse_max_combined():
    assert parse_max_combined(ETHTOOL_OUTPUT) == 4
    assert parse_max_combined(ETHTOOL_OUTPUT.replace("Combined:       4", "Combined: n/a")) is None
    assert parse_max_combined("") is None


def test_configure_multiqueue(sysfs, planner, local_shell):
    add_virtio_nic(sysfs)
    local_shell.run_command.side_effect = [
        CommandArtifact(command="ethtool -l ens4", stdout=ETHTOOL_OUTPUT, stderr="", exit_code=0),
        CommandArtifact(command="ethtool -L ens4 combined 4", stdout="", stderr="", exit_code=0),
    ]

    planner.configure_multiqueue()

    assert commands(local_shell) == ["ethtool -l ens4", "ethtool -L ens4 combined 4"]


def test_configure_multiqueue_capped(sysfs, planner, config, local_shell):
    add_virtio_nic(sysfs)
    config.max_combined_channels = 2
    local_shell.run_command.return_value = CommandArtifact(
        command="", stdout=ETHTOOL_OUTPUT, stderr="", exit_code=0
    )

    planner.configure_multiqueue()

    assert commands(local_shell) == ["ethtool -l ens4", "ethtool -L ens4 combined 2"]


def test_configure_multiqueue_ethtool_failure(sysfs, planner, local_shell):
    add_virtio_nic(sysfs)
    add_virtio_nic(sysfs, "virtio1", "ens5")
    local_shell.run_command.return_value = CommandArtifact(
        command="", stdout="", stderr="Operation not supported", exit_code=1
    )

    planner.configure_multiqueue()

    assert commands(local_shell) == ["ethtool -l ens4", "ethtool -l ens5"]


def test_ethtool_timeout_does_not_stop_run(sysfs, planner, local_shell):
    add_cpus(sysfs, online="0-1", nodes=("0-1",))
    add_virtio_nic(sysfs)
    add_virtio_nic(sysfs, "virtio1", "ens5")
    sysfs.mkdir("class/net/ens4/queues/tx-0")
    local_shell.run_command.side_effect = subprocess.TimeoutExpired("ethtool -l", 300)

    result = planner.run()

    assert result.status == ExecutionStatus.ERROR
    assert commands(local_shell) == ["ethtool -l ens4", "ethtool -l ens5"]
    timeouts = [
        event.data["device"]
        for event in result.events
        if event.category == EventCategory.MULTIQUEUE.value and "timed out" in event.description
    ]
    assert timeouts == ["ens4", "ens5"]
    assert sysfs.read("class/net/ens4/queues/tx-0/xps_cpus") == "00000003"


def test_virtio_intx_pinned_to_cpu0(sysfs, procfs, planner):
    add_virtio_nic(sysfs)
    add_irq(procfs, 11, "virtio0")

    planner.set_virtio_irq_affinity()

    assert procfs.read("irq/11/smp_affinity") == "1"


def test_virtio_msix_hints(sysfs, procfs, planner):
    add_virtio_nic(sysfs)
    add_irq(procfs, 24, "virtio0-input.0", hint="00000002")
    add_irq(procfs, 25, "virtio0-output.0", hint="00000000")
    add_irq(procfs, 26, "virtio0-input.1")
    add_irq(procfs, 27, "virtio1-input.0", hint="00000008")

    planner.set_virtio_irq_affinity()

    assert procfs.read("irq/24/smp_affinity") == "00000002"
    assert procfs.read("irq/25/smp_affinity") == "ffff"
    assert procfs.read("irq/26/smp_affinity") == "ffff"
    assert procfs.read("irq/27/smp_affinity") == "ffff"


def test_gvnic_hints(procfs, planner):
    add_irq(procfs, 30, "gve-ntfy-block.0", hint="00000004")
    add_irq(procfs, 31, "gve-mgmnt", hint="00000001")

    planner.set_gvnic_irq_affinity()

    assert procfs.read("irq/30/smp_affinity") == "00000004"
    assert procfs.read("irq/31/smp_affinity") == "ffff"


def test_global_xps(sysfs, planner):
    add_cpus(sysfs, online="0-3", nodes=("0-3",))
    sysfs.mkdir("class/net/ens4/queues/tx-0")
    sysfs.mkdir("class/net/ens4/queues/tx-1")
    sysfs.mkdir("class/net/lo/queues/tx-0")

    planner.set_global_xps()

    assert sysfs.read("class/net/ens4/queues/tx-0/xps_cpus") == "00000005"
    assert sysfs.read("class/net/ens4/queues/tx-1/xps_cpus") == "0000000a"
    assert not (sysfs.root / "class/net/lo/queues/tx-0/xps_cpus").exists()
    assert [(a.device_name, a.queue_index, a.xps_cpus) for a in planner.result.assignments] == [
        ("ens4", 0, "0,2"),
        ("ens4", 1, "1,3"),
    ]


def test_numa_affinity(sysfs, procfs, planner, metadata_client):
    add_cpus(sysfs)
    add_gve_nic(sysfs, procfs, GVE_PATH, "ens8", 1, [40, 41, 42, 43, 44])
    metadata_client.is_multinic_accelerator_platform.return_value = True

    result = planner.run()

    assert result.multinic_platform
    assert procfs.read("irq/40/smp_affinity_list") == "8-11"
    assert procfs.read("irq/42/smp_affinity_list") == "8-11"
    assert procfs.read("irq/41/smp_affinity_list") == "12-15"
    assert procfs.read("irq/43/smp_affinity_list") == "12-15"
    assert not (procfs.root / "irq/44/smp_affinity_list").exists()
    assert sysfs.read("class/net/ens8/queues/tx-0/xps_cpus") == "00000f00"
    assert sysfs.read("class/net/ens8/queues/tx-1/xps_cpus") == "0000f000"

    numa_assignments = [a for a in result.assignments if a.irq_number_tx is not None]
    assert [(a.queue_index, a.irq_number_tx, a.irq_number_rx) for a in numa_assignments] == [
        (0, 40, 42),
        (1, 41, 43),
    ]


def test_numa_irq_pool_excludes_cpu0(sysfs, procfs, planner, metadata_client):
    add_cpus(sysfs, online="0-7", nodes=("0-7",))
    add_gve_nic(sysfs, procfs, GVE_PATH, "ens8", 0, [40, 41, 42, 43])
    metadata_client.is_multinic_accelerator_platform.return_value = True

    planner.run()

    assert procfs.read("irq/40/smp_affinity_list") == "1-3"
    assert procfs.read("irq/41/smp_affinity_list") == "4-7"
    assert sysfs.read("class/net/ens8/queues/tx-0/xps_cpus") == "0000000f"
    assert sysfs.read("class/net/ens8/queues/tx-1/xps_cpus") == "000000f0"


def test_numa_device_failure_does_not_stop_pass(sysfs, procfs, planner, metadata_client):
    add_cpus(sysfs)
    add_gve_nic(sysfs, procfs, GVE_PATH, "ens8", 0, [40])
    add_gve_nic(sysfs, procfs, GVE_PATH_2, "ens9", 1, [50, 51, 52, 53])
    metadata_client.is_multinic_accelerator_platform.return_value = True

    result = planner.run()

    assert result.status == ExecutionStatus.ERROR
    assert any(
        event.priority == EventPriority.ERROR and "ens8" in event.description
        for event in result.events
    )
    assert procfs.read("irq/50/smp_affinity_list") == "8-11"
    assert {a.device_name for a in result.assignments if a.irq_number_tx is not None} == {"ens9"}


def test_numa_skips_other_drivers(sysfs, procfs, planner, metadata_client):
    add_cpus(sysfs)
    add_gve_nic(sysfs, procfs, GVE_PATH, "ens8", 0, [40, 41, 42, 43])
    (sysfs.root / GVE_PATH / "driver").unlink()
    sysfs.symlink(f"{GVE_PATH}/driver", sysfs.mkdir("bus/pci/drivers/mlx5_core"))
    metadata_client.is_multinic_accelerator_platform.return_value = True

    result = planner.run()

    assert not (procfs.root / "irq/40/smp_affinity_list").exists()
    assert result.status == ExecutionStatus.OK


def test_numa_pass_skipped_off_platform(sysfs, procfs, planner):
    add_cpus(sysfs)
    add_gve_nic(sysfs, procfs, GVE_PATH, "ens8", 1, [40, 41, 42, 43])

    result = planner.run()

    assert not result.multinic_platform
    assert not (procfs.root / "irq/40/smp_affinity_list").exists()


def test_passive_level_makes_no_changes(
    sysfs, procfs, config, local_shell, logger, metadata_client
):
    add_cpus(sysfs)
    add_virtio_nic(sysfs)
    add_irq(procfs, 11, "virtio0")
    add_irq(procfs, 30, "gve-ntfy-block.0", hint="00000004")
    add_gve_nic(sysfs, procfs, GVE_PATH, "ens8", 1, [40, 41, 42, 43])
    metadata_client.is_multinic_accelerator_platform.return_value = True
    local_shell.run_command.return_value = CommandArtifact(
        command="", stdout=ETHTOOL_OUTPUT, stderr="", exit_code=0
    )
    planner = AffinityPlanner(
        local_shell,
        config=config,
        metadata_client=metadata_client,
        logger=logger,
        system_interaction_level=SystemInteractionLevel.PASSIVE,
    )

    result = planner.run()

    assert commands(local_shell) == ["ethtool -l ens4"]
    assert procfs.read("irq/11/smp_affinity") == "ffff"
    assert procfs.read("irq/30/smp_affinity") == "ffff"
    assert not (procfs.root / "irq/40/smp_affinity_list").exists()
    assert not (sysfs.root / "class/net/ens8/queues/tx-0/xps_cpus").exists()
    assert len([a for a in result.assignments if a.irq_number_tx is not None]) == 2


def test_metadata_failure_means_no_numa_pass(sysfs, procfs, planner, metadata_client):
    add_cpus(sysfs)
    add_gve_nic(sysfs, procfs, GVE_PATH, "ens8", 1, [40, 41, 42, 43])
    metadata_client.is_multinic_accelerator_platform.side_effect = ValueError("bad payload")

    result = planner.run()

    assert not result.multinic_platform
    assert not (procfs.root / "irq/40/smp_affinity_list").exists()
