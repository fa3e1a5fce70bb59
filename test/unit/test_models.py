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
import pytest
from pydantic import ValidationError

from guestnic.enums import DeviceClass
from guestnic.models import CpuRange, Device, DeviceMap, GuestNicConfig, NumaNode, TriggerEnv


def make_device(bus_key: int) -> Device:
    return Device(
        bus_key=bus_key,
        vendor_id="15b3",
        device_id="1021",
        device_class=DeviceClass.ETHERNET,
        path=f"/sys/bus/pci/devices/{bus_key:x}",
    )


def test_device_map_order():
    device_map = DeviceMap.from_devices([make_device(0x30), make_device(0x10), make_device(0x20)])

    assert device_map.keys() == [0x10, 0x20, 0x30]
    assert device_map.position_of(0x30) == 2
    assert device_map.at(0).bus_key == 0x10
    assert device_map.get(0x40) is None
    assert 0x20 in device_map
    assert len(device_map) == 3


def test_device_map_errors():
    device_map = DeviceMap.from_devices([make_device(0x10)])

    with pytest.raises(KeyError):
        device_map.position_of(0x20)
    with pytest.raises(IndexError):
        device_map.at(1)
    with pytest.raises(IndexError):
        device_map.at(-1)


def test_device_map_is_immutable():
    device_map = DeviceMap.from_devices([make_device(0x10)])
    with pytest.raises(ValidationError):
        device_map.devices = {}


def test_cpu_range():
    assert CpuRange(start=2, end=4).cpus() == [2, 3, 4]
    with pytest.raises(ValidationError):
        CpuRange(start=4, end=2)
    with pytest.raises(ValidationError):
        CpuRange(start=-1, end=2)


def test_numa_node_from_cpus():
    node = NumaNode.from_cpus(1, [55, 8, 9, 10, 52, 53, 54])
    assert node.ranges == [CpuRange(start=8, end=10), CpuRange(start=52, end=55)]
    assert node.cpus() == [8, 9, 10, 52, 53, 54, 55]


def test_trigger_from_environ():
    trigger = TriggerEnv.from_environ(
        {
            "DEVPATH": "/devices/pci0000:00/0000:00:05.0/net/ens5",
            "SUBSYSTEM": "net",
            "DRIVER": "mlx5_core",
            "INTERFACE": "ens5",
            "ID_NET_NAME_PATH": "enp0s5",
            "SEQNUM": "42",
        }
    )
    assert trigger.driver == "mlx5_core"
    assert trigger.id_net_name_path == "enp0s5"
    assert trigger.run_tag == "42"


def test_trigger_from_empty_environ():
    trigger = TriggerEnv.from_environ({})
    assert trigger.devpath == ""
    assert trigger.interface is None
    assert len(trigger.run_tag) == 8


def test_config_paths():
    config = GuestNicConfig(sysfs_root="/tmp/sys", procfs_root="/tmp/proc")
    assert config.sys_path("/devices/pci0000:00") == "/tmp/sys/devices/pci0000:00"
    assert config.sys_path("class/net", "ens4") == "/tmp/sys/class/net/ens4"
    assert config.proc_path("irq", "11", "smp_affinity") == "/tmp/proc/irq/11/smp_affinity"


def test_config_device_table_from_json():
    config = GuestNicConfig.model_validate(
        {
            "device_table": {
                "entries": [
                    {"vendor_id": "0x1AE0", "device_id": "0x0042", "device_class": "ETHERNET"}
                ]
            }
        }
    )
    assert config.device_table.classify("1ae0", "0042") == DeviceClass.ETHERNET
    assert config.device_table.classify("10de", "2330") == DeviceClass.OTHER
