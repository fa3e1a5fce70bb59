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
import logging
import os
from typing import Optional

from pydantic import BaseModel

from guestnic.connection.inband import InBandConnection
from guestnic.constants import NET_SUBSYSTEM, RDMA_CAPABILITY_DIR, TEMP_NAME_SUFFIX
from guestnic.enums import EventCategory, EventPriority, SystemInteractionLevel
from guestnic.exceptions import ConfigError
from guestnic.interfaces import InBandTask
from guestnic.models import Device, GuestNicConfig, TopologySnapshot, TriggerEnv
from guestnic.pci.ratio import (
    gather_lowest_denominator_devices,
    get_accelerator_index,
    snapshot_bus,
)
from guestnic.pci.topology import get_id_from_path, pci_device_dir


class NameResult(BaseModel):
    """Name computed for one device event"""

    name: str
    branch: str
    renamed: bool = False


class NamingEngine(InBandTask):
    """Compute stable interface names from PCI topology

    Names are derived only from the bus enumeration and the triggering device, so running
    the engine twice for the same device gives the same name.
    """

    TASK_TYPE = "NAMING"

    BRANCH_LEGACY = "legacy_eth"
    BRANCH_RDMA = "rdma"
    BRANCH_PATH = "path"
    BRANCH_ETH_PER_ACC = "ethernet_per_accelerator"
    BRANCH_ACC_PER_ETH = "accelerator_per_ethernet"

    CMD_LINK_DOWN = "ip link set dev {interface} down"
    CMD_LINK_NAME = "ip link set dev {interface} name {name}"
    CMD_LINK_UP = "ip link set dev {interface} up"

    def __init__(
        self,
        connection: InBandConnection,
        config: Optional[GuestNicConfig] = None,
        snapshot: Optional[TopologySnapshot] = None,
        logger: Optional[logging.Logger] = None,
        system_interaction_level: SystemInteractionLevel | str = SystemInteractionLevel.DISRUPTIVE,
        run_tag: Optional[str] = None,
    ):
        super().__init__(
            connection=connection,
            config=config,
            logger=logger,
            system_interaction_level=system_interaction_level,
            run_tag=run_tag,
        )
        self._snapshot = snapshot

    @property
    def snapshot(self) -> TopologySnapshot:
        if self._snapshot is None:
            self._snapshot = snapshot_bus(self.connection, self.config, self.logger)
            self._log_event(
                category=EventCategory.PCI,
                description="Enumerated PCI bus",
                data={
                    "ethernet": len(self._snapshot.ethernet),
                    "accelerators": len(self._snapshot.accelerators),
                    "ratio": self._snapshot.ratio.model_dump(),
                },
            )
        return self._snapshot

    def generate_name(self, trigger: TriggerEnv) -> NameResult:
        """Compute the name for the device of a udev event

        Args:
            trigger (TriggerEnv): udev event inputs

        Raises:
            ParseError: if DEVPATH holds no PCI address
            BoundaryError: if no PCI subtree matches the bus ratio
            ConfigError: if DEVPATH is empty or no naming rule applies to the device

        Returns:
            NameResult: computed name, the rule that produced it and whether a live
                rename was done
        """
        if not trigger.devpath:
            raise ConfigError("No device path in udev event", trigger.model_dump())

        device_path = self.config.sys_path(trigger.devpath)
        pci_dir = pci_device_dir(device_path)
        bus_key = get_id_from_path(device_path)

        snapshot = self.snapshot
        table = self.config.device_table
        device = snapshot.ethernet.get(bus_key)

        if device is not None and table.is_legacy_eth(device.vendor_id, device.device_id):
            name = f"eth{snapshot.ethernet.position_of(bus_key)}"
            renamed = self._stage_legacy_rename(trigger.interface, name)
            return self._named(trigger, name, self.BRANCH_LEGACY, renamed)

        if len(snapshot.accelerators) == 0:
            if device is not None and self.connection.is_dir(
                os.path.join(pci_dir, RDMA_CAPABILITY_DIR)
            ):
                name = f"rdma{snapshot.ethernet.position_of(bus_key)}"
                renamed = self._rename_attached(trigger, pci_dir, name)
                return self._named(trigger, name, self.BRANCH_RDMA, renamed)
            return self._path_name(trigger, device_path)

        if device is None:
            return self._path_name(trigger, device_path)

        ratio = snapshot.ratio
        if ratio.ethernet_per_accelerator >= 1:
            index = self._accelerator_index(device, device_path)
            sub_index = snapshot.ethernet.position_of(bus_key) % ratio.ethernet_per_accelerator
            prefix = self._accelerator_prefix(index)
            if prefix:
                name = f"{prefix}{index}rdma{sub_index}"
            else:
                self._log_event(
                    category=EventCategory.NAMING,
                    description=f"Accelerator {index} has no name prefix, using bare rdma name",
                    data={"accelerator_index": index},
                    priority=EventPriority.WARNING,
                )
                name = f"rdma{sub_index}"
            renamed = self._rename_attached(trigger, pci_dir, name)
            return self._named(trigger, name, self.BRANCH_ETH_PER_ACC, renamed)

        if ratio.accelerator_per_ethernet >= 1:
            index = self._accelerator_index(device, device_path)
            prefix = self._accelerator_prefix(index)
            if prefix:
                name = f"{prefix}{index}_{index + 1}rdma0"
            else:
                self._log_event(
                    category=EventCategory.NAMING,
                    description=f"Accelerator {index} has no name prefix, using bare rdma name",
                    data={"accelerator_index": index},
                    priority=EventPriority.WARNING,
                )
                name = f"rdma{snapshot.ethernet.position_of(bus_key)}"
            renamed = self._rename_attached(trigger, pci_dir, name)
            return self._named(trigger, name, self.BRANCH_ACC_PER_ETH, renamed)

        raise ConfigError(
            f"No naming rule for {device_path} with ratio {ratio}",
            {"path": device_path, "ratio": ratio.model_dump()},
        )

    def _named(self, trigger: TriggerEnv, name: str, branch: str, renamed: bool) -> NameResult:
        self._log_event(
            category=EventCategory.NAMING,
            description=f"Generated name {name}",
            data={
                "name": name,
                "branch": branch,
                "path": trigger.devpath,
                "driver": trigger.driver,
                "renamed": renamed,
            },
            console_log=True,
        )
        return NameResult(name=name, branch=branch, renamed=renamed)

    def _path_name(self, trigger: TriggerEnv, device_path: str) -> NameResult:
        """Fall back on the path based name udev computed for the device"""
        if trigger.id_net_name_path and self.connection.path_exists(
            os.path.join(device_path, "device")
        ):
            return self._named(trigger, trigger.id_net_name_path, self.BRANCH_PATH, False)
        raise ConfigError(
            f"No name available for {device_path}",
            {
                "path": device_path,
                "driver": trigger.driver,
                "id_net_name_path": trigger.id_net_name_path,
            },
        )

    def _accelerator_index(self, device: Device, device_path: str) -> int:
        local_ethernet, local_accelerators = gather_lowest_denominator_devices(
            self.connection, device_path, self.snapshot.ratio, self.config, self.logger
        )
        return get_accelerator_index(
            device.bus_key,
            local_ethernet,
            local_accelerators,
            self.snapshot.accelerators,
            self.snapshot.ratio,
        )

    def _accelerator_prefix(self, index: int) -> Optional[str]:
        accelerator = self.snapshot.accelerators.at(index)
        return self.config.device_table.name_prefix(accelerator.vendor_id, accelerator.device_id)

    def _can_rename(self, interface: str, name: str) -> bool:
        if self._allowed(SystemInteractionLevel.DISRUPTIVE):
            return True
        self._log_event(
            category=EventCategory.NAMING,
            description=f"Skipping rename of {interface} to {name}",
            data={
                "interface": interface,
                "name": name,
                "system_interaction_level": self.system_interaction_level.name,
            },
            console_log=True,
        )
        return False

    def _run_link_commands(self, commands: list[str]) -> bool:
        for command in commands:
            res = self._run_sut_cmd(command)
            if res.exit_code != 0:
                self._log_event(
                    category=EventCategory.NAMING,
                    description=f"Error running link command: {command}",
                    data={"command": command, "exit_code": res.exit_code, "stderr": res.stderr},
                    priority=EventPriority.ERROR,
                    console_log=True,
                )
                return False
        return True

    def _stage_legacy_rename(self, interface: Optional[str], name: str) -> bool:
        """Move a legacy NIC out of the way of its eth<N> name

        The interface is parked as <name>tmp so the final rename by udev can not clash with
        another device still holding the kernel assigned name.
        """
        if not interface or interface == name:
            return False
        if not self._can_rename(interface, name):
            return False

        temp_name = f"{name}{TEMP_NAME_SUFFIX}"
        return self._run_link_commands(
            [
                self.CMD_LINK_DOWN.format(interface=interface),
                self.CMD_LINK_NAME.format(interface=interface, name=temp_name),
                self.CMD_LINK_UP.format(interface=temp_name),
            ]
        )

    def _rename_attached(self, trigger: TriggerEnv, pci_dir: str, name: str) -> bool:
        """Rename net interfaces already bound under a PCI function

        Only used for events from non net subsystems; udev applies the name itself for
        net events.
        """
        if trigger.subsystem == NET_SUBSYSTEM:
            return False

        renamed = False
        for interface in self.connection.list_dir(os.path.join(pci_dir, "net")):
            if interface == name or not self._can_rename(interface, name):
                continue
            renamed = (
                self._run_link_commands(
                    [
                        self.CMD_LINK_DOWN.format(interface=interface),
                        self.CMD_LINK_NAME.format(interface=interface, name=name),
                        self.CMD_LINK_UP.format(interface=name),
                    ]
                )
                or renamed
            )
        return renamed
