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
import fnmatch
import logging
import os
import re
import subprocess
from typing import Optional

import requests

from guestnic.codec import fit_bitmap, format_rangelist, parse_rangelist, rangelist_to_bitmap
from guestnic.connection.inband import InBandConnection
from guestnic.enums import EventCategory, EventPriority, SystemInteractionLevel
from guestnic.exceptions import ConfigError, GuestNicError
from guestnic.interfaces import InBandTask
from guestnic.models import AffinityResult, GuestNicConfig, NumaNode, QueueAssignment
from guestnic.utils import get_exception_details, get_exception_traceback

from .metadata import MetadataClient

NODE_DIR_RE = re.compile(r"^node(\d+)$")
VIRTIO_DEVICE_RE = re.compile(r"^virtio\d+$")
GVNIC_IRQ_RE = re.compile(r"-ntfy-block\.\d+$")

PER_DEVICE_ERRORS = (GuestNicError, OSError, ValueError, subprocess.SubprocessError)


def partition_cpus(cpus: list[int], parts: int) -> list[list[int]]:
    """Split cpus into contiguous buckets, one per queue

    Buckets hold len(cpus) // parts cpus, the last len(cpus) % parts buckets one more.
    With fewer cpus than parts the cpus are handed out round robin, one per bucket.

    Args:
        cpus (list[int]): cpu indices, in order
        parts (int): number of buckets

    Raises:
        ValueError: if parts is below 1 or cpus is empty

    Returns:
        list[list[int]]: buckets in queue order
    """
    if parts < 1:
        raise ValueError(f"Can not partition cpus into {parts} buckets")
    if not cpus:
        raise ValueError("Can not partition an empty cpu list")

    if len(cpus) < parts:
        return [[cpus[index % len(cpus)]] for index in range(parts)]

    size, remainder = divmod(len(cpus), parts)
    buckets = []
    start = 0
    for index in range(parts):
        end = start + size + (1 if index >= parts - remainder else 0)
        buckets.append(cpus[start:end])
        start = end
    return buckets


def parse_max_combined(output: str) -> Optional[int]:
    """Pre-set maximum Combined channel count from `ethtool -l` output"""
    in_maximums = False
    for line in output.splitlines():
        line = line.strip()
        if line.startswith("Pre-set maximums"):
            in_maximums = True
        elif line.startswith("Current hardware settings"):
            in_maximums = False
        elif in_maximums and line.startswith("Combined:"):
            value = line.split(":", 1)[1].strip()
            return int(value) if value.isdigit() else None
    return None


def _queue_index(entry: str) -> int:
    return int(entry.split("-", 1)[1])


class AffinityPlanner(InBandTask):
    """Boot time pass spreading NIC interrupts and transmit steering over vCPUs"""

    TASK_TYPE = "AFFINITY"

    RESULT_TYPE = AffinityResult

    CMD_CHANNELS_SHOW = "ethtool -l {interface}"
    CMD_CHANNELS_SET = "ethtool -L {interface} combined {count}"

    def __init__(
        self,
        connection: InBandConnection,
        config: Optional[GuestNicConfig] = None,
        metadata_client: Optional[MetadataClient] = None,
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
        if metadata_client is None:
            metadata_client = MetadataClient(
                url=self.config.metadata_url,
                timeout=self.config.metadata_timeout,
                logger=self.logger,
            )
        self.metadata_client = metadata_client

    def run(self) -> AffinityResult:
        """Run all passes and finalize the result

        Returns:
            AffinityResult: events of every pass and the queue assignments computed
        """
        self.configure_multiqueue()
        irq_actions = self._irq_actions()
        self.set_virtio_irq_affinity(irq_actions)
        self.set_gvnic_irq_affinity(irq_actions)
        self.set_global_xps()

        self.result.multinic_platform = self.is_multinic_platform()
        if self.result.multinic_platform:
            self.set_numa_affinity()
        else:
            self.logger.info("Not a multi-NIC accelerator platform, skipping NUMA pass")

        self.result.finalize(self.logger)
        return self.result

    def _write(self, path: str, contents: str) -> bool:
        if not self._allowed(SystemInteractionLevel.INTERACTIVE):
            self.logger.debug("Would write %s to %s", contents, path)
            return False
        self._write_sut_file(path, contents)
        return True

    def _log_device_error(self, category: EventCategory, name: str, exception: Exception):
        self._log_event(
            category=category,
            description=f"Skipping {name}: {exception}",
            data={
                "device": name,
                **get_exception_details(exception),
                **get_exception_traceback(exception),
            },
            priority=EventPriority.ERROR,
            console_log=True,
        )

    def _virtio_devices(self) -> list[str]:
        driver_dir = self.config.sys_path(self.config.virtio_net_driver_path)
        return [
            entry for entry in self.connection.list_dir(driver_dir) if VIRTIO_DEVICE_RE.match(entry)
        ]

    def _virtio_interfaces(self) -> list[str]:
        driver_dir = self.config.sys_path(self.config.virtio_net_driver_path)
        interfaces = []
        for device in self._virtio_devices():
            interfaces.extend(self.connection.list_dir(os.path.join(driver_dir, device, "net")))
        return interfaces

    def configure_multiqueue(self) -> None:
        """Enable every combined channel the virtio-net devices advertise"""
        for interface in self._virtio_interfaces():
            try:
                self._configure_channels(interface)
            except PER_DEVICE_ERRORS as e:
                self._log_device_error(EventCategory.MULTIQUEUE, interface, e)

    def _configure_channels(self, interface: str) -> None:
        res = self._run_sut_cmd(self.CMD_CHANNELS_SHOW.format(interface=interface))
        if res.exit_code != 0:
            self._log_event(
                category=EventCategory.MULTIQUEUE,
                description=f"Unable to read channels of {interface}",
                data={"interface": interface, "exit_code": res.exit_code, "stderr": res.stderr},
                console_log=True,
            )
            return

        count = parse_max_combined(res.stdout)
        if count is None:
            self.logger.info("No combined channel maximum for %s", interface)
            return
        if self.config.max_combined_channels is not None:
            count = min(count, self.config.max_combined_channels)
        if count == 1:
            return

        if not self._allowed(SystemInteractionLevel.INTERACTIVE):
            self.logger.info("Would set %s to %d combined channels", interface, count)
            return

        command = self.CMD_CHANNELS_SET.format(interface=interface, count=count)
        res = self._run_sut_cmd(command)
        if res.exit_code != 0:
            self._log_event(
                category=EventCategory.MULTIQUEUE,
                description=f"Error running ethtool command: {command}",
                data={"command": command, "exit_code": res.exit_code, "stderr": res.stderr},
                priority=EventPriority.ERROR,
                console_log=True,
            )
        else:
            self._log_event(
                category=EventCategory.MULTIQUEUE,
                description=f"Set {interface} to {count} combined channels",
                data={"interface": interface, "combined": count},
            )

    def _irq_actions(self) -> dict[int, list[str]]:
        """Map irq number to the action directory names listed under /proc/irq/<n>"""
        irq_root = self.config.proc_path("irq")
        actions: dict[int, list[str]] = {}
        for entry in self.connection.list_dir(irq_root):
            if not entry.isdigit():
                continue
            irq_dir = os.path.join(irq_root, entry)
            actions[int(entry)] = [
                name
                for name in self.connection.list_dir(irq_dir)
                if self.connection.is_dir(os.path.join(irq_dir, name))
            ]
        return dict(sorted(actions.items()))

    def _copy_affinity_hint(self, irq: int, category: EventCategory) -> bool:
        """Copy a driver published affinity hint to smp_affinity

        An absent or all zero hint leaves the irq untouched.
        """
        irq_dir = self.config.proc_path("irq", str(irq))
        try:
            hint = self._read_sut_file(os.path.join(irq_dir, "affinity_hint")).contents
        except OSError:
            return False
        if not hint.replace(",", "").strip("0"):
            return False

        written = self._write(os.path.join(irq_dir, "smp_affinity"), hint)
        self._log_event(
            category=category,
            description=f"Copied affinity hint of irq {irq}",
            data={"irq": irq, "mask": hint, "written": written},
        )
        return written

    def set_virtio_irq_affinity(self, irq_actions: Optional[dict[int, list[str]]] = None) -> None:
        """Pin legacy virtio interrupts to vCPU 0 and apply MSI-X affinity hints"""
        if irq_actions is None:
            irq_actions = self._irq_actions()

        for device in self._virtio_devices():
            msix_re = re.compile(rf"^{re.escape(device)}-(input|output)\.\d+$")
            try:
                for irq, actions in irq_actions.items():
                    if device in actions:
                        path = self.config.proc_path("irq", str(irq), "smp_affinity")
                        written = self._write(path, "1")
                        self._log_event(
                            category=EventCategory.IRQ,
                            description=f"Pinned INTx irq {irq} of {device} to vCPU 0",
                            data={"irq": irq, "device": device, "written": written},
                        )
                    elif any(msix_re.match(action) for action in actions):
                        self._copy_affinity_hint(irq, EventCategory.IRQ)
            except PER_DEVICE_ERRORS as e:
                self._log_device_error(EventCategory.IRQ, device, e)

    def set_gvnic_irq_affinity(self, irq_actions: Optional[dict[int, list[str]]] = None) -> None:
        """Apply gVNIC notification block affinity hints"""
        if irq_actions is None:
            irq_actions = self._irq_actions()

        for irq, actions in irq_actions.items():
            if not any(GVNIC_IRQ_RE.search(action) for action in actions):
                continue
            try:
                self._copy_affinity_hint(irq, EventCategory.IRQ)
            except PER_DEVICE_ERRORS as e:
                self._log_device_error(EventCategory.IRQ, f"irq {irq}", e)

    def _online_cpus(self) -> list[int]:
        return parse_rangelist(
            self._read_sut_file(self.config.sys_path("devices/system/cpu/online")).contents
        )

    def _cpu_bits(self, online: list[int]) -> int:
        """Width of kernel cpumasks, from the possible cpu list when readable"""
        try:
            possible = parse_rangelist(
                self._read_sut_file(self.config.sys_path("devices/system/cpu/possible")).contents
            )
        except OSError:
            possible = online
        return max(possible + online) + 1

    def _xps_bitmap(self, cpus: list[int], nbits: int) -> str:
        return fit_bitmap(rangelist_to_bitmap(format_rangelist(cpus), nbits - 1), nbits)

    def _tx_queues(self, interface_dir: str) -> list[str]:
        entries = self.connection.list_dir(os.path.join(interface_dir, "queues"))
        return sorted((entry for entry in entries if entry.startswith("tx-")), key=_queue_index)

    def _rx_queue_count(self, interface_dir: str) -> int:
        entries = self.connection.list_dir(os.path.join(interface_dir, "queues"))
        return len([entry for entry in entries if entry.startswith("rx-")])

    def set_global_xps(self) -> None:
        """Stripe the online cpus over the transmit queues of every matching interface"""
        try:
            online = self._online_cpus()
            nbits = self._cpu_bits(online)
        except PER_DEVICE_ERRORS as e:
            self._log_device_error(EventCategory.XPS, "online cpus", e)
            return

        net_dir = self.config.sys_path("class/net")
        for interface in self.connection.list_dir(net_dir):
            if not fnmatch.fnmatch(interface, self.config.xps_interface_glob):
                continue
            interface_dir = os.path.join(net_dir, interface)
            try:
                tx_queues = self._tx_queues(interface_dir)
                for queue in tx_queues:
                    index = _queue_index(queue)
                    cpus = [cpu for cpu in online if cpu % len(tx_queues) == index]
                    if not cpus:
                        continue
                    self._write(
                        os.path.join(interface_dir, "queues", queue, "xps_cpus"),
                        self._xps_bitmap(cpus, nbits),
                    )
                    self.result.assignments.append(
                        QueueAssignment(
                            device_name=interface,
                            queue_index=index,
                            xps_cpus=format_rangelist(cpus),
                        )
                    )
            except PER_DEVICE_ERRORS as e:
                self._log_device_error(EventCategory.XPS, interface, e)

    def is_multinic_platform(self) -> bool:
        """Ask the metadata service whether this is a multi-NIC accelerator platform

        Any failure to reach or decode the service means it is not one.
        """
        try:
            return self.metadata_client.is_multinic_accelerator_platform(
                self.config.accelerator_machine_types
            )
        except (requests.RequestException, ValueError) as e:
            self._log_event(
                category=EventCategory.METADATA,
                description="Unable to query metadata service",
                data={**get_exception_details(e), **get_exception_traceback(e)},
                console_log=True,
            )
            return False

    def read_numa_nodes(self) -> dict[int, NumaNode]:
        node_root = self.config.sys_path("devices/system/node")
        nodes = {}
        for entry in self.connection.list_dir(node_root):
            match = NODE_DIR_RE.match(entry)
            if not match:
                continue
            cpulist = self._read_sut_file(os.path.join(node_root, entry, "cpulist")).contents
            if not cpulist:
                # memory only node
                continue
            node_id = int(match.group(1))
            nodes[node_id] = NumaNode.from_cpus(node_id, parse_rangelist(cpulist))
        return dict(sorted(nodes.items()))

    def _numa_devices(self) -> list[tuple[str, str]]:
        """NUMA aware interfaces as (pci device path, interface) sorted by PCI path"""
        net_dir = self.config.sys_path("class/net")
        devices = []
        for interface in self.connection.list_dir(net_dir):
            device_link = os.path.join(net_dir, interface, "device")
            if not self.connection.path_exists(device_link):
                continue
            driver = os.path.basename(
                self.connection.realpath(os.path.join(device_link, "driver"))
            )
            if driver not in self.config.numa_aware_drivers:
                self.logger.info("Skipping %s, driver %s is not NUMA aware", interface, driver)
                continue
            devices.append((self.connection.realpath(device_link), interface))
        return sorted(devices)

    def set_numa_affinity(self) -> None:
        """Place each NUMA aware NIC's queues on the vCPUs of its home node"""
        try:
            nodes = self.read_numa_nodes()
            nbits = self._cpu_bits(self._online_cpus())
        except PER_DEVICE_ERRORS as e:
            self._log_device_error(EventCategory.NUMA, "numa topology", e)
            return

        if not nodes:
            self._log_event(
                category=EventCategory.NUMA,
                description="No NUMA nodes with cpus found",
                priority=EventPriority.WARNING,
            )
            return

        for device_path, interface in self._numa_devices():
            try:
                self.place_device(interface, device_path, nodes, nbits)
            except PER_DEVICE_ERRORS as e:
                self._log_device_error(EventCategory.NUMA, interface, e)

    def place_device(
        self, interface: str, device_path: str, nodes: dict[int, NumaNode], nbits: int
    ) -> list[QueueAssignment]:
        """Compute and apply irq and xps placement for one interface

        Args:
            interface (str): interface name
            device_path (str): resolved PCI device directory of the interface
            nodes (dict[int, NumaNode]): numa nodes with cpus
            nbits (int): cpumask width

        Raises:
            ConfigError: if the device shape does not allow a placement

        Returns:
            list[QueueAssignment]: assignments of the interface, also added to the result
        """
        node_id = int(self._read_sut_file(os.path.join(device_path, "numa_node")).contents)
        if node_id < 0:
            self._log_event(
                category=EventCategory.NUMA,
                description=f"{interface} reports no NUMA node, using node 0",
                data={"interface": interface, "numa_node": node_id},
                priority=EventPriority.WARNING,
            )
            node_id = 0
        node = nodes.get(node_id)
        if node is None:
            raise ConfigError(f"{interface} is on unknown NUMA node {node_id}", {"node": node_id})

        interface_dir = self.config.sys_path("class/net", interface)
        num_queues = self._rx_queue_count(interface_dir)
        if num_queues == 0:
            raise ConfigError(f"{interface} has no rx queues", {"interface": interface})
        num_tx = len(self._tx_queues(interface_dir))

        irqs = sorted(
            int(entry)
            for entry in self.connection.list_dir(os.path.join(device_path, "msi_irqs"))
        )
        if len(irqs) < 2 * num_queues:
            raise ConfigError(
                f"{interface} has {len(irqs)} msi irqs for {num_queues} queue pairs",
                {"interface": interface, "irqs": irqs, "queues": num_queues},
            )

        cpus = node.cpus()
        irq_pool = [cpu for cpu in cpus if cpu not in self.config.irq_excluded_cpus] or cpus
        irq_buckets = partition_cpus(irq_pool, num_queues)
        xps_buckets = partition_cpus(cpus, num_queues)

        assignments = []
        for queue in range(num_queues):
            assignment = QueueAssignment(
                device_name=interface,
                queue_index=queue,
                irq_number_tx=irqs[queue],
                irq_number_rx=irqs[queue + num_queues],
                irq_cpus=format_rangelist(irq_buckets[queue]),
                xps_cpus=format_rangelist(xps_buckets[queue]),
            )
            for irq in (assignment.irq_number_tx, assignment.irq_number_rx):
                self._write(
                    self.config.proc_path("irq", str(irq), "smp_affinity_list"),
                    assignment.irq_cpus,
                )
            if queue < num_tx:
                self._write(
                    os.path.join(interface_dir, "queues", f"tx-{queue}", "xps_cpus"),
                    self._xps_bitmap(xps_buckets[queue], nbits),
                )
            assignments.append(assignment)

        self._log_event(
            category=EventCategory.NUMA,
            description=f"Placed {num_queues} queues of {interface} on NUMA node {node_id}",
            data={"interface": interface, "node": node_id, "queues": num_queues},
        )
        self.result.assignments.extend(assignments)
        return assignments
