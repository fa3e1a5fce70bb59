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

from guestnic.connection.inband import InBandConnection
from guestnic.constants import DEFAULT_LOGGER
from guestnic.exceptions import BoundaryError, ConfigError
from guestnic.models import DeviceMap, GuestNicConfig, Ratio, TopologySnapshot

from .topology import enumerate_bus, find_vendor_dirs, list_devices, pci_device_dir


def determine_ratios(eth_count: int, acc_count: int) -> Ratio:
    """Integer ratios between ethernet and accelerator counts

    Division truncates, so 3 NICs for 2 accelerators is a 1:0 ratio. A zero count
    gives zero in the direction that would divide by it.

    Args:
        eth_count (int): number of ethernet devices
        acc_count (int): number of accelerator devices

    Returns:
        Ratio: ethernet_per_accelerator and accelerator_per_ethernet
    """
    return Ratio(
        ethernet_per_accelerator=eth_count // acc_count if acc_count else 0,
        accelerator_per_ethernet=acc_count // eth_count if eth_count else 0,
    )


def snapshot_bus(
    connection: InBandConnection,
    config: GuestNicConfig,
    logger: Optional[logging.Logger] = None,
) -> TopologySnapshot:
    """Enumerate the whole PCI bus and compute the global ratio"""
    ethernet, accelerators = enumerate_bus(connection, config, logger)
    return TopologySnapshot(
        ethernet=ethernet,
        accelerators=accelerators,
        ratio=determine_ratios(len(ethernet), len(accelerators)),
    )


def gather_lowest_denominator_devices(
    connection: InBandConnection,
    start_path: str,
    global_ratio: Ratio,
    config: GuestNicConfig,
    logger: Optional[logging.Logger] = None,
) -> tuple[DeviceMap, DeviceMap]:
    """Find the smallest subtree above a device whose device ratio matches the bus

    Starts at the PCI function directory of start_path and moves one directory up at a
    time. A level matches once it holds devices of both classes and its ratio equals the
    global ratio in either direction.

    Args:
        connection (InBandConnection): system connection
        start_path (str): full sysfs path of the triggering device
        global_ratio (Ratio): ratio over the whole bus
        config (GuestNicConfig): config holding the sysfs root and device table
        logger (Optional[logging.Logger], optional): logger. Defaults to None.

    Raises:
        ParseError: if start_path has no PCI address segment
        BoundaryError: if the walk reaches the sysfs root without a match

    Returns:
        tuple[DeviceMap, DeviceMap]: ethernet and accelerator maps of the matching level
    """
    if logger is None:
        logger = logging.getLogger(DEFAULT_LOGGER)

    sysfs_root = os.path.normpath(config.sysfs_root)
    level = os.path.normpath(pci_device_dir(start_path))

    while level not in (os.sep, sysfs_root, ""):
        ethernet, accelerators = list_devices(
            connection, find_vendor_dirs(connection, level), config.device_table, logger
        )
        if len(ethernet) and len(accelerators):
            local_ratio = determine_ratios(len(ethernet), len(accelerators))
            logger.debug(
                "Level %s: %d ethernet, %d accelerators, ratio %s",
                level,
                len(ethernet),
                len(accelerators),
                local_ratio,
            )
            if local_ratio.matches_either(global_ratio):
                return ethernet, accelerators
        level = os.path.dirname(level)

    raise BoundaryError(
        f"No level above {start_path} matches ratio {global_ratio}",
        {"start_path": start_path, "ratio": global_ratio.model_dump()},
    )


def get_accelerator_index(
    eth_bus_key: int,
    local_ethernet: DeviceMap,
    local_accelerators: DeviceMap,
    global_accelerators: DeviceMap,
    ratio: Ratio,
) -> int:
    """Global index of the accelerator paired with an ethernet device

    The ethernet device's position in its subtree selects an accelerator position in the
    same subtree, which is then looked up in the whole-bus accelerator enumeration.

    Args:
        eth_bus_key (int): bus key of the ethernet device
        local_ethernet (DeviceMap): ethernet devices of the matching subtree
        local_accelerators (DeviceMap): accelerators of the matching subtree
        global_accelerators (DeviceMap): accelerators of the whole bus
        ratio (Ratio): global ratio

    Raises:
        ConfigError: if the device or its paired accelerator can not be located

    Returns:
        int: index of the paired accelerator in the whole-bus enumeration
    """
    try:
        position = local_ethernet.position_of(eth_bus_key)
    except KeyError as e:
        raise ConfigError(
            f"Ethernet device {eth_bus_key:x} not found in its subtree",
            {"bus_key": eth_bus_key},
        ) from e

    if ratio.ethernet_per_accelerator >= 1:
        accelerator_position = position // ratio.ethernet_per_accelerator
    elif ratio.accelerator_per_ethernet >= 1:
        accelerator_position = position * ratio.accelerator_per_ethernet
    else:
        raise ConfigError(
            f"No usable ratio to pair devices: {ratio}", {"ratio": ratio.model_dump()}
        )

    try:
        accelerator = local_accelerators.at(accelerator_position)
        return global_accelerators.position_of(accelerator.bus_key)
    except (IndexError, KeyError) as e:
        raise ConfigError(
            f"No accelerator at subtree position {accelerator_position} for {eth_bus_key:x}",
            {"bus_key": eth_bus_key, "position": accelerator_position},
        ) from e
