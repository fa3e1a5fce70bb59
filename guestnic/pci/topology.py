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
from typing import Iterable, Optional

from guestnic.connection.inband import InBandConnection
from guestnic.constants import DEFAULT_LOGGER
from guestnic.enums import DeviceClass
from guestnic.exceptions import ParseError
from guestnic.models import Device, DeviceMap, GuestNicConfig
from guestnic.utils import strip_hex_prefix

from .devicetable import DeviceTable

HEX_DIGITS = frozenset("0123456789abcdefABCDEF")

# domain:bus:slot.function field widths, e.g. 0000:0c:00.0
PCI_ADDRESS_FIELDS = (4, 2, 2, 1)


def _is_hex_field(field: str, width: int) -> bool:
    return len(field) == width and all(char in HEX_DIGITS for char in field)


def is_pci_address(segment: str) -> bool:
    """Check if a path segment is a PCI address of the form xxxx:xx:xx.x

    Args:
        segment (str): one path segment

    Returns:
        bool: True if the segment is a full PCI address
    """
    head, dot, function = segment.rpartition(".")
    if not dot:
        return False
    fields = head.split(":")
    if len(fields) != 3:
        return False
    fields.append(function)
    return all(_is_hex_field(field, width) for field, width in zip(fields, PCI_ADDRESS_FIELDS))


def pci_address_segments(path: str) -> list[str]:
    """Split a path into segments and keep the PCI address ones, in path order"""
    return [segment for segment in path.split("/") if is_pci_address(segment)]


def get_id_from_path(path: str) -> int:
    """Integer key of the last PCI address in a path

    Args:
        path (str): sysfs path, e.g. /sys/devices/pci0000:00/0000:00:0c.0/0000:0c:00.0/net/eth1

    Raises:
        ParseError: if no segment of the path is a PCI address

    Returns:
        int: hex digits of the address read as one number, 0x00000c000 for 0000:0c:00.0
    """
    segments = pci_address_segments(path)
    if not segments:
        raise ParseError(f"No PCI address found in path: {path}", {"path": path})
    digits = segments[-1].replace(":", "").replace(".", "")
    return int(digits, 16)


def pci_device_dir(path: str) -> str:
    """Truncate a path after its last PCI address segment

    Raises:
        ParseError: if no segment of the path is a PCI address
    """
    segments = path.split("/")
    for index in range(len(segments) - 1, -1, -1):
        if is_pci_address(segments[index]):
            return "/".join(segments[: index + 1])
    raise ParseError(f"No PCI address found in path: {path}", {"path": path})


def read_device(
    connection: InBandConnection,
    path: str,
    table: DeviceTable,
    logger: Optional[logging.Logger] = None,
) -> Optional[Device]:
    """Read vendor and device attributes of one PCI function and classify it

    Args:
        connection (InBandConnection): system connection
        path (str): PCI function directory
        table (DeviceTable): allow-list
        logger (Optional[logging.Logger], optional): logger. Defaults to None.

    Returns:
        Optional[Device]: device, or None if the directory is not a PCI function or
            its attributes can not be read
    """
    if logger is None:
        logger = logging.getLogger(DEFAULT_LOGGER)

    if not is_pci_address(os.path.basename(path.rstrip("/"))):
        logger.debug("Skipping non PCI function directory %s", path)
        return None

    try:
        vendor_id = strip_hex_prefix(
            connection.read_file(os.path.join(path, "vendor")).contents
        )
        device_id = strip_hex_prefix(
            connection.read_file(os.path.join(path, "device")).contents
        )
    except OSError as e:
        logger.debug("Unable to read ids of %s: %s", path, e)
        return None

    return Device(
        bus_key=get_id_from_path(path),
        vendor_id=vendor_id,
        device_id=device_id,
        device_class=table.classify(vendor_id, device_id),
        path=path,
    )


def list_devices(
    connection: InBandConnection,
    search_paths: Iterable[str],
    table: DeviceTable,
    logger: Optional[logging.Logger] = None,
) -> tuple[DeviceMap, DeviceMap]:
    """Classify PCI functions into ethernet and accelerator maps

    Paths are sorted before processing so that position based pairing is stable.

    Args:
        connection (InBandConnection): system connection
        search_paths (Iterable[str]): PCI function directories
        table (DeviceTable): allow-list
        logger (Optional[logging.Logger], optional): logger. Defaults to None.

    Returns:
        tuple[DeviceMap, DeviceMap]: ethernet map and accelerator map
    """
    ethernet: list[Device] = []
    accelerators: list[Device] = []
    for path in sorted(search_paths):
        device = read_device(connection, path, table, logger)
        if device is None:
            continue
        if device.device_class == DeviceClass.ETHERNET:
            ethernet.append(device)
        elif device.device_class == DeviceClass.ACCELERATOR:
            accelerators.append(device)
    return DeviceMap.from_devices(ethernet), DeviceMap.from_devices(accelerators)


def find_vendor_dirs(connection: InBandConnection, root: str) -> list[str]:
    """Directories at or below root that expose a vendor attribute"""
    return connection.find_dirs_with_file(root, "vendor")


def enumerate_bus(
    connection: InBandConnection,
    config: GuestNicConfig,
    logger: Optional[logging.Logger] = None,
) -> tuple[DeviceMap, DeviceMap]:
    """Classify every function listed under <sysfs>/bus/pci/devices"""
    bus_dir = config.sys_path("bus/pci/devices")
    paths = [os.path.join(bus_dir, entry) for entry in connection.list_dir(bus_dir)]
    return list_devices(connection, paths, config.device_table, logger)
