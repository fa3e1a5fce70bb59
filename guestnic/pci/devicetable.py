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
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from guestnic.enums import DeviceClass
from guestnic.utils import strip_hex_prefix


class DeviceTableEntry(BaseModel):
    """One allow-list row. A row without device_id matches every device of the vendor."""

    model_config = ConfigDict(frozen=True)

    vendor_id: str
    device_id: Optional[str] = None
    device_class: DeviceClass
    name_prefix: Optional[str] = None  # accelerator part of composed names, e.g. "gpu"
    legacy_eth: bool = False  # named eth<N> rather than by accelerator pairing
    description: str = ""

    @field_validator("vendor_id", "device_id")
    @classmethod
    def normalize_id(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return strip_hex_prefix(value)

    def matches(self, vendor_id: str, device_id: str) -> bool:
        if self.vendor_id != vendor_id:
            return False
        return self.device_id is None or self.device_id == device_id


DEFAULT_DEVICE_TABLE = [
    DeviceTableEntry(
        vendor_id="15b3",
        device_id="1021",
        device_class=DeviceClass.ETHERNET,
        description="Mellanox ConnectX-7",
    ),
    DeviceTableEntry(
        vendor_id="15b3",
        device_id="1023",
        device_class=DeviceClass.ETHERNET,
        description="Mellanox ConnectX-8",
    ),
    DeviceTableEntry(
        vendor_id="8086",
        device_id="145c",
        device_class=DeviceClass.ETHERNET,
        description="Intel IDPF with RDMA",
    ),
    DeviceTableEntry(
        vendor_id="8086",
        device_id="1452",
        device_class=DeviceClass.ETHERNET,
        legacy_eth=True,
        description="Intel IDPF primary NIC",
    ),
    DeviceTableEntry(
        vendor_id="10de",
        device_class=DeviceClass.ACCELERATOR,
        name_prefix="gpu",
        description="NVIDIA GPU",
    ),
]


class DeviceTable(BaseModel):
    """Vendor/device allow-list used to classify PCI functions"""

    entries: list[DeviceTableEntry] = Field(default_factory=lambda: list(DEFAULT_DEVICE_TABLE))

    def lookup(self, vendor_id: str, device_id: str) -> Optional[DeviceTableEntry]:
        """Find the entry for a vendor:device pair

        Ethernet rows are matched on the full pair, accelerator rows on the vendor prefix.
        Exact device rows win over vendor-wide rows.

        Args:
            vendor_id (str): vendor id, with or without 0x prefix
            device_id (str): device id, with or without 0x prefix

        Returns:
            Optional[DeviceTableEntry]: matching entry or None
        """
        vendor_id = strip_hex_prefix(vendor_id)
        device_id = strip_hex_prefix(device_id)
        vendor_wide = None
        for entry in self.entries:
            if not entry.matches(vendor_id, device_id):
                continue
            if entry.device_id is not None:
                return entry
            if vendor_wide is None:
                vendor_wide = entry
        return vendor_wide

    def classify(self, vendor_id: str, device_id: str) -> DeviceClass:
        entry = self.lookup(vendor_id, device_id)
        return entry.device_class if entry else DeviceClass.OTHER

    def name_prefix(self, vendor_id: str, device_id: str) -> Optional[str]:
        entry = self.lookup(vendor_id, device_id)
        return entry.name_prefix if entry else None

    def is_legacy_eth(self, vendor_id: str, device_id: str) -> bool:
        entry = self.lookup(vendor_id, device_id)
        return bool(entry and entry.legacy_eth)
