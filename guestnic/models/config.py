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
import os
from typing import Optional

from pydantic import BaseModel, Field

from guestnic.constants import DEFAULT_PROCFS_ROOT, DEFAULT_SYSFS_ROOT, METADATA_URL
from guestnic.pci.devicetable import DeviceTable

DEFAULT_ACCELERATOR_MACHINE_TYPES = [
    "a3-highgpu-8g",
    "a3-megagpu-8g",
    "a3-ultragpu-8g",
    "a3-edgegpu-8g",
    "a4-highgpu-8g",
    "a4x-highgpu-4g",
]


class GuestNicConfig(BaseModel):
    """Tunables for naming and affinity, loadable from a JSON file"""

    sysfs_root: str = DEFAULT_SYSFS_ROOT
    procfs_root: str = DEFAULT_PROCFS_ROOT
    metadata_url: str = METADATA_URL
    metadata_timeout: float = 1.0
    device_table: DeviceTable = Field(default_factory=DeviceTable)
    accelerator_machine_types: list[str] = Field(
        default_factory=lambda: list(DEFAULT_ACCELERATOR_MACHINE_TYPES)
    )
    numa_aware_drivers: list[str] = Field(default_factory=lambda: ["gve"])
    virtio_net_driver_path: str = "bus/virtio/drivers/virtio_net"
    xps_interface_glob: str = "e*"
    max_combined_channels: Optional[int] = Field(default=None, ge=1)
    irq_excluded_cpus: list[int] = Field(default_factory=lambda: [0])

    def sys_path(self, *parts: str) -> str:
        """Join parts under the sysfs root, accepting parts with a leading slash"""
        return os.path.join(self.sysfs_root, *(part.lstrip("/") for part in parts))

    def proc_path(self, *parts: str) -> str:
        return os.path.join(self.procfs_root, *(part.lstrip("/") for part in parts))
