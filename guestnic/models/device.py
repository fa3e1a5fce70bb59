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


class Device(BaseModel):
    """A classified PCI function"""

    model_config = ConfigDict(frozen=True)

    bus_key: int  # integer value of the bus address hex digits
    vendor_id: str  # "15b3"
    device_id: str  # "1021"
    device_class: DeviceClass
    path: str  # sysfs directory of the function

    @property
    def vendor_device(self) -> str:
        return f"{self.vendor_id}:{self.device_id}"


class DeviceMap(BaseModel):
    """Devices of one class keyed by bus key, kept in ascending key order"""

    model_config = ConfigDict(frozen=True)

    devices: dict[int, Device] = Field(default_factory=dict)

    @field_validator("devices")
    @classmethod
    def validate_order(cls, devices: dict[int, Device]) -> dict[int, Device]:
        """keep devices in ascending bus key order"""
        return dict(sorted(devices.items()))

    @classmethod
    def from_devices(cls, devices: list[Device]) -> "DeviceMap":
        return cls(devices={device.bus_key: device for device in devices})

    def keys(self) -> list[int]:
        return list(self.devices)

    def get(self, bus_key: int) -> Optional[Device]:
        return self.devices.get(bus_key)

    def position_of(self, bus_key: int) -> int:
        """Index of bus_key in ascending key order

        Raises:
            KeyError: if bus_key is not in the map
        """
        try:
            return self.keys().index(bus_key)
        except ValueError as e:
            raise KeyError(bus_key) from e

    def at(self, position: int) -> Device:
        """Device at a position in ascending key order

        Raises:
            IndexError: if position is out of range
        """
        if position < 0:
            raise IndexError(position)
        return list(self.devices.values())[position]

    def __len__(self) -> int:
        return len(self.devices)

    def __contains__(self, bus_key: object) -> bool:
        return bus_key in self.devices

    def values(self) -> list[Device]:
        return list(self.devices.values())


class Ratio(BaseModel):
    """Integer ratios between ethernet and accelerator device counts"""

    model_config = ConfigDict(frozen=True)

    ethernet_per_accelerator: int = 0
    accelerator_per_ethernet: int = 0

    def matches_either(self, other: "Ratio") -> bool:
        return (
            self.ethernet_per_accelerator == other.ethernet_per_accelerator
            or self.accelerator_per_ethernet == other.accelerator_per_ethernet
        )


class TopologySnapshot(BaseModel):
    """Whole-bus enumeration used by one naming run"""

    model_config = ConfigDict(frozen=True)

    ethernet: DeviceMap = Field(default_factory=DeviceMap)
    accelerators: DeviceMap = Field(default_factory=DeviceMap)
    ratio: Ratio = Field(default_factory=Ratio)
