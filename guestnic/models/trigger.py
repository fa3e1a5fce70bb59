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
import uuid
from typing import Mapping, Optional

from pydantic import BaseModel, Field


class TriggerEnv(BaseModel):
    """Device event inputs handed over by the udev dispatcher"""

    devpath: str  # sysfs path of the event device, relative to the sysfs root
    subsystem: str = ""
    driver: Optional[str] = None
    interface: Optional[str] = None  # current kernel name of the net device
    id_net_name_path: Optional[str] = None  # path based name computed by udev
    run_tag: str = Field(default_factory=lambda: uuid.uuid4().hex[:8])

    @classmethod
    def from_environ(cls, environ: Optional[Mapping[str, str]] = None) -> "TriggerEnv":
        """Build the trigger from udev environment variables

        Args:
            environ (Optional[Mapping[str, str]]): environment, os.environ if None

        Returns:
            TriggerEnv: trigger inputs
        """
        if environ is None:
            environ = os.environ

        data = {
            "devpath": environ.get("DEVPATH", ""),
            "subsystem": environ.get("SUBSYSTEM", ""),
            "driver": environ.get("ID_NET_DRIVER") or environ.get("DRIVER"),
            "interface": environ.get("INTERFACE"),
            "id_net_name_path": environ.get("ID_NET_NAME_PATH"),
        }
        if environ.get("SEQNUM"):
            data["run_tag"] = environ["SEQNUM"]
        return cls(**data)
