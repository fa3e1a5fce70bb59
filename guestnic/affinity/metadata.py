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
from typing import Optional

import requests

from guestnic.constants import DEFAULT_LOGGER, METADATA_HEADERS, METADATA_URL


class MetadataClient:
    """Minimal client for the instance metadata service"""

    def __init__(
        self,
        url: str = METADATA_URL,
        timeout: float = 1.0,
        logger: Optional[logging.Logger] = None,
    ):
        self.url = url.rstrip("/")
        self.timeout = timeout
        if logger is None:
            logger = logging.getLogger(DEFAULT_LOGGER)
        self.logger = logger

    def get(self, path: str, params: Optional[dict] = None) -> requests.Response:
        """GET a metadata path

        Args:
            path (str): path below the metadata root, e.g. instance/machine-type
            params (Optional[dict], optional): query parameters. Defaults to None.

        Raises:
            requests.RequestException: on connection failure, timeout or error status

        Returns:
            requests.Response: response
        """
        url = f"{self.url}/{path.lstrip('/')}"
        self.logger.debug("Querying metadata %s", url)
        response = requests.get(url, headers=METADATA_HEADERS, params=params, timeout=self.timeout)
        response.raise_for_status()
        return response

    def machine_type(self) -> str:
        """Machine type name, without the projects/<n>/machineTypes/ prefix"""
        return self.get("instance/machine-type").text.strip().split("/")[-1]

    def network_interfaces(self) -> list[dict]:
        interfaces = self.get("instance/network-interfaces/", params={"recursive": "true"}).json()
        if not isinstance(interfaces, list):
            raise ValueError(f"Unexpected network-interfaces payload: {type(interfaces).__name__}")
        return interfaces

    def is_multinic_accelerator_platform(self, accelerator_machine_types: list[str]) -> bool:
        """Check if the instance is a multi-NIC accelerator platform

        Every network interface carrying a physicalNicId identifies the platform; otherwise
        the machine type is looked up in accelerator_machine_types.

        Raises:
            requests.RequestException: if the metadata service can not be queried
            ValueError: if a response can not be decoded

        Returns:
            bool: True for multi-NIC accelerator platforms
        """
        interfaces = self.network_interfaces()
        if interfaces and all(
            isinstance(nic, dict) and "physicalNicId" in nic for nic in interfaces
        ):
            return True
        return self.machine_type() in accelerator_machine_types
