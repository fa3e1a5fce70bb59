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
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from guestnic.connection.inband import CommandArtifact, LocalShell
from guestnic.models import GuestNicConfig


class FakeTree:
    """Builds a sysfs or procfs like directory tree under a temporary root"""

    def __init__(self, root: Path):
        self.root = root
        self.root.mkdir(parents=True, exist_ok=True)

    def mkdir(self, rel_path: str) -> Path:
        path = self.root / rel_path.lstrip("/")
        path.mkdir(parents=True, exist_ok=True)
        return path

    def write(self, rel_path: str, contents: str) -> Path:
        path = self.root / rel_path.lstrip("/")
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(contents)
        return path

    def read(self, rel_path: str) -> str:
        return (self.root / rel_path.lstrip("/")).read_text()

    def symlink(self, rel_path: str, target: Path) -> Path:
        path = self.root / rel_path.lstrip("/")
        path.parent.mkdir(parents=True, exist_ok=True)
        path.symlink_to(target)
        return path

    def add_pci_device(self, rel_path: str, vendor_id: str, device_id: str) -> Path:
        """Create a PCI function directory and its bus/pci/devices link"""
        path = self.mkdir(rel_path)
        self.write(f"{rel_path}/vendor", f"0x{vendor_id}\n")
        self.write(f"{rel_path}/device", f"0x{device_id}\n")
        link = self.mkdir("bus/pci/devices") / path.name
        if not link.is_symlink():
            link.symlink_to(path)
        return path

    def add_switches(self, switches: int, gpus_per_switch: int, nics_per_switch: int) -> None:
        """One root port per switch, gpus first then nics, e.g. 0000:03:01.0"""
        for switch in range(1, switches + 1):
            bridge = f"devices/pci0000:00/0000:00:0{switch}.0"
            self.add_pci_device(bridge, "1b36", "000c")
            for gpu in range(gpus_per_switch):
                self.add_pci_device(f"{bridge}/0000:0{switch}:0{gpu}.0", "10de", "2330")
            for nic in range(nics_per_switch):
                self.add_pci_device(
                    f"{bridge}/0000:0{switch}:0{gpus_per_switch + nic}.0", "15b3", "1021"
                )


@pytest.fixture
def logger():
    return logging.getLogger("test_logger")


@pytest.fixture
def conn_mock():
    return MagicMock()


@pytest.fixture
def sysfs(tmp_path):
    return FakeTree(tmp_path / "sys")


@pytest.fixture
def procfs(tmp_path):
    return FakeTree(tmp_path / "proc")


@pytest.fixture
def config(sysfs, procfs):
    return GuestNicConfig(sysfs_root=str(sysfs.root), procfs_root=str(procfs.root))


@pytest.fixture
def local_shell():
    """LocalShell reading the temporary tree, with shell commands mocked out"""
    shell = LocalShell()
    shell.run_command = MagicMock(
        return_value=CommandArtifact(command="", stdout="", stderr="", exit_code=0)
    )
    return shell
