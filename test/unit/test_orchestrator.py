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
from unittest.mock import MagicMock

import pytest

from guestnic.enums import ExecutionStatus
from guestnic.exceptions import ConfigError
from guestnic.models import TriggerEnv
from guestnic.orchestrator import run_affinity, run_naming


def test_run_naming_processes_hooks(sysfs, config, local_shell, logger):
    sysfs.add_pci_device("devices/pci0000:00/0000:00:04.0", "8086", "1452")
    hook = MagicMock()

    res = run_naming(
        TriggerEnv(devpath="/devices/pci0000:00/0000:00:04.0/net/ens4", interface="eth0"),
        connection=local_shell,
        config=config,
        logger=logger,
        hooks=[hook],
    )

    assert res.name == "eth0"
    task_result = hook.process_result.call_args.args[0]
    assert task_result.status == ExecutionStatus.OK
    assert task_result.task == "NamingEngine"


def test_run_naming_failure(sysfs, config, local_shell, logger):
    sysfs.add_pci_device("devices/pci0000:00/0000:00:06.0", "1af4", "1041")
    hook = MagicMock()

    with pytest.raises(ConfigError):
        run_naming(
            TriggerEnv(devpath="/devices/pci0000:00/0000:00:06.0/net/ens6", run_tag="7"),
            connection=local_shell,
            config=config,
            logger=logger,
            hooks=[hook],
        )

    task_result = hook.process_result.call_args.args[0]
    assert task_result.status == ExecutionStatus.EXECUTION_FAILURE
    assert task_result.run_tag == "7"
    assert "Unable to name" in task_result.message


def test_run_affinity(sysfs, config, local_shell, logger):
    sysfs.write("devices/system/cpu/online", "0-1\n")
    metadata_client = MagicMock()
    metadata_client.is_multinic_accelerator_platform.return_value = False
    hook = MagicMock()

    result = run_affinity(
        connection=local_shell,
        config=config,
        logger=logger,
        hooks=[hook],
        run_tag="boot",
        metadata_client=metadata_client,
    )

    assert result.status == ExecutionStatus.OK
    assert result.run_tag == "boot"
    hook.process_result.assert_called_once_with(result)


def test_run_affinity_processes_hooks_when_aborted(sysfs, config, local_shell, logger):
    sysfs.write("devices/system/cpu/online", "0-1\n")
    metadata_client = MagicMock()
    metadata_client.is_multinic_accelerator_platform.side_effect = RuntimeError("socket closed")
    hook = MagicMock()

    with pytest.raises(RuntimeError):
        run_affinity(
            connection=local_shell,
            config=config,
            logger=logger,
            hooks=[hook],
            metadata_client=metadata_client,
        )

    task_result = hook.process_result.call_args.args[0]
    assert task_result.status == ExecutionStatus.EXECUTION_FAILURE
    assert "socket closed" in task_result.message
