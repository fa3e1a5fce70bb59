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

from guestnic.affinity import AffinityPlanner, MetadataClient
from guestnic.connection.inband import InBandConnection, LocalShell
from guestnic.enums import ExecutionStatus, SystemInteractionLevel
from guestnic.exceptions import GuestNicError
from guestnic.interfaces import TaskResultHook
from guestnic.models import AffinityResult, GuestNicConfig, TaskResult, TriggerEnv
from guestnic.naming import NameResult, NamingEngine


def _process_hooks(task_result: TaskResult, hooks: Optional[list[TaskResultHook]]) -> None:
    for hook in hooks or []:
        hook.process_result(task_result)


def run_naming(
    trigger: TriggerEnv,
    connection: Optional[InBandConnection] = None,
    config: Optional[GuestNicConfig] = None,
    system_interaction_level: SystemInteractionLevel | str = SystemInteractionLevel.DISRUPTIVE,
    logger: Optional[logging.Logger] = None,
    hooks: Optional[list[TaskResultHook]] = None,
) -> NameResult:
    """Name the device of one udev event

    Args:
        trigger (TriggerEnv): udev event inputs
        connection (Optional[InBandConnection], optional): connection, local shell if None
        config (Optional[GuestNicConfig], optional): config, defaults if None
        system_interaction_level (SystemInteractionLevel | str, optional): renames are only
            done at DISRUPTIVE. Defaults to SystemInteractionLevel.DISRUPTIVE.
        logger (Optional[logging.Logger], optional): logger. Defaults to None.
        hooks (Optional[list[TaskResultHook]], optional): result hooks. Defaults to None.

    Raises:
        GuestNicError: if the device can not be named

    Returns:
        NameResult: computed name
    """
    engine = NamingEngine(
        connection if connection is not None else LocalShell(),
        config=config,
        logger=logger,
        system_interaction_level=system_interaction_level,
        run_tag=trigger.run_tag,
    )
    try:
        return engine.generate_name(trigger)
    except GuestNicError as e:
        engine.result.status = ExecutionStatus.EXECUTION_FAILURE
        engine.result.message = f"Unable to name {trigger.devpath}: {e}"
        raise
    finally:
        engine.result.finalize(engine.logger)
        _process_hooks(engine.result, hooks)


def run_affinity(
    connection: Optional[InBandConnection] = None,
    config: Optional[GuestNicConfig] = None,
    system_interaction_level: SystemInteractionLevel | str = SystemInteractionLevel.DISRUPTIVE,
    logger: Optional[logging.Logger] = None,
    hooks: Optional[list[TaskResultHook]] = None,
    run_tag: Optional[str] = None,
    metadata_client: Optional[MetadataClient] = None,
) -> AffinityResult:
    """Run the boot time IRQ and XPS affinity pass"""
    planner = AffinityPlanner(
        connection if connection is not None else LocalShell(),
        config=config,
        metadata_client=metadata_client,
        logger=logger,
        system_interaction_level=system_interaction_level,
        run_tag=run_tag,
    )
    try:
        return planner.run()
    except Exception as e:
        planner.result.status = ExecutionStatus.EXECUTION_FAILURE
        planner.result.message = f"Affinity pass aborted: {e}"
        planner.result.finalize(planner.logger)
        raise
    finally:
        _process_hooks(planner.result, hooks)
