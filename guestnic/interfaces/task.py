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
import abc
import logging
from enum import Enum
from typing import Optional

from guestnic.constants import DEFAULT_LOGGER
from guestnic.enums import EventCategory, EventPriority, SystemInteractionLevel
from guestnic.models import Event, TaskResult


class Task(abc.ABC):
    """Parent class for units of work that record events into a TaskResult"""

    TASK_TYPE = "TASK"

    RESULT_TYPE: type[TaskResult] = TaskResult

    def __init__(
        self,
        logger: Optional[logging.Logger] = None,
        system_interaction_level: SystemInteractionLevel | str = SystemInteractionLevel.DISRUPTIVE,
        run_tag: Optional[str] = None,
    ):
        if logger is None:
            logger = logging.getLogger(DEFAULT_LOGGER)
        self.logger = logger

        if isinstance(system_interaction_level, str):
            system_interaction_level = getattr(SystemInteractionLevel, system_interaction_level)
        self.system_interaction_level = system_interaction_level

        self.run_tag = run_tag
        self.result = self._init_result()

    def _init_result(self) -> TaskResult:
        return self.RESULT_TYPE(task=self.__class__.__name__, run_tag=self.run_tag)

    def _allowed(self, level: SystemInteractionLevel) -> bool:
        return self.system_interaction_level >= level

    def _log_event(
        self,
        category: EventCategory | Enum | str,
        description: str,
        data: Optional[dict] = None,
        priority: EventPriority = EventPriority.INFO,
        console_log: bool = False,
    ) -> Event:
        """Add an event to the task result

        Args:
            category (EventCategory | Enum | str): event category
            description (str): event description
            data (Optional[dict], optional): structured event data. Defaults to None.
            priority (EventPriority, optional): event priority. Defaults to EventPriority.INFO.
            console_log (bool, optional): also write the event to the logger. Defaults to False.

        Returns:
            Event: the recorded event
        """
        event = Event(
            category=category,
            description=description,
            data=data or {},
            priority=priority,
            run_tag=self.run_tag,
        )
        self.result.events.append(event)

        if console_log or priority >= EventPriority.WARNING:
            self.logger.log(
                event.priority.log_level,
                "[%s] %s",
                event.category,
                description,
            )
        return event
