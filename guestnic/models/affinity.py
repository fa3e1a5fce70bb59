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
from pydantic import BaseModel, ConfigDict, Field, model_validator
from typing_extensions import Self

from .taskresult import TaskResult


class CpuRange(BaseModel):
    """Inclusive range of vCPU indices"""

    model_config = ConfigDict(frozen=True)

    start: int = Field(ge=0)
    end: int = Field(ge=0)

    @model_validator(mode="after")
    def validate_bounds(self) -> Self:
        if self.end < self.start:
            raise ValueError(f"CpuRange end {self.end} is below start {self.start}")
        return self

    def cpus(self) -> list[int]:
        return list(range(self.start, self.end + 1))


class NumaNode(BaseModel):
    """vCPU ranges owned by one NUMA node"""

    model_config = ConfigDict(frozen=True)

    node_id: int
    ranges: list[CpuRange] = Field(default_factory=list)

    @classmethod
    def from_cpus(cls, node_id: int, cpus: list[int]) -> "NumaNode":
        """Group cpu indices into contiguous ranges"""
        ranges: list[CpuRange] = []
        for cpu in sorted(set(cpus)):
            if ranges and ranges[-1].end + 1 == cpu:
                ranges[-1] = CpuRange(start=ranges[-1].start, end=cpu)
            else:
                ranges.append(CpuRange(start=cpu, end=cpu))
        return cls(node_id=node_id, ranges=ranges)

    def cpus(self) -> list[int]:
        cpus: list[int] = []
        for cpu_range in self.ranges:
            cpus.extend(cpu_range.cpus())
        return sorted(set(cpus))


class QueueAssignment(BaseModel):
    """IRQ and XPS placement of one queue pair"""

    device_name: str
    queue_index: int
    irq_number_tx: int | None = None
    irq_number_rx: int | None = None
    irq_cpus: str = ""  # range list written to smp_affinity_list
    xps_cpus: str = ""  # range list, written to xps_cpus as a bitmap


class AffinityResult(TaskResult):
    """Result of an affinity pass, with the queue assignments it produced"""

    multinic_platform: bool = False
    assignments: list[QueueAssignment] = Field(default_factory=list)
