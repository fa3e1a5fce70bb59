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
from enum import auto, unique

from guestnic.utils import AutoNameStrEnum


@unique
class EventCategory(AutoNameStrEnum):
    """Class defining shared event categories
    - PCI
        PCI enumeration and topology walk problems, unknown device shapes
    - NAMING
        Interface naming decisions and live link renames
    - IRQ
        Interrupt affinity writes, affinity hint handling
    - XPS
        Transmit packet steering mask writes
    - MULTIQUEUE
        ethtool channel configuration
    - NUMA
        NUMA node range discovery and device to node mapping
    - METADATA
        Metadata service queries used for platform classification
    - RUNTIME
        Framework issues, unexpected exceptions
    """

    PCI = auto()
    NAMING = auto()
    IRQ = auto()
    XPS = auto()
    MULTIQUEUE = auto()
    NUMA = auto()
    METADATA = auto()
    RUNTIME = auto()
