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


class GuestNicError(Exception):
    """Base class for errors raised while naming devices or planning affinity"""

    def __init__(self, message: str, data: Optional[dict] = None):
        """Initialize the error.

        Args:
            message: human readable description
            data: optional structured details, attached to events when logged
        """
        self.data = data or {}
        super().__init__(message)


class FormatError(GuestNicError):
    """Malformed cpu bitmap or range list text"""


class ParseError(GuestNicError):
    """Path does not contain a PCI address segment"""


class BoundaryError(GuestNicError):
    """Topology walk reached the filesystem root without a ratio match"""


class ConfigError(GuestNicError):
    """No naming rule applies to the device, or the system state is inconsistent"""
