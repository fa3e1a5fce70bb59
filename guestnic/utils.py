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
import re
import traceback
from enum import Enum


class AutoNameStrEnum(Enum):
    """For enums where the value is the same as the name of the attribute"""

    @staticmethod
    def _generate_next_value_(name, start, count, last_values):
        """Name is the attributes name and the return will be its value"""
        return name


def get_exception_traceback(exception: Exception) -> dict:
    """get traceback and exception type from an exception

    Args:
        exception (Exception): exception

    Returns:
        dict: exception details dict
    """
    return {
        "exception_type": type(exception).__name__,
        "traceback": traceback.format_tb(exception.__traceback__),
    }


def get_exception_details(exception: Exception) -> dict:
    """get exception as a string and format in dictionary for event

    Args:
        exception (Exception): exception

    Returns:
        dict: exception details dict
    """
    return {
        "details": str(exception)[:1000],
    }


def strip_hex_prefix(value: str) -> str:
    """Normalize a sysfs id attribute such as '0x15b3' to '15b3'

    Args:
        value (str): raw attribute contents

    Returns:
        str: lower case hex digits without prefix
    """
    value = value.strip().lower()
    if value.startswith("0x"):
        value = value[2:]
    return value


def pascal_to_snake(input_str: str) -> str:
    """Convert PascalCase to snake_case

    Args:
        input_str (str): string to convert

    Returns:
        str: converted string
    """
    if input_str.isupper():
        return input_str.lower()
    return ("_").join(re.split("(?<=.)(?=[A-Z])", input_str)).lower()


def get_unique_filename(directory: str, filename: str) -> str:
    """Return filename, or filename with a (N) suffix if it already exists in directory

    Args:
        directory (str): directory of the file to be saved
        filename (str): proposed file name

    Returns:
        str: unique file name
    """
    filepath = os.path.join(directory, filename)
    if not os.path.isfile(filepath):
        return filename
    name, ext = os.path.splitext(filename)
    count = 1
    while True:
        new_name = f"{name}({count}){ext}"
        if not os.path.exists(os.path.join(directory, new_name)):
            return new_name
        count += 1
