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
import pytest

from guestnic.codec import (
    bitmap_to_rangelist,
    fit_bitmap,
    format_rangelist,
    parse_rangelist,
    rangelist_to_bitmap,
)
from guestnic.exceptions import FormatError


def test_rangelist_to_bitmap_example():
    assert (
        rangelist_to_bitmap("0-9,44-55", 55) == "00000000,00000000,00fff000,000003ff"
    )


def test_bitmap_to_rangelist_example():
    assert bitmap_to_rangelist("00000000,00000000,00fff000,000003ff") == "0-9,44-55"


@pytest.mark.parametrize(
    "ranges, hint",
    [
        ("0", 0),
        ("0-9,44-55", 55),
        ("1,3,5-7", 7),
        ("8-15", 15),
        ("0-95", 95),
        ("", 31),
    ],
)
def test_round_trip(ranges, hint):
    assert bitmap_to_rangelist(rangelist_to_bitmap(ranges, hint)) == ranges


def test_bitmap_grows_past_hint():
    assert rangelist_to_bitmap("40", 3) == "00000100,00000000"


@pytest.mark.parametrize(
    "ranges, expected",
    [
        ("", []),
        ("3", [3]),
        ("0-3,8", [0, 1, 2, 3, 8]),
        ("8,0-1", [0, 1, 8]),
        (" 2-4\n", [2, 3, 4]),
    ],
)
def test_parse_rangelist(ranges, expected):
    assert parse_rangelist(ranges) == expected


@pytest.mark.parametrize("ranges", ["a-b", "1,,2", "5-3", "1-2-3", "-1", "0x3"])
def test_parse_rangelist_invalid(ranges):
    with pytest.raises(FormatError):
        parse_rangelist(ranges)


def test_format_rangelist():
    assert format_rangelist([5, 1, 2, 3, 9, 10]) == "1-3,5,9-10"
    assert format_rangelist([]) == ""


@pytest.mark.parametrize("bitmap", ["", "xyz", "ff,,ff", "000000001,00000000"])
def test_bitmap_to_rangelist_invalid(bitmap):
    with pytest.raises(FormatError):
        bitmap_to_rangelist(bitmap)


def test_negative_hint():
    with pytest.raises(FormatError):
        rangelist_to_bitmap("0", -1)


@pytest.mark.parametrize(
    "bitmap, nbits, expected",
    [
        ("00000000,00000000,00fff000,000003ff", 56, "00fff000,000003ff"),
        ("00000000,00000005", 4, "00000005"),
        ("00000001,00000000", 4, "00000001,00000000"),
        ("00000005", 4, "00000005"),
    ],
)
def test_fit_bitmap(bitmap, nbits, expected):
    assert fit_bitmap(bitmap, nbits) == expected
