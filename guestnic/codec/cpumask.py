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
"""Conversions between cpu bitmaps and cpu range lists.

A bitmap is the kernel's cpumask text: 32-bit words of 8 hex digits separated by
commas, most significant word first, e.g. ``00000000,00fff000,000003ff``.
A range list is the ``cpulist`` text: ascending single values or dashed ranges,
e.g. ``0-9,44-55``.
"""

import re
from typing import Iterable

from guestnic.exceptions import FormatError

RANGELIST_RE = re.compile(r"^[0-9,\-]*$")
BITMAP_RE = re.compile(r"^[0-9a-fA-F,]*$")

WORD_BITS = 32
WORD_HEX_DIGITS = 8


def parse_rangelist(ranges: str) -> list[int]:
    """Expand a range list into a sorted list of cpu indices

    Args:
        ranges (str): range list text, e.g. "0-3,8"

    Raises:
        FormatError: if the text contains characters other than digits, commas and dashes,
            or a token is not a number or an ascending range

    Returns:
        list[int]: sorted, de-duplicated cpu indices
    """
    ranges = ranges.strip()
    if not RANGELIST_RE.match(ranges):
        raise FormatError(f"Invalid characters in range list: {ranges!r}", {"ranges": ranges})
    if not ranges:
        return []

    cpus: set[int] = set()
    for token in ranges.split(","):
        bounds = token.split("-")
        if len(bounds) == 1 and bounds[0]:
            cpus.add(int(bounds[0]))
        elif len(bounds) == 2 and bounds[0] and bounds[1]:
            start, end = int(bounds[0]), int(bounds[1])
            if end < start:
                raise FormatError(f"Descending range {token!r} in {ranges!r}", {"ranges": ranges})
            cpus.update(range(start, end + 1))
        else:
            raise FormatError(f"Malformed token {token!r} in {ranges!r}", {"ranges": ranges})
    return sorted(cpus)


def format_rangelist(cpus: Iterable[int]) -> str:
    """Render cpu indices as a canonical range list

    Args:
        cpus (Iterable[int]): cpu indices in any order

    Returns:
        str: ascending, coalesced range list, "" for no cpus
    """
    tokens = []
    start = prev = None
    for cpu in sorted(set(cpus)):
        if start is None:
            start = prev = cpu
        elif cpu == prev + 1:
            prev = cpu
        else:
            tokens.append(_range_token(start, prev))
            start = prev = cpu
    if start is not None:
        tokens.append(_range_token(start, prev))
    return ",".join(tokens)


def _range_token(start: int, end: int) -> str:
    return str(start) if start == end else f"{start}-{end}"


def _word_count(highest_hint: int) -> int:
    return highest_hint // 16 + 1


def rangelist_to_bitmap(ranges: str, highest_hint: int) -> str:
    """Convert a range list to a comma grouped hex bitmap

    Args:
        ranges (str): range list text, e.g. "0-9,44-55"
        highest_hint (int): highest cpu index the bitmap should be sized for

    Raises:
        FormatError: on malformed range list text or a negative hint

    Returns:
        str: bitmap, e.g. "00000000,00000000,00fff000,000003ff" for ("0-9,44-55", 55)
    """
    if highest_hint < 0:
        raise FormatError(f"Invalid highest cpu hint: {highest_hint}")

    cpus = parse_rangelist(ranges)
    word_count = _word_count(highest_hint)
    if cpus:
        word_count = max(word_count, cpus[-1] // WORD_BITS + 1)

    value = 0
    for cpu in cpus:
        value |= 1 << cpu

    words = []
    for index in reversed(range(word_count)):
        words.append(f"{(value >> (index * WORD_BITS)) & 0xFFFFFFFF:08x}")
    return ",".join(words)


def bitmap_to_rangelist(bitmap: str) -> str:
    """Convert a comma grouped hex bitmap to a range list

    Words are read from the right, least significant bit first. Every comma separated
    word stands for 32 bits, as in the kernel's cpumask text.

    Args:
        bitmap (str): bitmap text, e.g. "00fff000,000003ff"

    Raises:
        FormatError: on characters other than hex digits and commas, empty words,
            or a word wider than 32 bits in a multi word bitmap

    Returns:
        str: range list, "" when no bit is set
    """
    bitmap = bitmap.strip()
    if not bitmap or not BITMAP_RE.match(bitmap):
        raise FormatError(f"Invalid bitmap: {bitmap!r}", {"bitmap": bitmap})

    words = bitmap.split(",")
    if any(not word for word in words):
        raise FormatError(f"Empty word in bitmap: {bitmap!r}", {"bitmap": bitmap})
    if len(words) > 1 and any(len(word) > WORD_HEX_DIGITS for word in words):
        raise FormatError(f"Bitmap word wider than 32 bits: {bitmap!r}", {"bitmap": bitmap})

    cpus = []
    for word_index, word in enumerate(reversed(words)):
        for digit_index, digit in enumerate(reversed(word)):
            nibble = int(digit, 16)
            base = word_index * WORD_BITS + digit_index * 4
            for bit in range(4):
                if nibble >> bit & 1:
                    cpus.append(base + bit)
    return format_rangelist(cpus)


def fit_bitmap(bitmap: str, nbits: int) -> str:
    """Drop leading all-zero words until the bitmap holds ceil(nbits / 32) words

    Kernel cpumask files reject more words than there are possible cpus.

    Args:
        bitmap (str): bitmap text
        nbits (int): number of cpus the target file covers

    Raises:
        FormatError: on malformed bitmap text

    Returns:
        str: trimmed bitmap, words holding set bits are never dropped
    """
    if not bitmap or not BITMAP_RE.match(bitmap):
        raise FormatError(f"Invalid bitmap: {bitmap!r}", {"bitmap": bitmap})

    words = bitmap.split(",")
    target = max(1, -(-nbits // WORD_BITS))
    while len(words) > target and int(words[0] or "0", 16) == 0:
        words.pop(0)
    return ",".join(words)
