# ccsdata - MIPI CCS static data tools
#
# This file is part of ccsdata.
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.
#
# SPDX-License-Identifier: GPL-3.0-only

'''
Integrity check of a static data blob. The payload of the END block, which
is the last 4 bytes of the blob, holds a CRC-32 (as computed by zlib and
binascii) over all the data that precedes it, stored big endian.

The algorithm and byte order have not been confirmed against known good
static data from sensor vendors. Only compute_crc() and verify() depend
on them, so a correction stays within this module.
'''

import binascii

from .CcsDataException import TruncatedInput, ChecksumMismatch
from .definitions import CRC_SIZE


def compute_crc(data):
    return binascii.crc32(data) & 0xffffffff


def verify(buffer):
    '''Check the CRC trailer of buffer. Returns the CRC if it is correct,
    raises ChecksumMismatch if not. This does not look at the block
    structure at all, so it can be used on data that does not parse.
    '''
    if len(buffer) < CRC_SIZE:
        raise TruncatedInput(f'data too short for a CRC: {len(buffer)} bytes', 0)
    expected = int.from_bytes(buffer[-CRC_SIZE:], byteorder='big')
    computed = compute_crc(buffer[:-CRC_SIZE])
    if computed != expected:
        raise ChecksumMismatch(f'CRC mismatch: stored {expected:#010x}, computed {computed:#010x}',
                               expected, computed, len(buffer) - CRC_SIZE)
    return computed


def append_crc(data):
    return bytes(data) + compute_crc(data).to_bytes(CRC_SIZE, byteorder='big')
