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
Numeric definitions of the MIPI CCS static data format: block ids, rule
ids, register descriptor bit fields and the enumerations used in FFD and
PDAF descriptors.
'''

from enum import IntEnum

# the only static data format version that is understood
STATIC_DATA_VERSION = 0

# width tag of a length specifier, stored in the top bits of its first byte
LENGTH_SPECIFIER_SIZE_SHIFT = 6

# the first block of a blob carries the format version in its id byte
BLOCK_HEADER_ID_VERSION_SHIFT = 5
BLOCK_HEADER_ID_MASK = (1 << BLOCK_HEADER_ID_VERSION_SHIFT) - 1

# register descriptors
REGS_ADDR_MASK = 0x07
REGS_LEN_SHIFT = 3
REGS_LEN_MASK = 0x38
REGS_SEL_SHIFT = 6

REGS_2_ADDR_MASK = 0x01
REGS_2_LEN_SHIFT = 1
REGS_2_LEN_MASK = 0x3e

REGS_3_LEN_MASK = 0x3f

# size of the CRC stored in the payload of the END block
CRC_SIZE = 4


class LengthSpecifier(IntEnum):
    LENGTH_1 = 0
    LENGTH_2 = 1
    LENGTH_3 = 2


class BlockId(IntEnum):
    DUMMY = 1
    DATA_VERSION = 2
    SENSOR_READ_ONLY_REGS = 3
    MODULE_READ_ONLY_REGS = 4
    SENSOR_MANUFACTURER_REGS = 5
    MODULE_MANUFACTURER_REGS = 6
    SENSOR_RULE_BASED_BLOCK = 32
    MODULE_RULE_BASED_BLOCK = 33
    SENSOR_PDAF_PIXEL_LOCATION = 36
    MODULE_PDAF_PIXEL_LOCATION = 37
    LICENSE = 40
    END = 127


class RegsSelector(IntEnum):
    REGS = 0
    REGS2 = 1
    REGS3 = 2


class RuleId(IntEnum):
    IF = 1
    READ_ONLY_REGS = 2
    FFD = 3
    MSR = 4
    PDAF_READOUT = 5


class FfdPixelcode(IntEnum):
    EMBEDDED = 1
    DUMMY = 2
    BLACK = 3
    DARK = 4
    VISIBLE = 5
    MS_0 = 8
    MS_1 = 9
    MS_2 = 10
    MS_3 = 11
    MS_4 = 12
    MS_5 = 13
    MS_6 = 14
    TOP_OB = 16
    BOTTOM_OB = 17
    LEFT_OB = 18
    RIGHT_OB = 19
    TOP_LEFT_OB = 20
    TOP_RIGHT_OB = 21
    BOTTOM_LEFT_OB = 22
    BOTTOM_RIGHT_OB = 23
    TOTAL = 24
    TOP_PDAF = 32
    BOTTOM_PDAF = 33
    LEFT_PDAF = 34
    RIGHT_PDAF = 35
    TOP_LEFT_PDAF = 36
    TOP_RIGHT_PDAF = 37
    BOTTOM_LEFT_PDAF = 38
    BOTTOM_RIGHT_PDAF = 39
    SEPARATED_PDAF = 40
    ORIGINAL_ORDER_PDAF = 41
    # same value: an alias of ORIGINAL_ORDER_PDAF, not a separate code
    VENDOR_PDAF = 41


class PdafReadoutOrder(IntEnum):
    ORIGINAL = 1
    SEPARATE_WITHIN_LINE = 2
    SEPARATE_TYPES_SEPARATE_LINES = 3


class PdafPixelType(IntEnum):
    LEFT_SEPARATED = 0
    RIGHT_SEPARATED = 1
    TOP_SEPARATED = 2
    BOTTOM_SEPARATED = 3
    LEFT_SIDE_BY_SIDE = 4
    RIGHT_SIDE_BY_SIDE = 5
    TOP_SIDE_BY_SIDE = 6
    BOTTOM_SIDE_BY_SIDE = 7
    TOP_LEFT = 8
    TOP_RIGHT = 9
    BOTTOM_LEFT = 10
    BOTTOM_RIGHT = 11


def to_enum(enum_class, value):
    '''Return the member of enum_class for value, or the plain integer if
    the value is not (yet) known. Unknown values are kept so newer data
    can be decoded and written back without losing information.
    '''
    try:
        return enum_class(value)
    except ValueError:
        return value


def enum_name(value):
    '''Printable name for a value returned by to_enum()'''
    if isinstance(value, IntEnum):
        return value.name
    return f'unknown ({value})'
