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
Length specifiers are used in block headers and in rule records. The two
top bits of the first byte select how many bytes the specifier uses, the
remaining bits (and any following bytes) hold the length, most
significant byte first:

    tag 0: 1 byte,  6 bit length
    tag 1: 2 bytes, 14 bit length
    tag 2: 3 bytes, 22 bit length
'''

from kaitaistruct import KaitaiStream, BytesIO

from .CcsDataException import TruncatedInput, LengthOverflow, InvalidSelector
from .definitions import LengthSpecifier, LENGTH_SPECIFIER_SIZE_SHIFT

LENGTH_VALUE_MASK = (1 << LENGTH_SPECIFIER_SIZE_SHIFT) - 1

MAX_LENGTH = {
    LengthSpecifier.LENGTH_1: LENGTH_VALUE_MASK,
    LengthSpecifier.LENGTH_2: (LENGTH_VALUE_MASK << 8) | 0xff,
    LengthSpecifier.LENGTH_3: (LENGTH_VALUE_MASK << 16) | 0xffff,
}


def length_width(width_tag):
    '''Number of bytes used by a length specifier with width_tag'''
    try:
        return LengthSpecifier(width_tag) + 1
    except ValueError:
        raise InvalidSelector(f'invalid length specifier size {width_tag}')


def read_length(io, width_tag=None, base_offset=0):
    '''Read a length specifier from the current position of KaitaiStream
    io. Returns a tuple (length, bytes_consumed). base_offset is added to
    stream positions in error offsets.
    '''
    start = io.pos()
    try:
        first = io.read_u1()
        tag = first >> LENGTH_SPECIFIER_SIZE_SHIFT
        if tag > LengthSpecifier.LENGTH_3:
            raise InvalidSelector(f'invalid length specifier size {tag}',
                                  base_offset + start)
        if width_tag is not None and width_tag != tag:
            raise InvalidSelector(f'length specifier size {tag}, expected {width_tag}',
                                  base_offset + start)

        value = first & LENGTH_VALUE_MASK
        for _ in range(tag):
            value = (value << 8) | io.read_u1()
    except EOFError as e:
        raise TruncatedInput('length specifier truncated', base_offset + start) from e
    return value, io.pos() - start


def decode_length(buffer, offset=0, width_tag=None):
    '''Decode the length specifier at offset in buffer.
    Returns a tuple (length, bytes_consumed).
    '''
    if offset > len(buffer):
        raise TruncatedInput('length specifier starts beyond end of data', offset)
    io = KaitaiStream(BytesIO(buffer))
    io.seek(offset)
    return read_length(io, width_tag)


def encode_length(value, width_tag=None):
    '''Encode value as a length specifier. The narrowest width that can
    hold value is used unless width_tag is given.
    Returns a tuple (width_tag, bytes).
    '''
    if value < 0:
        raise LengthOverflow(f'negative length {value}')

    if width_tag is None:
        for tag in LengthSpecifier:
            if value <= MAX_LENGTH[tag]:
                width_tag = tag
                break
        else:
            raise LengthOverflow(f'length {value} exceeds maximum {MAX_LENGTH[LengthSpecifier.LENGTH_3]}')
    else:
        width = length_width(width_tag)
        width_tag = LengthSpecifier(width - 1)
        if value > MAX_LENGTH[width_tag]:
            raise LengthOverflow(f'length {value} does not fit in {width} byte(s)')

    raw = bytearray(value.to_bytes(width_tag + 1, byteorder='big'))
    raw[0] |= width_tag << LENGTH_SPECIFIER_SIZE_SHIFT
    return width_tag, bytes(raw)
