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
PDAF (phase detection auto focus) pixel location data and PDAF readout
descriptions.

The pixel location data describes the position of the PDAF pixels in the
pixel array as a repeating pattern of blocks:

    header: main offset x/y, global PDAF type, block width and height,
            number of block descriptor groups
    block descriptor groups: number of block descriptors and repeat_y,
            followed by the block descriptors (block type id, repeat_x)
    pixel descriptor groups: one for each block type id from 0 up to the
            highest id used in the block descriptors, each a count followed
            by pixel descriptors (pixel type, small offset x/y)

All multi-byte values are big endian.
'''

from dataclasses import dataclass, field

from kaitaistruct import KaitaiStream, BytesIO

from .CcsDataException import TruncatedInput, check_condition
from .definitions import PdafPixelType, PdafReadoutOrder, to_enum
from .ffd import FfdTable, read_ffd, encode_ffd


@dataclass(frozen=True)
class PixelDesc:
    pixel_type: int
    small_offset_x: int
    small_offset_y: int


@dataclass(frozen=True)
class BlockDesc:
    block_type_id: int
    repeat_x: int


@dataclass(frozen=True)
class BlockDescGroup:
    repeat_y: int
    block_descs: list = field(default_factory=list)


@dataclass(frozen=True)
class PixLocTree:
    main_offset_x: int
    main_offset_y: int
    global_pdaf_type: int
    block_width: int
    block_height: int
    block_desc_groups: list = field(default_factory=list)
    pixel_desc_groups: list = field(default_factory=list)

    @property
    def num_block_types(self):
        return block_type_count(self.block_desc_groups)

    def pixel_descs_for(self, block_type_id):
        return self.pixel_desc_groups[block_type_id]


@dataclass(frozen=True)
class PdafReadout:
    order: int
    ffd: FfdTable
    reserved: int = 0


def block_type_count(block_desc_groups):
    '''Number of pixel descriptor groups that follow the block descriptor
    groups: one per block type id up to the highest one used.
    '''
    num_block_types = 0
    for group in block_desc_groups:
        for block_desc in group.block_descs:
            num_block_types = max(num_block_types, block_desc.block_type_id + 1)
    return num_block_types


def _read_field(io, read, what, offset):
    '''Read one field with read(). A field cut short is reported at the
    position where it starts.
    '''
    start = io.pos()
    try:
        return read()
    except EOFError as e:
        raise TruncatedInput(f'PDAF {what} truncated', offset + start) from e


def decode_pdaf_pixel_location(payload, offset=0):
    '''Decode PDAF pixel location data. offset is the position of the
    payload in the blob and is only used for error reporting.
    '''
    io = KaitaiStream(BytesIO(payload))

    def u1(what):
        return _read_field(io, io.read_u1, what, offset)

    def u2(what):
        return _read_field(io, io.read_u2be, what, offset)

    main_offset_x = u2('main offset x')
    main_offset_y = u2('main offset y')
    global_pdaf_type = u1('global PDAF type')
    block_width = u1('block width')
    block_height = u1('block height')
    num_block_desc_groups = u2('number of block descriptor groups')

    block_desc_groups = []
    for _ in range(num_block_desc_groups):
        num_block_descs = u2('number of block descriptors')
        repeat_y = u1('repeat y')
        block_descs = []
        for _ in range(num_block_descs):
            block_type_id = u1('block type id')
            repeat_x = u2('repeat x')
            block_descs.append(BlockDesc(block_type_id, repeat_x))
        block_desc_groups.append(BlockDescGroup(repeat_y, block_descs))

    pixel_desc_groups = []
    for _ in range(block_type_count(block_desc_groups)):
        num_pixel_descs = u1('number of pixel descriptors')
        pixel_descs = []
        for _ in range(num_pixel_descs):
            pixel_type = to_enum(PdafPixelType, u1('pixel type'))
            small_offset_x = u1('small offset x')
            small_offset_y = u1('small offset y')
            pixel_descs.append(PixelDesc(pixel_type, small_offset_x, small_offset_y))
        pixel_desc_groups.append(pixel_descs)

    check_condition(io.is_eof(),
                    f'{len(payload) - io.pos()} bytes of data after PDAF pixel location data',
                    offset + io.pos())

    return PixLocTree(main_offset_x, main_offset_y, global_pdaf_type, block_width,
                      block_height, block_desc_groups, pixel_desc_groups)


def _u8(value, what):
    check_condition(0 <= value <= 0xff, f'{what} {value} out of range')
    return bytes([value])


def _u16(value, what):
    check_condition(0 <= value <= 0xffff, f'{what} {value} out of range')
    return value.to_bytes(2, byteorder='big')


def encode_pdaf_pixel_location(tree):
    check_condition(len(tree.pixel_desc_groups) == tree.num_block_types,
                    f'{len(tree.pixel_desc_groups)} pixel descriptor groups, block descriptors need {tree.num_block_types}')

    result = bytearray()
    result += _u16(tree.main_offset_x, 'main offset x')
    result += _u16(tree.main_offset_y, 'main offset y')
    result += _u8(tree.global_pdaf_type, 'global PDAF type')
    result += _u8(tree.block_width, 'block width')
    result += _u8(tree.block_height, 'block height')
    result += _u16(len(tree.block_desc_groups), 'number of block descriptor groups')

    for group in tree.block_desc_groups:
        result += _u16(len(group.block_descs), 'number of block descriptors')
        result += _u8(group.repeat_y, 'repeat y')
        for block_desc in group.block_descs:
            result += _u8(block_desc.block_type_id, 'block type id')
            result += _u16(block_desc.repeat_x, 'repeat x')

    for pixel_descs in tree.pixel_desc_groups:
        result += _u8(len(pixel_descs), 'number of pixel descriptors')
        for pixel_desc in pixel_descs:
            result += _u8(pixel_desc.pixel_type, 'pixel type')
            result += _u8(pixel_desc.small_offset_x, 'small offset x')
            result += _u8(pixel_desc.small_offset_y, 'small offset y')

    return bytes(result)


def decode_pdaf_readout(payload, offset=0):
    io = KaitaiStream(BytesIO(payload))
    reserved = _read_field(io, io.read_u1, 'readout reserved byte', offset)
    order = to_enum(PdafReadoutOrder, _read_field(io, io.read_u1, 'readout order', offset))
    return PdafReadout(order, read_ffd(io, len(payload), offset), reserved)


def encode_pdaf_readout(readout):
    return _u8(readout.reserved, 'reserved') + _u8(readout.order, 'readout order') + encode_ffd(readout.ffd)
