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
Parse and build complete static data blobs.

Parsing happens in three passes:

1. a structural pass walks the blocks and checks that the blob ends with
   a well formed END block,
2. the CRC in the END block is verified,
3. the payload of every block is decoded into a typed block.
'''

from dataclasses import dataclass, field

from .CcsDataException import TruncatedInput, check_condition
from .block_reader import read_blocks, encode_block
from .blocks import EndBlock
from .blocks import decode_block, decode_end, encode_block_payload
from .definitions import BlockId, STATIC_DATA_VERSION, BLOCK_HEADER_ID_VERSION_SHIFT
from .definitions import CRC_SIZE
from .integrity import verify, append_crc
from .length_specifier import encode_length
from .rules import DEFAULT_MAX_DEPTH
from .log import log


@dataclass(frozen=True)
class StaticData:
    format_version: int
    blocks: list = field(default_factory=list)
    crc: int = None
    size: int = 0

    def blocks_with_id(self, block_id):
        return [b for b in self.blocks if b.block_id == block_id]

    def _first(self, block_id):
        for b in self.blocks:
            if b.block_id == block_id:
                return b
        return None

    def _registers(self, block_id):
        registers = []
        for b in self.blocks_with_id(block_id):
            registers.extend(b.registers)
        return registers

    def _rules(self, block_id):
        rules = []
        for b in self.blocks_with_id(block_id):
            rules.extend(b.rules)
        return rules

    @property
    def version(self):
        return self._first(BlockId.DATA_VERSION)

    @property
    def sensor_read_only_regs(self):
        return self._registers(BlockId.SENSOR_READ_ONLY_REGS)

    @property
    def module_read_only_regs(self):
        return self._registers(BlockId.MODULE_READ_ONLY_REGS)

    @property
    def sensor_manufacturer_regs(self):
        return self._registers(BlockId.SENSOR_MANUFACTURER_REGS)

    @property
    def module_manufacturer_regs(self):
        return self._registers(BlockId.MODULE_MANUFACTURER_REGS)

    @property
    def sensor_rules(self):
        return self._rules(BlockId.SENSOR_RULE_BASED_BLOCK)

    @property
    def module_rules(self):
        return self._rules(BlockId.MODULE_RULE_BASED_BLOCK)

    @property
    def sensor_pdaf(self):
        block = self._first(BlockId.SENSOR_PDAF_PIXEL_LOCATION)
        return block.pixel_location if block is not None else None

    @property
    def module_pdaf(self):
        block = self._first(BlockId.MODULE_PDAF_PIXEL_LOCATION)
        return block.pixel_location if block is not None else None

    @property
    def license(self):
        block = self._first(BlockId.LICENSE)
        return block.text if block is not None else None


def read_structure(buffer):
    '''Structural pass: return the raw blocks of buffer, which has to
    contain exactly one blob, ending with its END block.
    '''
    if len(buffer) == 0:
        raise TruncatedInput('no static data', 0)

    format_version = buffer[0] >> BLOCK_HEADER_ID_VERSION_SHIFT
    check_condition(format_version == STATIC_DATA_VERSION,
                    f"don't know how to handle static data format version {format_version}", 0)

    raw_blocks = list(read_blocks(buffer))
    if raw_blocks[-1].block_id != BlockId.END:
        raise TruncatedInput('END block missing', len(buffer))

    end_block = raw_blocks[-1]
    check_condition(end_block.end == len(buffer),
                    f'{len(buffer) - end_block.end} bytes of data after END block', end_block.end)
    decode_end(end_block.payload, end_block.payload_offset)
    return raw_blocks


def parse_static_data(buffer, strict=False, max_depth=DEFAULT_MAX_DEPTH, verify_crc=True):
    '''Parse a complete static data blob into a StaticData object.

    strict: raise UnknownBlockId for unknown block and rule ids and require
    the blob to start with a data version block.
    max_depth: maximum nesting of IF rules.
    verify_crc: check the CRC before decoding the block payloads.
    '''
    raw_blocks = read_structure(buffer)

    if verify_crc:
        verify(buffer)

    if raw_blocks[0].block_id != BlockId.DATA_VERSION:
        check_condition(not strict, 'static data does not start with a data version block', 0)
        log.warning(f'parse_static_data: first block is {raw_blocks[0].block_id:#04x}, not a data version block')

    blocks = [decode_block(b.block_id, b.payload, strict, max_depth, b.payload_offset)
              for b in raw_blocks]

    return StaticData(raw_blocks[0].format_version, blocks, blocks[-1].crc, len(buffer))


def find_static_data_end(buffer, offset=0):
    '''Walk the blocks of a blob starting at offset in a larger buffer and
    return the offset just past its END block.
    '''
    for block in read_blocks(buffer, offset, first=True):
        if block.block_id == BlockId.END:
            return block.end
    raise TruncatedInput('END block missing', len(buffer))


def encode_static_data(blocks, format_version=STATIC_DATA_VERSION):
    '''Build a blob from typed blocks. An END block with the CRC is
    appended; END blocks in blocks are not copied as their CRC would be
    stale.
    '''
    result = bytearray()
    first = True
    for block in blocks:
        if isinstance(block, EndBlock):
            continue
        block_id, payload = encode_block_payload(block)
        result += encode_block(block_id, payload, format_version if first else None)
        first = False
    check_condition(not first, 'no blocks to encode')

    _, length = encode_length(CRC_SIZE)
    result += bytes([BlockId.END]) + length
    return append_crc(result)
