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
Typed blocks: map a block id and its payload to one of the block types
of the static data format, and back.
'''

from dataclasses import dataclass, field

from kaitaistruct import KaitaiStream, BytesIO

from .CcsDataException import TruncatedInput, UnknownBlockId, check_condition
from .definitions import BlockId, CRC_SIZE
from .pdaf import PixLocTree, decode_pdaf_pixel_location, encode_pdaf_pixel_location
from .registers import decode_registers, encode_registers
from .rules import DEFAULT_MAX_DEPTH, decode_rules, encode_rules
from .log import log

DATA_VERSION_SIZE = 8

REGISTER_BLOCK_IDS = (BlockId.SENSOR_READ_ONLY_REGS, BlockId.MODULE_READ_ONLY_REGS,
                      BlockId.SENSOR_MANUFACTURER_REGS, BlockId.MODULE_MANUFACTURER_REGS)
RULE_BLOCK_IDS = (BlockId.SENSOR_RULE_BASED_BLOCK, BlockId.MODULE_RULE_BASED_BLOCK)
PDAF_BLOCK_IDS = (BlockId.SENSOR_PDAF_PIXEL_LOCATION, BlockId.MODULE_PDAF_PIXEL_LOCATION)

SENSOR_BLOCK_IDS = (BlockId.SENSOR_READ_ONLY_REGS, BlockId.SENSOR_MANUFACTURER_REGS,
                    BlockId.SENSOR_RULE_BASED_BLOCK, BlockId.SENSOR_PDAF_PIXEL_LOCATION)


@dataclass(frozen=True)
class DataVersion:
    major: int
    minor: int
    year: int
    month: int
    day: int

    block_id = BlockId.DATA_VERSION

    @property
    def date(self):
        return f'{self.year:04d}-{self.month:02d}-{self.day:02d}'


class _SensorOrModule:
    @property
    def is_sensor(self):
        return self.block_id in SENSOR_BLOCK_IDS

    @property
    def is_module(self):
        return not self.is_sensor


@dataclass(frozen=True)
class RegisterList(_SensorOrModule):
    block_id: BlockId
    registers: list = field(default_factory=list)

    @property
    def is_read_only(self):
        return self.block_id in (BlockId.SENSOR_READ_ONLY_REGS, BlockId.MODULE_READ_ONLY_REGS)

    @property
    def is_manufacturer(self):
        return not self.is_read_only


@dataclass(frozen=True)
class RuleBlock(_SensorOrModule):
    block_id: BlockId
    rules: list = field(default_factory=list)


@dataclass(frozen=True)
class PdafPixelLocation(_SensorOrModule):
    block_id: BlockId
    pixel_location: PixLocTree


@dataclass(frozen=True)
class License:
    text: bytes

    block_id = BlockId.LICENSE


@dataclass(frozen=True)
class Dummy:
    data: bytes = b''

    block_id = BlockId.DUMMY


@dataclass(frozen=True)
class EndBlock:
    crc: int

    block_id = BlockId.END


@dataclass(frozen=True)
class UnknownBlock:
    block_id: int
    payload: bytes


def decode_data_version(payload, offset=0):
    io = KaitaiStream(BytesIO(payload))
    try:
        version = DataVersion(io.read_u2be(), io.read_u2be(), io.read_u2be(),
                              io.read_u1(), io.read_u1())
    except EOFError as e:
        raise TruncatedInput(f'data version needs {DATA_VERSION_SIZE} bytes, only {len(payload)} available',
                             offset) from e
    check_condition(io.is_eof(), f'{len(payload) - DATA_VERSION_SIZE} bytes of data after data version',
                    offset + DATA_VERSION_SIZE)
    return version


def decode_end(payload, offset=0):
    if len(payload) < CRC_SIZE:
        raise TruncatedInput(f'END block needs {CRC_SIZE} bytes of CRC, only {len(payload)} available',
                             offset)
    check_condition(len(payload) == CRC_SIZE,
                    f'invalid END block length {len(payload)}', offset)
    return EndBlock(int.from_bytes(payload, byteorder='big'))


def decode_block(block_id, payload, strict=False, max_depth=DEFAULT_MAX_DEPTH, offset=0):
    '''Decode the payload of block block_id into a typed block.
    Unknown block ids are kept as UnknownBlock, unless strict is set, in
    which case UnknownBlockId is raised. offset is the position of the
    payload in the blob and is only used for error reporting.
    '''
    match block_id:
        case BlockId.DUMMY:
            return Dummy(bytes(payload))
        case BlockId.DATA_VERSION:
            return decode_data_version(payload, offset)
        case (BlockId.SENSOR_READ_ONLY_REGS | BlockId.MODULE_READ_ONLY_REGS |
              BlockId.SENSOR_MANUFACTURER_REGS | BlockId.MODULE_MANUFACTURER_REGS):
            return RegisterList(BlockId(block_id), decode_registers(payload, offset=offset))
        case BlockId.SENSOR_RULE_BASED_BLOCK | BlockId.MODULE_RULE_BASED_BLOCK:
            return RuleBlock(BlockId(block_id), decode_rules(payload, strict, max_depth, offset=offset))
        case BlockId.SENSOR_PDAF_PIXEL_LOCATION | BlockId.MODULE_PDAF_PIXEL_LOCATION:
            return PdafPixelLocation(BlockId(block_id), decode_pdaf_pixel_location(payload, offset))
        case BlockId.LICENSE:
            return License(bytes(payload))
        case BlockId.END:
            return decode_end(payload, offset)

    if strict:
        raise UnknownBlockId(f'unknown block ID {block_id:#04x}', block_id, offset)
    log.warning(f'decode_block: not handling block ID {block_id:#04x}')
    return UnknownBlock(block_id, bytes(payload))


def encode_block_payload(block):
    '''Serialise a typed block. Returns a tuple (block_id, payload).'''
    match block:
        case DataVersion():
            check_condition(all(0 <= v <= 0xffff for v in (block.major, block.minor, block.year))
                            and 0 <= block.month <= 0xff and 0 <= block.day <= 0xff,
                            f'invalid data version {block}')
            payload = block.major.to_bytes(2, byteorder='big') + block.minor.to_bytes(2, byteorder='big') \
                + block.year.to_bytes(2, byteorder='big') + bytes([block.month, block.day])
        case RegisterList():
            check_condition(block.block_id in REGISTER_BLOCK_IDS,
                            f'block ID {block.block_id} is not a register list')
            payload = encode_registers(block.registers)
        case RuleBlock():
            check_condition(block.block_id in RULE_BLOCK_IDS,
                            f'block ID {block.block_id} is not a rule based block')
            payload = encode_rules(block.rules)
        case PdafPixelLocation():
            check_condition(block.block_id in PDAF_BLOCK_IDS,
                            f'block ID {block.block_id} is not a PDAF pixel location block')
            payload = encode_pdaf_pixel_location(block.pixel_location)
        case License():
            payload = bytes(block.text)
        case Dummy():
            payload = bytes(block.data)
        case EndBlock():
            check_condition(0 <= block.crc <= 0xffffffff, f'invalid CRC {block.crc:#x}')
            payload = block.crc.to_bytes(CRC_SIZE, byteorder='big')
        case UnknownBlock():
            payload = bytes(block.payload)
        case _:
            raise TypeError(f'cannot encode {block!r} as a block')
    return block.block_id, payload
