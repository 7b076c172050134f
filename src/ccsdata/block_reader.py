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
Walk a buffer as a sequence of self-delimited blocks.

A block is an id byte, a length specifier and a payload of that length.
In the very first block of a blob the id byte also carries the static
data format version in its top three bits. Rule based blocks contain a
similar sequence of rule records: a length specifier followed by a rule id
byte and the rule body, where the length covers the rule id and the body.
'''

from dataclasses import dataclass

from kaitaistruct import KaitaiStream, BytesIO

from .CcsDataException import TruncatedInput, check_condition
from .definitions import BlockId, BLOCK_HEADER_ID_MASK, BLOCK_HEADER_ID_VERSION_SHIFT, to_enum
from .length_specifier import read_length, encode_length
from .log import log


@dataclass(frozen=True)
class Block:
    block_id: int
    payload: bytes
    offset: int
    header_length: int
    format_version: int = None

    @property
    def payload_offset(self):
        return self.offset + self.header_length

    @property
    def size(self):
        return self.header_length + len(self.payload)

    @property
    def end(self):
        return self.offset + self.size

    @property
    def kind(self):
        return to_enum(BlockId, self.block_id)


@dataclass(frozen=True)
class RuleRecord:
    rule_id: int
    body: bytes
    offset: int
    header_length: int

    @property
    def body_offset(self):
        return self.offset + self.header_length

    @property
    def end(self):
        return self.body_offset + len(self.body)


def _open_stream(buffer, offset, end):
    if end is None:
        end = len(buffer)
    check_condition(0 <= offset <= end <= len(buffer),
                    f'invalid range [{offset}:{end}] for {len(buffer)} bytes of data',
                    offset)
    io = KaitaiStream(BytesIO(buffer[:end]))
    io.seek(offset)
    return io, end


def _read_payload(io, length, end, what, header_offset):
    available = end - io.pos()
    if length > available:
        raise TruncatedInput(f'{what} needs {length} bytes, only {available} available',
                             header_offset)
    return io.read_bytes(length)


def read_blocks(buffer, offset=0, end=None, first=None, base_offset=0):
    '''Lazily yield the blocks in buffer[offset:end]. Iteration stops
    after the END block, or when the range is exhausted. A block that
    does not fit in the range raises TruncatedInput.

    If first is True (the default when starting at offset 0) the first
    block is treated as the first block of a blob and the format version
    is split off its id byte. base_offset is added to all reported offsets.
    '''
    io, end = _open_stream(buffer, offset, end)
    if first is None:
        first = offset == 0

    while io.pos() < end:
        block_offset = io.pos()
        id_byte = io.read_u1()
        format_version = None
        if first:
            format_version = id_byte >> BLOCK_HEADER_ID_VERSION_SHIFT
            block_id = id_byte & BLOCK_HEADER_ID_MASK
        else:
            block_id = id_byte

        if io.pos() == end:
            raise TruncatedInput(f'block {block_id:#04x} has no length specifier',
                                 base_offset + block_offset)
        length, length_size = read_length(io, base_offset=base_offset)
        header_length = 1 + length_size

        log.debug(f'read_blocks: block ID {block_id:#04x} at {base_offset + block_offset:#x}, header length {header_length}, payload length {length}')

        payload = _read_payload(io, length, end, f'block {block_id:#04x}',
                                base_offset + block_offset)

        yield Block(block_id, payload, base_offset + block_offset, header_length, format_version)

        if block_id == BlockId.END:
            return
        first = False


def read_rule_records(buffer, offset=0, end=None, base_offset=0):
    '''Lazily yield the rule records in buffer[offset:end]'''
    io, end = _open_stream(buffer, offset, end)

    while io.pos() < end:
        record_offset = io.pos()
        length, length_size = read_length(io, base_offset=base_offset)
        check_condition(length >= 1, 'rule record without rule id',
                        base_offset + record_offset)
        data = _read_payload(io, length, end, 'rule record', base_offset + record_offset)
        rule_id = data[0]

        log.debug(f'read_rule_records: rule ID {rule_id} at {base_offset + record_offset:#x}, body length {length - 1}')

        yield RuleRecord(rule_id, data[1:], base_offset + record_offset, length_size + 1)


def encode_block(block_id, payload, format_version=None):
    '''Serialise a block. If format_version is not None the block is
    written as the first block of a blob.
    '''
    if format_version is not None:
        check_condition(0 <= block_id <= BLOCK_HEADER_ID_MASK,
                        f'block ID {block_id:#04x} cannot be the first block')
        check_condition(0 <= format_version <= 0xff >> BLOCK_HEADER_ID_VERSION_SHIFT,
                        f'invalid format version {format_version}')
        id_byte = block_id | format_version << BLOCK_HEADER_ID_VERSION_SHIFT
    else:
        check_condition(0 <= block_id <= 0xff, f'invalid block ID {block_id:#x}')
        id_byte = block_id
    _, length = encode_length(len(payload))
    return bytes([id_byte]) + length + bytes(payload)


def encode_rule_record(rule_id, body):
    check_condition(0 <= rule_id <= 0xff, f'invalid rule ID {rule_id}')
    _, length = encode_length(len(body) + 1)
    return length + bytes([rule_id]) + bytes(body)
