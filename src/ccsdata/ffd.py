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
Fixed function data (FFD) tables describe the special pixel columns and
rows (embedded data, dummy, optical black, PDAF, ...) of a frame. The
table starts with the number of column and row descriptors, followed by
that many 4 byte entries: pixelcode, a reserved byte and a 16 bit value.
Column descriptors come first.
'''

from dataclasses import dataclass, field

from kaitaistruct import KaitaiStream, BytesIO

from .CcsDataException import TruncatedInput, check_condition
from .definitions import FfdPixelcode, to_enum

FFD_HEADER_SIZE = 2
FFD_ENTRY_SIZE = 4


@dataclass(frozen=True)
class FfdEntry:
    pixelcode: int
    value: int
    reserved: int = 0


@dataclass(frozen=True)
class FfdTable:
    columns: list = field(default_factory=list)
    rows: list = field(default_factory=list)

    @property
    def column_count(self):
        return len(self.columns)

    @property
    def row_count(self):
        return len(self.rows)

    @property
    def entries(self):
        return list(self.columns) + list(self.rows)


def read_ffd(io, end, base_offset=0):
    '''Read an FFD table from KaitaiStream io, which has to end exactly
    at end.
    '''
    start = io.pos()
    try:
        num_column_descs = io.read_u1()
        num_row_descs = io.read_u1()
    except EOFError as e:
        raise TruncatedInput('FFD header truncated', base_offset + start) from e

    num_entries = num_column_descs + num_row_descs
    expected = num_entries * FFD_ENTRY_SIZE
    available = end - io.pos()
    if available < expected:
        raise TruncatedInput(f'FFD table declares {num_entries} entries, data for {available // FFD_ENTRY_SIZE} available',
                             base_offset + io.pos())
    check_condition(available == expected,
                    f'{available - expected} bytes of data after FFD table',
                    base_offset + io.pos() + expected)

    entries = []
    for _ in range(num_entries):
        pixelcode = io.read_u1()
        reserved = io.read_u1()
        value = io.read_u2be()
        entries.append(FfdEntry(to_enum(FfdPixelcode, pixelcode), value, reserved))

    return FfdTable(entries[:num_column_descs], entries[num_column_descs:])


def decode_ffd(payload, offset=0):
    '''Decode an FFD table. offset is the position of the payload in the
    blob and is only used for error reporting.
    '''
    io = KaitaiStream(BytesIO(payload))
    return read_ffd(io, len(payload), offset)


def encode_ffd(table):
    check_condition(table.column_count <= 0xff and table.row_count <= 0xff,
                    f'too many FFD descriptors ({table.column_count} columns, {table.row_count} rows)')
    result = bytearray([table.column_count, table.row_count])
    for entry in table.entries:
        check_condition(0 <= entry.pixelcode <= 0xff and 0 <= entry.reserved <= 0xff,
                        f'invalid FFD entry {entry}')
        check_condition(0 <= entry.value <= 0xffff,
                        f'FFD value {entry.value} out of range')
        result.append(entry.pixelcode)
        result.append(entry.reserved)
        result += entry.value.to_bytes(2, byteorder='big')
    return bytes(result)
