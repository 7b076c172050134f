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
Register lists: a sequence of register descriptors, each followed by the
register values it describes. Bits 6-7 of the first descriptor byte select
one of three descriptor layouts:

    REGS  (1 byte):  address += bits 0-2, length = bits 3-5 + 1
    REGS2 (2 bytes): address += (bit 0 << 8) + second byte,
                     length = bits 1-5 + 1
    REGS3 (3 bytes): address = bytes 2 and 3 (big endian),
                     length = bits 0-5 + 1

The address is relative to a running address that starts at zero and is
advanced by the length of every entry.
'''

from dataclasses import dataclass, field

from .CcsDataException import TruncatedInput, LengthOverflow, InvalidSelector
from .definitions import RegsSelector
from .definitions import REGS_ADDR_MASK, REGS_LEN_SHIFT, REGS_LEN_MASK, REGS_SEL_SHIFT
from .definitions import REGS_2_ADDR_MASK, REGS_2_LEN_SHIFT, REGS_2_LEN_MASK, REGS_3_LEN_MASK

DESCRIPTOR_SIZE = {
    RegsSelector.REGS: 1,
    RegsSelector.REGS2: 2,
    RegsSelector.REGS3: 3,
}

MAX_REGISTER_LENGTH = {
    RegsSelector.REGS: (REGS_LEN_MASK >> REGS_LEN_SHIFT) + 1,
    RegsSelector.REGS2: (REGS_2_LEN_MASK >> REGS_2_LEN_SHIFT) + 1,
    RegsSelector.REGS3: REGS_3_LEN_MASK + 1,
}

MAX_ADDRESS_DELTA = {
    RegsSelector.REGS: REGS_ADDR_MASK,
    RegsSelector.REGS2: (REGS_2_ADDR_MASK << 8) | 0xff,
}


@dataclass(frozen=True)
class RegisterEntry:
    '''A run of consecutive 8-bit registers starting at address.
    selector records the descriptor layout the entry was read with. It
    does not take part in comparisons, as the same registers can be
    written with different layouts.
    '''
    address: int
    value: bytes
    selector: int = field(default=None, compare=False)

    @property
    def length(self):
        return len(self.value)


def _check_selector(selector, offset=None):
    try:
        return RegsSelector(selector)
    except ValueError:
        raise InvalidSelector(f'invalid register selector {selector}', offset)


def unpack_descriptor(descriptor, address=0):
    '''Decode the register descriptor at the start of descriptor.
    address is the running address before this entry.

    Returns a tuple (selector, address, length, descriptor_size).
    '''
    if len(descriptor) < 1:
        raise TruncatedInput('empty register descriptor')
    selector = _check_selector(descriptor[0] >> REGS_SEL_SHIFT)
    if len(descriptor) < DESCRIPTOR_SIZE[selector]:
        raise TruncatedInput(f'register descriptor {selector.name} truncated')

    reg_len = descriptor[0]
    if selector == RegsSelector.REGS:
        address += reg_len & REGS_ADDR_MASK
        length = ((reg_len & REGS_LEN_MASK) >> REGS_LEN_SHIFT) + 1
    elif selector == RegsSelector.REGS2:
        address += ((reg_len & REGS_2_ADDR_MASK) << 8) + descriptor[1]
        length = ((reg_len & REGS_2_LEN_MASK) >> REGS_2_LEN_SHIFT) + 1
    else:
        address = (descriptor[1] << 8) | descriptor[2]
        length = (reg_len & REGS_3_LEN_MASK) + 1

    return selector, address & 0xffff, length, DESCRIPTOR_SIZE[selector]


def decode_registers(payload, selector=None, offset=0):
    '''Decode a register list. If selector is given, every descriptor
    has to use that layout. offset is the position of the payload in the
    blob and is only used for error reporting.
    '''
    if selector is not None:
        selector = _check_selector(selector, offset)

    entries = []
    address = 0
    pos = 0
    while pos < len(payload):
        try:
            entry_selector, address, length, descriptor_size = unpack_descriptor(payload[pos:pos+3], address)
        except (TruncatedInput, InvalidSelector) as e:
            raise type(e)(e.message, offset + pos) from e

        if selector is not None and entry_selector != selector:
            raise InvalidSelector(f'register selector {entry_selector.name}, expected {selector.name}',
                                  offset + pos)

        value_start = pos + descriptor_size
        if value_start + length > len(payload):
            raise TruncatedInput(f'register {address:#06x} needs {length} bytes, only {len(payload) - value_start} available',
                                 offset + pos)

        entries.append(RegisterEntry(address, bytes(payload[value_start:value_start+length]), entry_selector))
        address = (address + length) & 0xffff
        pos = value_start + length

    return entries


def expand_register(entry):
    '''Expand an entry to (address, value) pairs, one per 8-bit register'''
    return [((entry.address + i) & 0xffff, v) for i, v in enumerate(entry.value)]


def expand_registers(entries):
    registers = []
    for entry in entries:
        registers.extend(expand_register(entry))
    return registers


def _fits(selector, delta, length):
    if length > MAX_REGISTER_LENGTH[selector]:
        return False
    if selector == RegsSelector.REGS3:
        return True
    return 0 <= delta <= MAX_ADDRESS_DELTA[selector]


def pack_descriptor(selector, delta, address, length):
    '''Encode a register descriptor. Inverse of unpack_descriptor()'''
    if selector == RegsSelector.REGS:
        return bytes([selector << REGS_SEL_SHIFT | (length - 1) << REGS_LEN_SHIFT | delta])
    if selector == RegsSelector.REGS2:
        return bytes([selector << REGS_SEL_SHIFT | (length - 1) << REGS_2_LEN_SHIFT | delta >> 8,
                      delta & 0xff])
    return bytes([selector << REGS_SEL_SHIFT | (length - 1)]) + address.to_bytes(2, byteorder='big')


def encode_registers(entries):
    '''Encode a register list. The layout an entry was decoded with is
    kept where possible, otherwise the most compact layout is used.
    '''
    result = bytearray()
    running = 0
    for entry in entries:
        length = entry.length
        if not 1 <= length <= MAX_REGISTER_LENGTH[RegsSelector.REGS3]:
            raise LengthOverflow(f'register {entry.address:#06x}: invalid length {length}')
        if not 0 <= entry.address <= 0xffff:
            raise LengthOverflow(f'register address {entry.address:#x} out of range')

        delta = entry.address - running
        selector = None
        if entry.selector is not None:
            selector = _check_selector(entry.selector)
            if not _fits(selector, delta, length):
                selector = None
        if selector is None:
            for candidate in RegsSelector:
                if _fits(candidate, delta, length):
                    selector = candidate
                    break

        result += pack_descriptor(selector, delta, entry.address, length)
        result += entry.value
        running = (entry.address + length) & 0xffff

    return bytes(result)
