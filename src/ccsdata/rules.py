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
Rules found in rule based blocks.

An IF rule holds a condition on a register, (register & mask) == value,
followed by the rules that only apply if the condition holds. These can
contain IF rules themselves, so rules form a tree. The other rules carry
read only registers, manufacturer specific registers (MSR), a frame
format description (FFD) or a PDAF readout description.

Evaluating conditions needs register values from a live sensor, which is
up to the caller: see active_rules().
'''

from dataclasses import dataclass, field

from .CcsDataException import TruncatedInput, RecursionLimitExceeded, UnknownRuleId
from .CcsDataException import check_condition
from .block_reader import read_rule_records, encode_rule_record
from .definitions import RuleId
from .ffd import FfdTable, decode_ffd, encode_ffd
from .pdaf import PdafReadout, decode_pdaf_readout, encode_pdaf_readout
from .registers import decode_registers, encode_registers
from .log import log

DEFAULT_MAX_DEPTH = 16

IF_CONDITION_SIZE = 4


@dataclass(frozen=True)
class IfRule:
    address: int
    value: int
    mask: int
    rules: list = field(default_factory=list)

    rule_id = RuleId.IF

    def matches(self, read_register):
        '''read_register is called with the register address and has to
        return the 8-bit register value.
        '''
        return (read_register(self.address) & self.mask) == self.value


@dataclass(frozen=True)
class RegisterRule:
    rule_id: RuleId
    registers: list = field(default_factory=list)


@dataclass(frozen=True)
class FfdRule:
    ffd: FfdTable

    rule_id = RuleId.FFD


@dataclass(frozen=True)
class PdafReadoutRule:
    readout: PdafReadout

    rule_id = RuleId.PDAF_READOUT


@dataclass(frozen=True)
class UnknownRule:
    rule_id: int
    body: bytes


def decode_rules(payload, strict=False, max_depth=DEFAULT_MAX_DEPTH, depth=0, offset=0):
    '''Decode a sequence of rule records. depth is the number of IF rules
    enclosing the sequence; an IF rule nested deeper than max_depth raises
    RecursionLimitExceeded. offset is the position of the payload in the
    blob and is only used for error reporting.
    '''
    return [decode_rule(record, strict, max_depth, depth)
            for record in read_rule_records(payload, base_offset=offset)]


def decode_rule(record, strict=False, max_depth=DEFAULT_MAX_DEPTH, depth=0):
    body = record.body
    body_offset = record.body_offset

    match record.rule_id:
        case RuleId.IF:
            level = depth + 1
            if level > max_depth:
                raise RecursionLimitExceeded(f'IF rules nested deeper than {max_depth} levels',
                                             record.offset)
            if len(body) < IF_CONDITION_SIZE:
                raise TruncatedInput(f'IF rule condition needs {IF_CONDITION_SIZE} bytes, only {len(body)} available',
                                     record.offset)
            address = int.from_bytes(body[0:2], byteorder='big')
            nested = decode_rules(body[IF_CONDITION_SIZE:], strict, max_depth, level,
                                  body_offset + IF_CONDITION_SIZE)
            return IfRule(address, body[2], body[3], nested)
        case RuleId.READ_ONLY_REGS | RuleId.MSR:
            return RegisterRule(RuleId(record.rule_id), decode_registers(body, offset=body_offset))
        case RuleId.FFD:
            return FfdRule(decode_ffd(body, body_offset))
        case RuleId.PDAF_READOUT:
            return PdafReadoutRule(decode_pdaf_readout(body, body_offset))

    if strict:
        raise UnknownRuleId(f'unknown rule ID {record.rule_id}', record.rule_id, record.offset)
    log.warning(f'decode_rule: not handling rule ID {record.rule_id} at {record.offset:#x}')
    return UnknownRule(record.rule_id, body)


def encode_rule(rule):
    match rule:
        case IfRule():
            check_condition(0 <= rule.address <= 0xffff,
                            f'IF rule address {rule.address:#x} out of range')
            check_condition(0 <= rule.value <= 0xff and 0 <= rule.mask <= 0xff,
                            f'IF rule value {rule.value:#x} or mask {rule.mask:#x} out of range')
            body = rule.address.to_bytes(2, byteorder='big') + bytes([rule.value, rule.mask]) \
                + encode_rules(rule.rules)
        case RegisterRule():
            check_condition(rule.rule_id in (RuleId.READ_ONLY_REGS, RuleId.MSR),
                            f'rule ID {rule.rule_id} does not hold registers')
            body = encode_registers(rule.registers)
        case FfdRule():
            body = encode_ffd(rule.ffd)
        case PdafReadoutRule():
            body = encode_pdaf_readout(rule.readout)
        case UnknownRule():
            body = rule.body
        case _:
            raise TypeError(f'cannot encode {rule!r} as a rule')
    return encode_rule_record(rule.rule_id, body)


def encode_rules(rules):
    return b''.join(encode_rule(rule) for rule in rules)


def active_rules(rules, read_register):
    '''Yield the rules that apply to a sensor, flattening IF rules whose
    condition holds and skipping those whose condition does not.
    '''
    for rule in rules:
        if isinstance(rule, IfRule):
            if rule.matches(read_register):
                yield from active_rules(rule.rules, read_register)
        else:
            yield rule


def rule_depth(rules):
    '''Deepest IF rule nesting level in rules'''
    depth = 0
    for rule in rules:
        if isinstance(rule, IfRule):
            depth = max(depth, 1 + rule_depth(rule.rules))
    return depth
