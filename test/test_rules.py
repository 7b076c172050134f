import pytest

from util import *
from ccsdata.CcsDataException import TruncatedInput, RecursionLimitExceeded, InvalidSelector
from ccsdata.CcsDataException import UnknownBlockId, UnknownRuleId
from ccsdata.block_reader import encode_rule_record
from ccsdata.definitions import RuleId, FfdPixelcode, PdafReadoutOrder
from ccsdata.ffd import FfdEntry, FfdTable
from ccsdata.pdaf import PdafReadout
from ccsdata.registers import RegisterEntry
from ccsdata.rules import IfRule, RegisterRule, FfdRule, PdafReadoutRule, UnknownRule
from ccsdata.rules import decode_rules, encode_rules, active_rules, rule_depth

REGS_RECORD = encode_rule_record(RuleId.READ_ONLY_REGS, bytes([0x08, 0xaa, 0xbb]))
MSR_RECORD = encode_rule_record(RuleId.MSR, bytes([0x80, 0x30, 0x00, 0x01]))

def test_decode_register_rules():
    rules = decode_rules(REGS_RECORD + MSR_RECORD)
    assert rules == [RegisterRule(RuleId.READ_ONLY_REGS, [RegisterEntry(0, b'\xaa\xbb')]),
                     RegisterRule(RuleId.MSR, [RegisterEntry(0x3000, b'\x01')])]

def test_decode_if_rule():
    rules = decode_rules(if_record(0x0136, 0x01, 0x03, REGS_RECORD))
    assert rules == [IfRule(0x0136, 0x01, 0x03,
                            [RegisterRule(RuleId.READ_ONLY_REGS, [RegisterEntry(0, b'\xaa\xbb')])])]
    assert rule_depth(rules) == 1

def test_decode_nested_if_rules():
    payload = if_record(0x0136, 0x01, 0x03, if_record(0x0005, 0x00, 0xff, MSR_RECORD) + REGS_RECORD)
    rules = decode_rules(payload)
    assert rule_depth(rules) == 2
    outer = rules[0]
    assert isinstance(outer.rules[0], IfRule)
    assert outer.rules[0].address == 0x0005
    assert outer.rules[0].rules == [RegisterRule(RuleId.MSR, [RegisterEntry(0x3000, b'\x01')])]
    assert outer.rules[1].rule_id == RuleId.READ_ONLY_REGS

def test_decode_empty_if_rule():
    rules = decode_rules(if_record(0x0001, 0x01, 0x01))
    assert rules == [IfRule(0x0001, 0x01, 0x01, [])]

def test_decode_maximum_depth():
    rules = decode_rules(nested_if_records(16, REGS_RECORD))
    assert rule_depth(rules) == 16

def test_decode_too_deep():
    with pytest.raises(RecursionLimitExceeded):
        decode_rules(nested_if_records(17, REGS_RECORD))

def test_decode_custom_depth():
    decode_rules(nested_if_records(2), max_depth=2)
    with pytest.raises(RecursionLimitExceeded):
        decode_rules(nested_if_records(3), max_depth=2)

def test_decode_if_rule_truncated_condition():
    with pytest.raises(TruncatedInput):
        decode_rules(encode_rule_record(RuleId.IF, b'\x01\x36\x01'))

def test_decode_ffd_rule():
    body = bytes([1, 0, FfdPixelcode.EMBEDDED, 0, 0, 2])
    rules = decode_rules(encode_rule_record(RuleId.FFD, body))
    assert rules == [FfdRule(FfdTable([FfdEntry(FfdPixelcode.EMBEDDED, 2)], []))]

def test_decode_pdaf_readout_rule():
    body = bytes([0, PdafReadoutOrder.ORIGINAL, 0, 0])
    rules = decode_rules(encode_rule_record(RuleId.PDAF_READOUT, body))
    assert rules == [PdafReadoutRule(PdafReadout(PdafReadoutOrder.ORIGINAL, FfdTable()))]

def test_decode_unknown_rule():
    rules = decode_rules(encode_rule_record(9, b'\x01') + REGS_RECORD)
    assert rules[0] == UnknownRule(9, b'\x01')
    assert rules[1].rule_id == RuleId.READ_ONLY_REGS

def test_decode_unknown_rule_strict():
    with pytest.raises(UnknownRuleId) as cm:
        decode_rules(REGS_RECORD + encode_rule_record(9, b'\x01'), strict=True)
    assert cm.value.block_id == 9
    assert cm.value.offset == len(REGS_RECORD)
    assert isinstance(cm.value, UnknownBlockId)

def test_decode_unknown_rule_strict_inside_if():
    with pytest.raises(UnknownRuleId):
        decode_rules(if_record(0x0001, 1, 1, encode_rule_record(9, b'')), strict=True)

def test_error_offsets_are_absolute():
    payload = if_record(0x0001, 1, 1, encode_rule_record(RuleId.READ_ONLY_REGS, b'\xc0'))
    with pytest.raises(InvalidSelector) as cm:
        decode_rules(payload, offset=0x40)
    # if header (2) + condition (4) + nested header (2)
    assert cm.value.offset == 0x40 + 8

def test_encode_rules():
    payload = if_record(0x0136, 0x01, 0x03, if_record(0x0005, 0x00, 0xff, MSR_RECORD) + REGS_RECORD) \
        + encode_rule_record(9, b'\x01\x02')
    assert encode_rules(decode_rules(payload)) == payload

def test_encode_invalid_rule():
    with pytest.raises(TypeError):
        encode_rules(['not a rule'])

def test_active_rules():
    regs = RegisterRule(RuleId.READ_ONLY_REGS, [RegisterEntry(0, b'\x01')])
    msr = RegisterRule(RuleId.MSR, [RegisterEntry(1, b'\x02')])
    rules = [IfRule(0x0136, 0x01, 0x03, [regs, IfRule(0x0137, 0x00, 0xff, [msr])])]

    sensor = {0x0136: 0x05, 0x0137: 0x00}
    assert list(active_rules(rules, sensor.get)) == [regs, msr]

    sensor = {0x0136: 0x05, 0x0137: 0x01}
    assert list(active_rules(rules, sensor.get)) == [regs]

    sensor = {0x0136: 0x02, 0x0137: 0x00}
    assert list(active_rules(rules, sensor.get)) == []
