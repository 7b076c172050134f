import logging
import pytest

from util import *
from ccsdata.CcsDataException import TruncatedInput, StructuralMismatch, ChecksumMismatch
from ccsdata.CcsDataException import UnknownBlockId, UnknownRuleId, RecursionLimitExceeded
from ccsdata.block_reader import encode_rule_record
from ccsdata.blocks import DataVersion, RegisterList, RuleBlock, PdafPixelLocation
from ccsdata.blocks import License, EndBlock, UnknownBlock
from ccsdata.definitions import BlockId, RuleId, PdafPixelType, PdafReadoutOrder
from ccsdata.ffd import FfdTable
from ccsdata.integrity import verify
from ccsdata.pdaf import PixelDesc, BlockDesc, BlockDescGroup, PixLocTree, PdafReadout
from ccsdata.registers import RegisterEntry
from ccsdata.rules import IfRule, RegisterRule, PdafReadoutRule
from ccsdata.static_data import parse_static_data, encode_static_data, find_static_data_end
from ccsdata.static_data import read_structure

def test_parse_simple_blob(simple_blob):
    data = parse_static_data(simple_blob)
    assert data.format_version == 0
    assert data.size == len(simple_blob)
    assert data.crc == verify(simple_blob)
    assert data.version == DataVersion(1, 2, 2020, 12, 31)
    assert data.sensor_read_only_regs == [RegisterEntry(0x0000, b'\xaa\xbb'), RegisterEntry(0x0003, b'\xcc')]
    assert data.module_read_only_regs == []
    assert data.sensor_rules == []
    assert data.sensor_pdaf is None
    assert data.license is None
    assert [b.block_id for b in data.blocks] == [BlockId.DATA_VERSION, BlockId.SENSOR_READ_ONLY_REGS, BlockId.END]
    assert isinstance(data.blocks[-1], EndBlock)

def test_parse_truncated_blob(simple_blob):
    for length in range(len(simple_blob)):
        with pytest.raises(TruncatedInput):
            parse_static_data(simple_blob[:length])

def test_parse_data_after_end(simple_blob):
    with pytest.raises(StructuralMismatch):
        parse_static_data(simple_blob + b'\x00')

def test_parse_unsupported_format_version(simple_blob):
    data = bytearray(simple_blob)
    data[0] |= 0x20
    with pytest.raises(StructuralMismatch):
        parse_static_data(bytes(data))

def test_parse_corrupted_blob(simple_blob):
    data = flip_byte(simple_blob, 13)
    with pytest.raises(ChecksumMismatch):
        parse_static_data(data)

def test_parse_without_crc_check(simple_blob):
    data = flip_byte(simple_blob, 13)
    parsed = parse_static_data(data, verify_crc=False)
    assert parsed.sensor_read_only_regs[0].value == b'\x55\xbb'
    assert parsed.crc == int.from_bytes(data[-4:], byteorder='big')

def test_parse_invalid_end_block_length():
    blob = make_blob((BlockId.DATA_VERSION, VERSION_PAYLOAD))
    data = blob[:-6] + bytes([BlockId.END, 5]) + blob[-4:] + b'\x00'
    with pytest.raises(StructuralMismatch):
        parse_static_data(data)

def test_parse_first_block_not_data_version(caplog):
    blob = make_blob((BlockId.DUMMY, b''), (BlockId.DATA_VERSION, VERSION_PAYLOAD))
    with caplog.at_level(logging.WARNING, logger='ccsdata'):
        data = parse_static_data(blob)
    assert data.version == DataVersion(1, 2, 2020, 12, 31)
    assert 'not a data version block' in caplog.text
    with pytest.raises(StructuralMismatch):
        parse_static_data(blob, strict=True)

def test_parse_unknown_block():
    blob = make_blob((BlockId.DATA_VERSION, VERSION_PAYLOAD), (0x50, b'\x01'))
    data = parse_static_data(blob)
    assert data.blocks[1] == UnknownBlock(0x50, b'\x01')
    with pytest.raises(UnknownBlockId) as cm:
        parse_static_data(blob, strict=True)
    assert cm.value.block_id == 0x50

def test_parse_unknown_rule():
    blob = make_blob((BlockId.DATA_VERSION, VERSION_PAYLOAD),
                     (BlockId.SENSOR_RULE_BASED_BLOCK, encode_rule_record(9, b'')))
    assert parse_static_data(blob).sensor_rules[0].rule_id == 9
    with pytest.raises(UnknownRuleId):
        parse_static_data(blob, strict=True)

def test_parse_rules_max_depth():
    blob = make_blob((BlockId.DATA_VERSION, VERSION_PAYLOAD),
                     (BlockId.MODULE_RULE_BASED_BLOCK, nested_if_records(3)))
    assert len(parse_static_data(blob).module_rules) == 1
    with pytest.raises(RecursionLimitExceeded):
        parse_static_data(blob, max_depth=2)

def test_read_structure(simple_blob):
    raw_blocks = read_structure(simple_blob)
    assert [b.block_id for b in raw_blocks] == [BlockId.DATA_VERSION, BlockId.SENSOR_READ_ONLY_REGS, BlockId.END]

def test_views_combine_blocks():
    blob = make_blob((BlockId.DATA_VERSION, VERSION_PAYLOAD),
                     (BlockId.SENSOR_READ_ONLY_REGS, TWO_REGS_PAYLOAD),
                     (BlockId.SENSOR_READ_ONLY_REGS, bytes([0x80, 0x30, 0x00, 0x01])))
    data = parse_static_data(blob)
    assert len(data.blocks_with_id(BlockId.SENSOR_READ_ONLY_REGS)) == 2
    assert len(data.sensor_read_only_regs) == 3

def full_blocks():
    pixel_location = PixLocTree(16, 8, 1, 16, 16,
                                [BlockDescGroup(4, [BlockDesc(0, 3), BlockDesc(1, 3)])],
                                [[PixelDesc(PdafPixelType.LEFT_SEPARATED, 2, 3)],
                                 [PixelDesc(PdafPixelType.RIGHT_SEPARATED, 10, 3)]])
    rules = [
        IfRule(0x0136, 0x01, 0x03, [
            RegisterRule(RuleId.READ_ONLY_REGS, [RegisterEntry(0x0000, b'\x01')]),
            IfRule(0x0137, 0x00, 0xff, [
                RegisterRule(RuleId.MSR, [RegisterEntry(0x3000, b'\x02\x03')]),
            ]),
        ]),
        PdafReadoutRule(PdafReadout(PdafReadoutOrder.ORIGINAL, FfdTable())),
    ]
    return [
        DataVersion(3, 1, 2021, 6, 15),
        RegisterList(BlockId.SENSOR_READ_ONLY_REGS, [RegisterEntry(0x0000, b'\xaa\xbb'),
                                                     RegisterEntry(0x0003, b'\xcc')]),
        RegisterList(BlockId.MODULE_MANUFACTURER_REGS, [RegisterEntry(0x3100, bytes(range(64)))]),
        RuleBlock(BlockId.SENSOR_RULE_BASED_BLOCK, rules),
        PdafPixelLocation(BlockId.MODULE_PDAF_PIXEL_LOCATION, pixel_location),
        License(b'Some license text'),
    ]

def test_encode_static_data():
    blocks = full_blocks()
    blob = encode_static_data(blocks)
    data = parse_static_data(blob, strict=True)
    assert data.blocks[:-1] == blocks
    assert data.crc == verify(blob)
    assert data.module_pdaf == blocks[4].pixel_location
    assert data.license == b'Some license text'

def test_encode_static_data_replaces_end_block():
    blocks = full_blocks() + [EndBlock(0x12345678)]
    blob = encode_static_data(blocks)
    assert parse_static_data(blob).crc != 0x12345678

def test_encode_parsed_data_gives_same_bytes(simple_blob):
    assert encode_static_data(parse_static_data(simple_blob).blocks) == simple_blob

def test_encode_without_blocks():
    with pytest.raises(StructuralMismatch):
        encode_static_data([])

def test_encode_first_block_id_too_large():
    with pytest.raises(StructuralMismatch):
        encode_static_data([RuleBlock(BlockId.SENSOR_RULE_BASED_BLOCK, [])])

def test_find_static_data_end(simple_blob):
    data = b'\xff' * 8 + simple_blob + b'\xff' * 8
    assert find_static_data_end(data, 8) == 8 + len(simple_blob)

def test_find_static_data_end_missing():
    with pytest.raises(TruncatedInput):
        find_static_data_end(make_blob((BlockId.DATA_VERSION, VERSION_PAYLOAD))[:10])

def test_encode_parsed_data_with_reserved_block_id():
    blob = make_blob((BlockId.DATA_VERSION, VERSION_PAYLOAD), (0x90, b'\xab'))
    data = parse_static_data(blob)
    assert data.blocks[1] == UnknownBlock(0x90, b'\xab')
    assert encode_static_data(data.blocks) == blob
