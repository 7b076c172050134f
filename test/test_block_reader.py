import pytest

from util import *
from ccsdata.CcsDataException import TruncatedInput, StructuralMismatch
from ccsdata.block_reader import read_blocks, read_rule_records, encode_block, encode_rule_record
from ccsdata.definitions import BlockId, RuleId

def test_read_blocks(simple_blob):
    blocks = list(read_blocks(simple_blob))
    assert [b.block_id for b in blocks] == [BlockId.DATA_VERSION, BlockId.SENSOR_READ_ONLY_REGS, BlockId.END]
    assert blocks[0].format_version == 0
    assert blocks[0].offset == 0
    assert blocks[0].header_length == 2
    assert blocks[0].payload == VERSION_PAYLOAD
    assert blocks[1].format_version is None
    assert blocks[1].offset == 10
    assert blocks[1].payload_offset == 12
    assert blocks[1].payload == TWO_REGS_PAYLOAD
    assert blocks[2].offset == 17
    assert blocks[2].end == len(simple_blob)

def test_read_blocks_splits_format_version():
    data = encode_block(BlockId.DATA_VERSION, VERSION_PAYLOAD, 1)
    assert data[0] == 0x22
    block = next(read_blocks(data))
    assert block.block_id == BlockId.DATA_VERSION
    assert block.format_version == 1

def test_read_blocks_stops_after_end(simple_blob):
    blocks = list(read_blocks(simple_blob + b'\xff\xff\xff'))
    assert len(blocks) == 3
    assert blocks[-1].block_id == BlockId.END

def test_read_blocks_without_end():
    data = encode_block(BlockId.DATA_VERSION, VERSION_PAYLOAD, 0)
    blocks = list(read_blocks(data))
    assert len(blocks) == 1

def test_read_blocks_keeps_unknown_ids():
    data = encode_block(BlockId.DATA_VERSION, VERSION_PAYLOAD, 0) + encode_block(0x50, b'\x01\x02')
    blocks = list(read_blocks(data))
    assert blocks[1].block_id == 0x50
    assert blocks[1].kind == 0x50
    assert blocks[1].payload == b'\x01\x02'

def test_read_blocks_long_payload():
    payload = bytes(range(100))
    data = encode_block(BlockId.DATA_VERSION, VERSION_PAYLOAD, 0) + encode_block(BlockId.LICENSE, payload)
    blocks = list(read_blocks(data))
    assert blocks[1].header_length == 3
    assert blocks[1].payload == payload

def test_read_blocks_payload_truncated():
    data = bytes([BlockId.DATA_VERSION, 8]) + b'\x00' * 4
    with pytest.raises(TruncatedInput) as cm:
        list(read_blocks(data))
    assert cm.value.offset == 0

def test_read_blocks_without_length_specifier():
    with pytest.raises(TruncatedInput):
        list(read_blocks(bytes([BlockId.DATA_VERSION])))

def test_read_blocks_base_offset(simple_blob):
    blocks = list(read_blocks(simple_blob, base_offset=0x100))
    assert blocks[1].offset == 0x10a

def test_read_blocks_range():
    data = b'\xaa' * 4 + encode_block(BlockId.DATA_VERSION, VERSION_PAYLOAD, 0)
    blocks = list(read_blocks(data, 4))
    assert blocks[0].offset == 4
    assert blocks[0].format_version is None
    blocks = list(read_blocks(data, 4, first=True))
    assert blocks[0].format_version == 0

def test_read_blocks_invalid_range():
    with pytest.raises(StructuralMismatch):
        list(read_blocks(b'\x00' * 4, 3, 2))

def test_read_rule_records():
    data = encode_rule_record(RuleId.READ_ONLY_REGS, b'\x08\xaa\xbb') + encode_rule_record(9, b'')
    records = list(read_rule_records(data))
    assert [r.rule_id for r in records] == [RuleId.READ_ONLY_REGS, 9]
    assert records[0].body == b'\x08\xaa\xbb'
    assert records[0].header_length == 2
    assert records[0].end == 5
    assert records[1].offset == 5
    assert records[1].body == b''

def test_read_rule_record_without_rule_id():
    with pytest.raises(StructuralMismatch):
        list(read_rule_records(b'\x00'))

def test_read_rule_record_truncated():
    with pytest.raises(TruncatedInput):
        list(read_rule_records(b'\x05\x02\x08'))

def test_encode_first_block_with_large_id():
    with pytest.raises(StructuralMismatch):
        encode_block(BlockId.SENSOR_RULE_BASED_BLOCK, b'', 0)

def test_encode_block_reserved_id_bit():
    data = encode_block(0x90, b'\xab')
    assert data == b'\x90\x01\xab'
    block = next(read_blocks(data, first=False))
    assert block.block_id == 0x90

def test_encode_block_invalid_id():
    with pytest.raises(StructuralMismatch):
        encode_block(0x100, b'')
