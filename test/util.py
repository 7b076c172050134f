import os
import pathlib
import pytest

from ccsdata.block_reader import encode_block, encode_rule_record
from ccsdata.definitions import BlockId, RuleId
from ccsdata.integrity import append_crc

_scriptdir = os.path.dirname(__file__)
testdir_base = pathlib.Path(_scriptdir).resolve()

# data version 1.2, 31 December 2020
VERSION_PAYLOAD = bytes.fromhex('0001 0002 07e4 0c 1f')

# two REGS entries: 0x0000 = aa bb, 0x0003 = cc
TWO_REGS_PAYLOAD = bytes([0x08, 0xaa, 0xbb, 0x01, 0xcc])


def make_blob(*blocks):
    '''Build a blob from (block_id, payload) tuples, with END block and CRC'''
    data = bytearray()
    for i, (block_id, payload) in enumerate(blocks):
        data += encode_block(block_id, payload, 0 if i == 0 else None)
    data += bytes([BlockId.END, 4])
    return append_crc(data)


def if_record(address, value, mask, nested=b''):
    body = address.to_bytes(2, byteorder='big') + bytes([value, mask]) + nested
    return encode_rule_record(RuleId.IF, body)


def nested_if_records(levels, innermost=b''):
    '''IF rules nested levels deep'''
    data = innermost
    for level in range(levels):
        data = if_record(0x0100 + level, 1, 1, data)
    return data


def flip_byte(data, position):
    flipped = bytearray(data)
    flipped[position] ^= 0xff
    return bytes(flipped)


@pytest.fixture
def simple_blob():
    return make_blob((BlockId.DATA_VERSION, VERSION_PAYLOAD),
                     (BlockId.SENSOR_READ_ONLY_REGS, TWO_REGS_PAYLOAD))


def create_test_file(directory, path, content):
    abs_path = directory / path
    abs_path.parent.mkdir(parents=True, exist_ok=True)
    with abs_path.open('wb') as f:
        f.write(content)
    return abs_path
