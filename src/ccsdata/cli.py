#!/usr/bin/env python3

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

import logging
import multiprocessing
import pathlib
import sys

import click
import rich.console
import rich.table
import rich.tree

from .CcsDataException import CcsDataException, ConfigurationError
from .StaticDataParser import StaticDataParser
from .blocks import DataVersion, RegisterList, RuleBlock, PdafPixelLocation, License
from .blocks import Dummy, EndBlock, UnknownBlock
from .configuration import CcsDataConfig, load_configuration
from .definitions import BlockId, RuleId, enum_name, to_enum
from .registers import expand_registers
from .rules import IfRule, RegisterRule, FfdRule, PdafReadoutRule
from .static_data import find_static_data_end
from . import integrity
from .log import log

CCSDATA_VERSION = "0.0.1"


def read_configuration(config_file):
    if config_file is None:
        return CcsDataConfig()
    try:
        return load_configuration(config_file)
    except ConfigurationError as e:
        print(f"Cannot open configuration file ({e}), exiting", file=sys.stderr)
        sys.exit(1)


@click.group()
@click.version_option(CCSDATA_VERSION)
def app():
    pass


# ccsdata show <input file>
@app.command('show', short_help='Show CCS static data')
@click.option('-c', '--config', 'config_file', type=click.File('r'))
@click.option('-v', '--verbose', is_flag=True, help='Enable debug logging')
@click.option('-s', '--strict', is_flag=True, help='Reject unknown block and rule IDs')
@click.option('-o', '--offset', default=0, type=click.IntRange(min=0),
              help='Offset of the static data in the file')
@click.option('-a', '--all', 'show_all', is_flag=True,
              help='Show all information, including every register value')
@click.argument('path', type=click.Path(path_type=pathlib.Path, exists=True, dir_okay=False))
def show(config_file, verbose, strict, offset, show_all, path):
    '''Parses the CCS static data in PATH and shows its contents.
    '''
    configuration = read_configuration(config_file)
    if strict:
        configuration.strict = True

    if verbose:
        log.setLevel(logging.DEBUG)

    log.debug(f'cli:show: parsing {path} at offset {offset} with {configuration}')

    try:
        with path.open('rb') as infile:
            parser = StaticDataParser(infile, offset, configuration)
            parser.parse_from_offset()
    except CcsDataException as e:
        print(f"{path}: {e.__class__.__name__}: {e}", file=sys.stderr)
        sys.exit(1)

    console = rich.console.Console()
    console.print(build_meta_table(path, parser))
    console.print(build_tree(parser.data))

    if show_all:
        for title, registers in [('Sensor read only registers', parser.data.sensor_read_only_regs),
                                 ('Module read only registers', parser.data.module_read_only_regs),
                                 ('Sensor manufacturer registers', parser.data.sensor_manufacturer_regs),
                                 ('Module manufacturer registers', parser.data.module_manufacturer_regs)]:
            if registers:
                console.print(build_register_table(title, registers))


# ccsdata verify <input file>
@app.command('verify', short_help='Verify the CRC of CCS static data')
@click.option('-o', '--offset', default=0, type=click.IntRange(min=0),
              help='Offset of the static data in the file')
@click.argument('path', type=click.Path(path_type=pathlib.Path, exists=True, dir_okay=False))
def verify_crc(offset, path):
    '''Checks the CRC of the CCS static data in PATH.
    '''
    data = path.read_bytes()[offset:]
    try:
        end = find_static_data_end(data)
        crc = integrity.verify(data[:end])
    except CcsDataException as e:
        print(f"{path}: {e.__class__.__name__}: {e}", file=sys.stderr)
        sys.exit(1)
    print(f"{path}: CRC {crc:#010x} OK")


def check_file(args):
    '''Parse a single file, for use in a process pool'''
    path, configuration = args
    try:
        with path.open('rb') as infile:
            parser = StaticDataParser(infile, 0, configuration)
            parser.parse_from_offset()
    except (CcsDataException, OSError) as e:
        return path, False, f'{e.__class__.__name__}: {e}'
    return path, True, f'{len(parser.data.blocks)} blocks, CRC {parser.data.crc:#010x}'


# ccsdata scan-directory <input directory>
@app.command('scan-directory', short_help='Check all files in a directory')
@click.option('-c', '--config', 'config_file', type=click.File('r'))
@click.option('-v', '--verbose', is_flag=True, help='Enable debug logging')
@click.option('-j', '--jobs', default=1, type=click.IntRange(min=1),
              help='Number of jobs running simultaneously')
@click.option('-a', '--all-files', is_flag=True,
              help='Check all files, not only files with a static data extension')
@click.argument('path', type=click.Path(path_type=pathlib.Path, exists=True, file_okay=False))
def scan_directory(config_file, verbose, jobs, all_files, path):
    '''Parses the files in PATH (recursively) as CCS static data and
    reports which files are valid. Only files with a static data extension
    are checked, unless --all-files is given.
    '''
    configuration = read_configuration(config_file)
    if verbose:
        log.setLevel(logging.DEBUG)

    files = sorted(p for p in path.glob('**/*') if p.is_file()
                   and (all_files or StaticDataParser.is_valid_extension(p.suffix.lower())))
    log.debug(f'cli:scan_directory: {len(files)} files, {jobs} jobs')

    work = [(f, configuration) for f in files]
    if jobs == 1:
        results = list(map(check_file, work))
    else:
        with multiprocessing.Pool(jobs) as pool:
            results = pool.map(check_file, work)

    table = rich.table.Table(title='CCS static data', row_styles=['dim', ''])
    table.add_column('Nr', justify='right')
    table.add_column('File')
    table.add_column('Valid')
    table.add_column('Result')
    for counter, (result_path, valid, message) in enumerate(results, start=1):
        table.add_row(str(counter), str(result_path.relative_to(path)),
                      'yes' if valid else 'no', message)

    console = rich.console.Console()
    console.print(table)


def build_meta_table(path, parser):
    '''Construct a meta information table for parsed static data'''
    metadata = parser.metadata
    meta_table = rich.table.Table('', '', title='Static data', show_lines=True,
                                  show_header=False)
    meta_table.add_row('File', f'{path}')
    meta_table.add_row('Type', f'{parser.pretty_name}')
    meta_table.add_row('Offset', f'{parser.offset}')
    meta_table.add_row('Parsed size', f'{parser.parsed_size}')
    meta_table.add_row('Labels', f'{", ".join(parser.labels)}')
    meta_table.add_row('Format version', f'{metadata["format_version"]}')
    if 'version' in metadata:
        meta_table.add_row('Data version', f'{metadata["version"]}')
        meta_table.add_row('Date', f'{metadata["date"]}')
    meta_table.add_row('CRC', f'{metadata["crc"]}')
    return meta_table


def build_register_table(title, registers):
    table = rich.table.Table(title=title, row_styles=['dim', ''])
    table.add_column('Address', justify='right')
    table.add_column('Value', justify='right')
    for address, value in expand_registers(registers):
        table.add_row(f'{address:#06x}', f'{value:#04x}')
    return table


def build_tree(static_data):
    '''Build a tree of all blocks for pretty printing'''
    tree = rich.tree.Tree(f'CCS static data, format version {static_data.format_version}')
    for block in static_data.blocks:
        name = enum_name(to_enum(BlockId, block.block_id))
        match block:
            case DataVersion():
                tree.add(f'{name}: {block.major}.{block.minor} ({block.date})')
            case RegisterList():
                add_registers(tree.add(f'{name}: {len(block.registers)} entries'), block.registers)
            case RuleBlock():
                add_rules(tree.add(f'{name}: {len(block.rules)} rules'), block.rules)
            case PdafPixelLocation():
                add_pdaf(tree.add(name), block.pixel_location)
            case License():
                tree.add(f'{name}: {len(block.text)} bytes')
            case Dummy():
                tree.add(f'{name}: {len(block.data)} bytes')
            case EndBlock():
                tree.add(f'{name}: CRC {block.crc:#010x}')
            case UnknownBlock():
                tree.add(f'{name}: {len(block.payload)} bytes')
    return tree


def add_registers(tree, registers):
    for entry in registers:
        tree.add(f'{entry.address:#06x}: {entry.value.hex()}')


def add_ffd(tree, ffd):
    for kind, entries in [('column', ffd.columns), ('row', ffd.rows)]:
        for entry in entries:
            tree.add(f'{kind} {enum_name(entry.pixelcode)}: {entry.value}')


def add_rules(tree, rules):
    for rule in rules:
        match rule:
            case IfRule():
                subtree = tree.add(f'IF ({rule.address:#06x} & {rule.mask:#04x}) == {rule.value:#04x}')
                add_rules(subtree, rule.rules)
            case RegisterRule():
                add_registers(tree.add(f'{rule.rule_id.name}: {len(rule.registers)} entries'), rule.registers)
            case FfdRule():
                add_ffd(tree.add(f'FFD: {rule.ffd.column_count} columns, {rule.ffd.row_count} rows'), rule.ffd)
            case PdafReadoutRule():
                subtree = tree.add(f'PDAF_READOUT: order {enum_name(rule.readout.order)}')
                add_ffd(subtree, rule.readout.ffd)
            case _:
                tree.add(f'{enum_name(to_enum(RuleId, rule.rule_id))}: {len(rule.body)} bytes')


def add_pdaf(tree, pixel_location):
    tree.add(f'main offset: ({pixel_location.main_offset_x}, {pixel_location.main_offset_y})')
    tree.add(f'global PDAF type: {pixel_location.global_pdaf_type}')
    tree.add(f'block size: {pixel_location.block_width}x{pixel_location.block_height}')
    for group in pixel_location.block_desc_groups:
        subtree = tree.add(f'block descriptor group, repeat y {group.repeat_y}')
        for block_desc in group.block_descs:
            subtree.add(f'block type {block_desc.block_type_id}, repeat x {block_desc.repeat_x}')
    for block_type_id, pixel_descs in enumerate(pixel_location.pixel_desc_groups):
        subtree = tree.add(f'block type {block_type_id} pixels')
        for pixel_desc in pixel_descs:
            subtree.add(f'{enum_name(pixel_desc.pixel_type)} at ({pixel_desc.small_offset_x}, {pixel_desc.small_offset_y})')


if __name__ == "__main__":
    app()
