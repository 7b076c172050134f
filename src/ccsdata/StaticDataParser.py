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

import os

from .CcsDataException import check_condition
from .blocks import RuleBlock, PdafPixelLocation, License, UnknownBlock
from .configuration import CcsDataConfig
from .definitions import enum_name, to_enum, BlockId
from .static_data import find_static_data_end, parse_static_data


class OffsetInputFile:
    '''Wrap an open binary file so that position 0 is at offset'''
    def __init__(self, infile, offset):
        self.infile = infile
        self.offset = offset
        current = infile.tell()
        self._size = infile.seek(0, os.SEEK_END)
        infile.seek(current)

    def __getattr__(self, name):
        return self.infile.__getattribute__(name)

    def seek(self, offset, whence=os.SEEK_SET):
        if whence == os.SEEK_SET:
            return self.infile.seek(offset + self.offset, whence) - self.offset
        return self.infile.seek(offset, whence) - self.offset

    def tell(self):
        return self.infile.tell() - self.offset

    @property
    def size(self):
        return self._size - self.offset


class StaticDataParser:
    """The StaticDataParser parses CCS static data from an open binary
    file, starting at an offset. The static data does not need to run to
    the end of the file: it ends with its END block, so it can be carved
    out of a larger image (for example a dump of a sensor module's NVM).

    After parse_from_offset() the decoded data is in self.data and the
    number of bytes it used in self.parsed_size. Errors are raised as
    CcsDataException subclasses.
    """
    extensions = ['.ccs', '.bin']
    pretty_name = 'ccs_static_data'

    def __init__(self, infile, offset, configuration=None):
        '''Creates a StaticDataParser that will read from infile, starting
        at offset.'''
        self.offset = offset
        self.infile = OffsetInputFile(infile, self.offset)
        if configuration is None:
            configuration = CcsDataConfig()
        self.configuration = configuration

    def parse(self):
        buffer = self.infile.read()
        end = find_static_data_end(buffer)
        self.data = parse_static_data(buffer[:end],
                                      strict=self.configuration.strict,
                                      max_depth=self.configuration.max_depth,
                                      verify_crc=self.configuration.verify_crc)
        self.infile.seek(end)

    def parse_from_offset(self):
        """Parses the data from the file, starting from offset. Normally you
        do not need to override this.
        """
        self.infile.seek(0)
        self.parse()
        self.calculate_unpacked_size()
        check_condition(self.unpacked_size > 0, 'Parser resulted in zero length data')

    def calculate_unpacked_size(self):
        self.unpacked_size = self.infile.tell()

    @property
    def parsed_size(self):
        return self.unpacked_size

    @classmethod
    def is_valid_extension(cls, ext):
        return ext in cls.extensions

    @property
    def labels(self):
        labels = ['ccs static data']
        for block in self.data.blocks:
            if isinstance(block, RuleBlock):
                labels.append('rules')
            elif isinstance(block, PdafPixelLocation):
                labels.append('pdaf')
            elif isinstance(block, License):
                labels.append('license')
            elif isinstance(block, UnknownBlock):
                labels.append('unknown blocks')
        return sorted(set(labels))

    @property
    def metadata(self):
        metadata = {}
        metadata['format_version'] = self.data.format_version
        version = self.data.version
        if version is not None:
            metadata['version'] = f'{version.major}.{version.minor}'
            metadata['date'] = version.date
        metadata['crc'] = f'{self.data.crc:#010x}'
        metadata['blocks'] = [enum_name(to_enum(BlockId, b.block_id)) for b in self.data.blocks]
        metadata['registers'] = {
            'sensor_read_only': len(self.data.sensor_read_only_regs),
            'module_read_only': len(self.data.module_read_only_regs),
            'sensor_manufacturer': len(self.data.sensor_manufacturer_regs),
            'module_manufacturer': len(self.data.module_manufacturer_regs),
        }
        if self.data.license is not None:
            metadata['license'] = self.data.license.decode('utf-8', errors='replace')
        return metadata
