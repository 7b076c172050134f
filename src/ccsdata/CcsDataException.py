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


class CcsDataException(Exception):
    '''Base class for all errors raised while decoding or encoding CCS
    static data. offset is the absolute byte offset in the buffer that
    was being decoded, or None if the error is not tied to a position.
    '''
    def __init__(self, message, offset=None):
        super().__init__(message)
        self.message = message
        self.offset = offset

    def __str__(self):
        if self.offset is None:
            return self.message
        return f'{self.message} (offset {self.offset:#x})'


class TruncatedInput(CcsDataException):
    pass


class LengthOverflow(CcsDataException):
    pass


class InvalidSelector(CcsDataException):
    pass


class UnknownBlockId(CcsDataException):
    def __init__(self, message, block_id, offset=None):
        super().__init__(message, offset)
        self.block_id = block_id


class UnknownRuleId(UnknownBlockId):
    pass


class StructuralMismatch(CcsDataException):
    pass


class RecursionLimitExceeded(CcsDataException):
    pass


class ChecksumMismatch(CcsDataException):
    def __init__(self, message, expected, computed, offset=None):
        super().__init__(message, offset)
        self.expected = expected
        self.computed = computed


class ConfigurationError(CcsDataException):
    pass


def check_condition(condition, message, offset=None, exception=StructuralMismatch):
    '''semantic check function to see if condition is True.
    Raises exception (StructuralMismatch by default) with message if not.
    '''
    if not condition:
        raise exception(message, offset)
