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

# import YAML module for the configuration
from yaml import load
from yaml import YAMLError
try:
    from yaml import CLoader as Loader
except ImportError:
    from yaml import Loader

from .CcsDataException import ConfigurationError
from .rules import DEFAULT_MAX_DEPTH


class CcsDataConfig:
    '''Settings that control how static data is parsed.'''
    def __init__(self, strict=False, max_depth=DEFAULT_MAX_DEPTH, verify_crc=True):
        self.strict = strict
        self.max_depth = max_depth
        self.verify_crc = verify_crc

    @property
    def strict(self):
        return self._strict

    @strict.setter
    def strict(self, strict):
        if not isinstance(strict, bool):
            raise ConfigurationError(f'strict must be true or false, not {strict!r}')
        self._strict = strict

    @property
    def max_depth(self):
        return self._max_depth

    @max_depth.setter
    def max_depth(self, max_depth):
        if isinstance(max_depth, bool) or not isinstance(max_depth, int) or max_depth < 0:
            raise ConfigurationError(f'max_depth must be a non-negative integer, not {max_depth!r}')
        self._max_depth = max_depth

    @property
    def verify_crc(self):
        return self._verify_crc

    @verify_crc.setter
    def verify_crc(self, verify_crc):
        if not isinstance(verify_crc, bool):
            raise ConfigurationError(f'verify_crc must be true or false, not {verify_crc!r}')
        self._verify_crc = verify_crc

    def __repr__(self):
        return f'CcsDataConfig(strict={self.strict}, max_depth={self.max_depth}, verify_crc={self.verify_crc})'


def load_configuration(config_file):
    '''Read a configuration from an open YAML file (or string). Settings
    are found in the 'parser' section:

        parser:
          strict: true
          max_depth: 16
          verify_crc: true
    '''
    try:
        config = load(config_file, Loader=Loader)
    except (YAMLError, UnicodeDecodeError) as e:
        raise ConfigurationError(f'cannot read configuration: {e}') from e

    configuration = CcsDataConfig()
    if config is None:
        return configuration
    if not isinstance(config, dict):
        raise ConfigurationError('configuration is not a mapping')

    parser_config = config.get('parser')
    if parser_config is None:
        return configuration
    if not isinstance(parser_config, dict):
        raise ConfigurationError("'parser' section is not a mapping")

    for key, value in parser_config.items():
        if key not in ('strict', 'max_depth', 'verify_crc'):
            raise ConfigurationError(f'unknown parser setting {key!r}')
        setattr(configuration, key, value)
    return configuration
