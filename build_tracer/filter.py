# --------------------------------------------------------------
#  ____            _   _       _     _______                                     
# |  _ \          (_) | |     | |   |__   __|                                    
# | |_) |  _   _   _  | |   __| |      | |     _ __    __ _    ___    ___   _ __ 
# |  _ <  | | | | | | | |  / _` |      | |    | '__|  / _` |  / __|  / _ \ | '__|
# | |_) | | |_| | | | | | | (_| |      | |    | |    | (_| | | (__  |  __/ | |   
# |____/   \__,_| |_| |_|  \__,_|      |_|    |_|     \__,_|  \___|  \___| |_|   
#
# --------------------------------------------------------------
#
# Copyright (c) 2025, LLC NIC CT
# Copyright (c) 2025, Vladislav Shchapov <vladislav@shchapov.ru>
#
# This program is free software; you can redistribute it and/or
# modify it under the terms of the GNU General Public License
# as published by the Free Software Foundation; either version 2
# of the License, or any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program; if not, see <https://www.gnu.org/licenses/>.
#
# --------------------------------------------------------------

import os.path
import re

from typing import Final, Optional


# --------------------------------------------------------------
# Filter of opened files
#

class DependencyFilter:

    # Substrings of toolchain internal, locale and system noise paths.
    ignore_substring_list : Final[tuple] = (
        'locale',
        '/etc/',
        '/types/',
        '.cache',
        '/bits/',
        '/tmp/',
    )

    # Open flags of files which are not inputs:
    # outputs (objects, results, binaries) and directory scans.
    ignore_flag_list : Final[frozenset] = frozenset([
        'O_WRONLY',
        'O_RDWR',
        'O_DIRECTORY',
    ])

    def __init__(self):
        self.__ignore_regex = re.compile('|'.join(map(re.escape, DependencyFilter.ignore_substring_list)))

    def allow(self, path : str, flags : Optional[str] = None) -> bool:
        if not path:
            return False
        if self.__ignore_regex.search(path):
            return False
        if flags and not DependencyFilter.ignore_flag_list.isdisjoint(flags.split('|')):
            return False
        return True

    @staticmethod
    def resolve(path : str, cwd : str) -> str:
        # Absolute paths are kept as they were traced
        if os.path.isabs(path):
            return path
        return os.path.normpath(os.path.join(cwd, path))
