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

import io

from typing import Final, TextIO

from build_tracer.target import Target


# --------------------------------------------------------------
# Text outputs. Every record is built completely and then written
# with a single write() call.
#

class CommandListWriter:
    def __init__(self, stream : TextIO):
        self.__stream = stream

    def write(self, command : str):
        self.__stream.write(command + '\n')


class SourceListWriter:
    def __init__(self, stream : TextIO):
        self.__stream = stream

    def write(self, path : str):
        self.__stream.write(path + '\n')


class DependencyRecordWriter:
    """Blocks of the dependency file::

        TARGET:  foo
        COMMAND:  gcc -o foo foo.c
        DEPENDENCY:  /src/foo.c  /src/foo.h
                      /src/long/path/to/bar.h
    """

    line_limit : Final[int] = 80
    indent     : Final[int] = 12

    def __init__(self, stream : TextIO):
        self.__stream = stream

    @staticmethod
    def format(target : Target) -> str:
        buf = io.StringIO()
        buf.write("TARGET:  {}\n".format(target.name))
        buf.write("COMMAND:  {}\n".format(target.command))
        buf.write("DEPENDENCY:")

        indent = DependencyRecordWriter.indent
        line_len = indent
        for dep in target.dependencies:
            if line_len > indent and line_len + len(dep) > DependencyRecordWriter.line_limit:
                buf.write('\n' + ' ' * indent)
                line_len = indent
            buf.write('  ' + dep)
            line_len += len(dep) + 2
        buf.write('\n')
        return buf.getvalue()

    def write(self, target : Target):
        self.__stream.write(DependencyRecordWriter.format(target))
