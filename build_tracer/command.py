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

from dataclasses import dataclass
from typing      import Final, Optional

from build_tracer.errors import MissingOutputFlagError


# Executables whose invocations are recorded
WATCHED_TOOLS : Final[frozenset] = frozenset(['gcc', 'g++', 'as', 'ld'])
# Watched tools that start a new target
COMPILERS     : Final[frozenset] = frozenset(['gcc', 'g++'])

# Priority order: '.cc' first so that a '.cc' file is not taken for a '.c' one
SOURCE_SUFFIXES : Final[tuple] = ('.cc', '.c', '.o', '.s')

OUTPUT_FLAG : Final[str] = '-o'


@dataclass(frozen=True)
class Invocation:
    program   : str
    executable: str
    arg_string: str

    @property
    def is_watched_tool(self) -> bool:
        return self.program in WATCHED_TOOLS

    @property
    def is_compiler(self) -> bool:
        return self.program in COMPILERS


def parse_invocation(raw_args : str) -> Invocation:
    """Parse the text following ``execve("`` of a trace line.

    ``/usr/bin/gcc", ["gcc", "-o", "a", "a.c"], 0x7ffc /* 20 vars */) = 0``
    gives the program ``gcc`` and the argument string ``gcc -o a a.c``.
    """
    end = raw_args.find('"')
    executable = raw_args if end < 0 else raw_args[:end]
    program = executable[executable.rfind('/') + 1:]

    lbracket = raw_args.find('[')
    rbracket = raw_args.find(']')
    if lbracket < 0:
        arg_string = ''
    else:
        if rbracket < lbracket:
            rbracket = len(raw_args)
        arg_string = ''.join(c for c in raw_args[lbracket + 1:rbracket] if c not in '",')

    return Invocation(program, executable, arg_string)


def extract_source_file(raw_args : str) -> Optional[str]:
    for suffix in SOURCE_SUFFIXES:
        idx = raw_args.find(suffix)
        if idx < 0:
            continue
        # Walk back to the quote opening this argument
        start = raw_args.rfind('"', 0, idx) + 1
        return raw_args[start:idx + len(suffix)]
    return None


def extract_target_name(arg_string : str) -> str:
    args = arg_string.split(' ')
    try:
        idx = args.index(OUTPUT_FLAG)
    except ValueError:
        raise MissingOutputFlagError(arg_string) from None

    if idx + 1 >= len(args) or not args[idx + 1]:
        raise MissingOutputFlagError(arg_string)
    return args[idx + 1]
