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
#
# Settings are taken from environment variables:
#
#   BUILD_TRACER_OUTPUT_DIR - directory for the trace, the result files and the sandbox.
#       Defaults to the current working directory.
#
#   BUILD_TRACER_STRACE_COMMAND - strace executable (/usr/bin/strace).
#
#   BUILD_TRACER_MAKE_COMMAND - build tool run under strace (make).
#
#   BUILD_TRACER_TRACE_FILE - name of the strace output file inside the output directory (t.out).
#
#   BUILD_TRACER_STAGE
#       Stages to run, separated by ','
#       Allowed: trace,parse or 'all' (default) - same as 'trace,parse'
#       'parse' alone scans an already recorded trace file.
#
#   BUILD_TRACER_LOG_LEVEL - level of diagnostic messages on stderr (INFO).
#
# --------------------------------------------------------------

import os

from pathlib import Path
from typing  import Final


class Stages:
    names : Final[tuple] = ('trace', 'parse')

    def __init__(self, arg : str):
        lst = [s.strip() for s in arg.split(",")]
        for name in Stages.names:
            self.__setattr__(name, name in lst or arg == 'all')

    def __repr__(self):
        return 'Stages({})'.format(','.join(n for n in Stages.names if getattr(self, n)))


class Config:
    # Output files, names are fixed
    commands_file_name   : Final[str] = 'commands_cache.txt'
    sources_file_name    : Final[str] = 'source_files.txt'
    dependency_file_name : Final[str] = 'dependency.txt'
    sandbox_dir_name     : Final[str] = 'sandbox'
    build_script_name    : Final[str] = 'Makefile'

    def __init__(self, environ=None):
        if environ is None:
            environ = os.environ

        self.output_dir     : Final[Path]   = Path(environ.get('BUILD_TRACER_OUTPUT_DIR', Path.cwd())).absolute()
        self.strace_command : Final[str]    = environ.get('BUILD_TRACER_STRACE_COMMAND', '/usr/bin/strace')
        self.make_command   : Final[str]    = environ.get('BUILD_TRACER_MAKE_COMMAND'  , 'make'           )
        self.trace_file     : Final[Path]   = self.output_dir / environ.get('BUILD_TRACER_TRACE_FILE', 't.out')
        self.stage          : Final[Stages] = Stages(environ.get('BUILD_TRACER_STAGE', 'all'))
        self.log_level      : Final[str]    = environ.get('BUILD_TRACER_LOG_LEVEL', 'INFO').upper()

    @property
    def commands_file(self) -> Path:
        return self.output_dir / Config.commands_file_name

    @property
    def sources_file(self) -> Path:
        return self.output_dir / Config.sources_file_name

    @property
    def dependency_file(self) -> Path:
        return self.output_dir / Config.dependency_file_name

    @property
    def sandbox_dir(self) -> Path:
        return self.output_dir / Config.sandbox_dir_name
