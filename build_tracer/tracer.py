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

import os
import subprocess
import sys

from pathlib import Path

from build_tracer.log import traceLog


def make_trace_command(strace_command : str, trace_file : Path, make_command : str, make_args : list[str]) -> list[str]:
    strace_args = [
        '-f'                          , # follow forks, every line starts with the pid
        '-o', str(trace_file)         ,
        '-e', 'trace=execve,chdir,fchdir,openat,fork,vfork,clone,?clone3',
        '--no-abbrev'                 ,
        '-y'                          , # decode descriptors, openat dirfd as fd<path>
        '--string-limit={}'.format(os.sysconf('SC_ARG_MAX') if 'SC_ARG_MAX' in os.sysconf_names else 4194304),
    ]
    return [ strace_command ] + strace_args + [ make_command ] + list(make_args)


@traceLog()
def run_traced(run_command : list[str], cwd=None) -> int:
    # --------------
    # Run the command, no timeout

    # Flush buffers BEFORE
    sys.stdout.flush()
    sys.stderr.flush()

    # Popen to bind sys.stdin, sys.stdout, sys.stderr of the build
    proc = subprocess.Popen(run_command, stdin=sys.stdin, stdout=sys.stdout, stderr=sys.stderr, cwd=cwd)
    proc.wait()

    # Flush buffers AFTER
    sys.stdout.flush()
    sys.stderr.flush()

    return proc.returncode
