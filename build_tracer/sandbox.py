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
import shutil

from pathlib import Path
from typing  import Final, Optional, TextIO

from build_tracer.log    import getLog, traceLog
from build_tracer.target import Target


log = getLog('sandbox')


# --------------------------------------------------------------
# Copy of the target dependencies into the sandbox
#

class SandboxMaterializer:
    def __init__(self, sandbox_root : Path):
        self.sandbox_root : Final[Path] = Path(sandbox_root)
        self.copied       : int         = 0
        self.failed       : int         = 0

    def destination(self, path : str, cwd : Optional[str] = None) -> tuple[Path, Path]:
        """Source and sandbox destination of a dependency.

        A relative dependency is read relative to ``cwd`` and lands directly
        under the sandbox root, an absolute one keeps its full path below it.
        """
        if os.path.isabs(path):
            src = Path(path)
            dst = self.sandbox_root / Path(*src.parts[1:])
        else:
            src = Path(cwd) / path if cwd else Path(path)
            dst = self.sandbox_root / path
        return (src, dst)

    def __atomic_file_copy(self, fsrc, copy_dst : Path):
        copy_dst_pp = copy_dst.with_name(copy_dst.name + '.' + str(os.getpid()))
        try:
            with copy_dst_pp.open('wb') as fdst:
                shutil.copyfileobj(fsrc, fdst)
            copy_dst_pp.replace(copy_dst)
        except OSError:
            copy_dst_pp.unlink(missing_ok=True)
            raise

    def copy_dependency(self, path : str, cwd : Optional[str] = None) -> bool:
        (copy_src, copy_dst) = self.destination(path, cwd)

        try:
            fsrc = copy_src.open('rb')
        except OSError as e:
            log.error("dependency %s could not be opened to copy: %s", copy_src, e.strerror or e)
            self.failed += 1
            return False

        with fsrc:
            try:
                copy_dst.parent.mkdir(mode=0o755, parents=True, exist_ok=True)
                self.__atomic_file_copy(fsrc, copy_dst)
            except OSError as e:
                log.error("sandbox copy %s of dependency %s could not be written: %s", copy_dst, copy_src, e.strerror or e)
                self.failed += 1
                return False

        self.copied += 1
        return True

    @traceLog()
    def materialize(self, target : Target):
        for dep in target.dependencies:
            self.copy_dependency(dep, target.cwd)


# --------------------------------------------------------------
# Synthesized Makefile in the sandbox
#

class BuildScriptWriter:
    umbrella_name : Final[str] = 'all'

    def __init__(self, stream : TextIO, sandbox_root : Path):
        self.__stream       = stream
        self.__sandbox_root = Path(sandbox_root)
        self.__names        = []
        self.__started      = False

    def __start(self):
        if self.__started:
            return
        self.__started = True
        self.__stream.write(".DEFAULT_GOAL := {}\n\n".format(BuildScriptWriter.umbrella_name))

    def rewrite_command(self, command : str) -> str:
        # Headers mirrored into the sandbox are found first
        include = '-I' + str(self.__sandbox_root)
        parts = command.split(' ', 1)
        if len(parts) == 1:
            return '{} {}'.format(parts[0], include)
        return '{} {} {}'.format(parts[0], include, parts[1])

    def write_rule(self, target : Target):
        self.__start()
        first = target.first_dependency
        rule = "{}:{}\n\t{}\n\n".format(
            target.name,
            ' ' + first if first else '',
            self.rewrite_command(target.command)
        )
        self.__stream.write(rule)
        self.__names.append(target.name)

    def write_umbrella(self):
        self.__start()
        name = BuildScriptWriter.umbrella_name
        self.__stream.write(".PHONY: {0}\n{0}:{1}\n".format(
            name,
            ''.join(' ' + n for n in self.__names)
        ))
