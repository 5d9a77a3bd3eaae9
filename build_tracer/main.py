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

import contextlib
import os
import sys

from pathlib import Path
from typing  import Final

from build_tracer.config import Config
from build_tracer.errors import OutputStreamError
from build_tracer.graph  import ScanSession, TargetGraphBuilder
from build_tracer.log    import getLog, setup_logging, print_banner, print_line
from build_tracer.timer  import Timer
from build_tracer.tracer import make_trace_command, run_traced


log = getLog()


# --------------------------------------------------------------
# Work
#

class MakeTracer:
    def __init__(self, argv=None, environ=None):
        # Stage timer
        self.timer = Timer()

        self.config     : Final[Config]      = Config(environ)
        self.make_args  : Final[list[str]]   = list(sys.argv[1:] if argv is None else argv)
        self.root_cwd   : Final[str]         = os.getcwd()
        self.builder    : TargetGraphBuilder = None
        self.returncode : int                = None
        self.__session  : ScanSession        = None

        setup_logging(self.config.log_level)

        # --------------
        # Timer: end of init
        self.timer.cut('init')
        # --------------


    def __print_summary(self):
        print_banner('summary', 'start')
        if self.returncode is not None:
            print_line("build exit code:", self.returncode)
        if self.builder is not None:
            materializer = self.__session.materializer
            print_line("trace lines:", self.builder.lines)
            print_line("targets:", len(self.builder.targets))
            print_line("skipped invocations:", len(self.builder.skipped))
            print_line("copied dependencies:", materializer.copied)
            print_line("failed dependencies:", materializer.failed)
        for l in self.timer.get_summary_pretty():
            print_line(l)
        print_banner('summary', 'end')


    def main(self) -> int:
        # ------------------------------
        # Run make under strace
        #
        if self.config.stage.trace:
            print_banner('trace', 'start')

            self.returncode = self.__do_trace()

            print_banner('trace', 'end')
            self.timer.cut('trace')

            # The trace of a failed build is parsed as well, as far as it goes
            if self.returncode != 0:
                log.warning("build exited with code %s, parsing the trace recorded so far", self.returncode)

        # ------------------------------
        # Parse the trace
        #
        if self.config.stage.parse:
            try:
                self.__do_parse()
            except OutputStreamError as e:
                log.error("%s", e)
                self.__print_summary()
                return 1

        self.__print_summary()
        return 0


    # --------------------------------------------------------------
    # Run make
    #
    def __do_trace(self) -> int:
        self.config.output_dir.mkdir(mode=0o755, parents=True, exist_ok=True)
        run_command = make_trace_command(
            self.config.strace_command,
            self.config.trace_file,
            self.config.make_command,
            self.make_args
        )
        log.info("running %s", ' '.join(run_command))
        return run_traced(run_command)


    # --------------------------------------------------------------
    # Processing of the trace
    #
    def __open(self, stack : contextlib.ExitStack, path : Path, mode : str):
        try:
            return stack.enter_context(path.open(mode, errors='surrogateescape'))
        except OSError as e:
            raise OutputStreamError(path, e) from e


    def __do_parse(self):
        print_banner('parse', 'start')

        cfg = self.config

        # Every stream opened so far is closed on any exit
        with contextlib.ExitStack() as stack:
            trace        = self.__open(stack, cfg.trace_file     , 'r')
            commands     = self.__open(stack, cfg.commands_file  , 'w')
            sources      = self.__open(stack, cfg.sources_file   , 'w')
            dependencies = self.__open(stack, cfg.dependency_file, 'w')

            try:
                cfg.sandbox_dir.mkdir(mode=0o755, parents=True, exist_ok=True)
            except OSError as e:
                raise OutputStreamError(cfg.sandbox_dir, e) from e
            build_script = self.__open(stack, cfg.sandbox_dir / Config.build_script_name, 'w')

            self.__session = ScanSession.for_streams(
                self.root_cwd, cfg.sandbox_dir,
                commands, sources, dependencies, build_script
            )
            self.builder = TargetGraphBuilder(self.__session)
            self.builder.scan(trace)

        print_banner('parse', 'end')
        self.timer.cut('parse')



def main():
    app = MakeTracer()
    sys.exit(app.main())


if __name__ == '__main__':
    main()
