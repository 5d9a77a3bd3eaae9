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

from pathlib import Path
from typing  import Iterable, Optional, TextIO

from build_tracer.classifier    import (LineClassifier, InvocationStart, DirChange, FileOpen,
                                        VforkUnfinished, VforkResumed, ProcessSpawn, ProcessExit)
from build_tracer.command       import parse_invocation, extract_source_file, extract_target_name
from build_tracer.errors        import MissingOutputFlagError
from build_tracer.filter        import DependencyFilter
from build_tracer.log           import getLog, traceLog
from build_tracer.process_state import ProcessStateTracker
from build_tracer.sandbox       import SandboxMaterializer, BuildScriptWriter
from build_tracer.target        import Target
from build_tracer.writers       import CommandListWriter, SourceListWriter, DependencyRecordWriter


log = getLog('graph')


# --------------------------------------------------------------
# State of one scan of a trace
#

class ScanSession:
    """Everything a scan mutates: the pid table and the outputs.

    A fresh session is created for every trace, nothing is shared between
    sessions.
    """

    def __init__(self,
                 root_cwd         : str,
                 command_writer   : CommandListWriter,
                 source_writer    : SourceListWriter,
                 dependency_writer: DependencyRecordWriter,
                 materializer     : SandboxMaterializer,
                 build_script     : BuildScriptWriter):
        self.tracker           : ProcessStateTracker    = ProcessStateTracker(root_cwd)
        self.classifier        : LineClassifier         = LineClassifier(self.tracker)
        self.filter            : DependencyFilter       = DependencyFilter()
        self.command_writer    : CommandListWriter      = command_writer
        self.source_writer     : SourceListWriter       = source_writer
        self.dependency_writer : DependencyRecordWriter = dependency_writer
        self.materializer      : SandboxMaterializer    = materializer
        self.build_script      : BuildScriptWriter      = build_script

    @classmethod
    def for_streams(cls, root_cwd, sandbox_root : Path,
                    commands : TextIO, sources : TextIO, dependencies : TextIO, build_script : TextIO):
        return cls(
            str(root_cwd),
            CommandListWriter(commands),
            SourceListWriter(sources),
            DependencyRecordWriter(dependencies),
            SandboxMaterializer(sandbox_root),
            BuildScriptWriter(build_script, sandbox_root),
        )


# --------------------------------------------------------------
# Targets from the trace
#

class TargetGraphBuilder:
    """Single forward scan of the trace.

    At most one target is open. A gcc/g++ invocation finalizes it and opens
    the next one, the end of the trace finalizes the last one. Finalizing
    writes the dependency record, copies the dependencies into the sandbox
    and appends the Makefile rule.
    """

    def __init__(self, session : ScanSession):
        self.__session : ScanSession      = session
        self.__current : Optional[Target] = None

        self.targets   : list[Target]                 = []
        self.skipped   : list[MissingOutputFlagError] = []
        self.lines     : int                          = 0

    @property
    def current(self) -> Optional[Target]:
        return self.__current

    @traceLog()
    def scan(self, lines : Iterable[str]):
        for line in lines:
            self.process_line(line)
        self.finish()

    def process_line(self, line : str):
        self.lines += 1
        event = self.__session.classifier.classify(line)
        if event is None:
            return

        tracker = self.__session.tracker

        if isinstance(event, InvocationStart):
            self.__on_invocation(event)
        elif isinstance(event, FileOpen):
            self.__on_open(event)
        elif isinstance(event, DirChange):
            tracker.on_chdir(event.pid, event.new_path)
        elif isinstance(event, VforkUnfinished):
            tracker.on_vfork_unfinished(event.pid)
        elif isinstance(event, VforkResumed):
            tracker.on_vfork_resumed(event.pid, event.child)
        elif isinstance(event, ProcessSpawn):
            tracker.on_spawn(event.pid, event.child)
        elif isinstance(event, ProcessExit):
            tracker.on_exit(event.pid)

    def finish(self):
        self.__finalize()
        self.__session.build_script.write_umbrella()

    # --------------
    # Events
    #
    def __on_invocation(self, event : InvocationStart):
        session = self.__session
        pid = session.tracker.resolve(event.pid)

        invocation = parse_invocation(event.raw_args)
        if not invocation.is_watched_tool:
            return

        cwd = session.tracker.get_cwd(pid)
        session.command_writer.write(invocation.arg_string)

        source = extract_source_file(event.raw_args)
        if source is not None:
            source = DependencyFilter.resolve(source, cwd)
            session.source_writer.write(source)

        # as, ld: recorded, but the current target stays as it is
        if not invocation.is_compiler:
            log.debug("pid %d: %s does not start a target", pid, invocation.program)
            return

        self.__finalize()
        session.tracker.mark_watched(pid)

        try:
            name = extract_target_name(invocation.arg_string)
        except MissingOutputFlagError as e:
            log.warning("pid %d: %s", pid, e)
            self.skipped.append(e)
            return

        target = Target(name, invocation.arg_string, pid, cwd)
        if source is not None:
            target.add_dependency(source)
        self.__current = target

    def __on_open(self, event : FileOpen):
        if self.__current is None:
            return

        session = self.__session
        if not session.filter.allow(event.raw_path, event.flags):
            return

        base = event.dir_path
        if base is None:
            base = session.tracker.get_cwd(event.pid)
        self.__current.add_dependency(DependencyFilter.resolve(event.raw_path, base))

    # --------------
    # Finalization
    #
    def __finalize(self):
        target = self.__current
        if target is None:
            return
        self.__current = None

        session = self.__session
        session.dependency_writer.write(target)
        session.materializer.materialize(target)
        session.build_script.write_rule(target)
        self.targets.append(target)

        log.info("target %s: %d dependencies", target.name, len(target.dependencies))
