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

from dataclasses import dataclass
from typing      import Optional


@dataclass
class ProcessState:
    pid          : int
    cwd          : str
    watched      : bool          = False
    # Pid of the vfork parent the events of this pid are re-routed to
    alias_of     : Optional[int] = None
    cwd_changed  : bool          = False
    exited       : bool          = False


class ProcessStateTracker:
    """Per-pid working directory, watched flag and vfork bracketing.

    Entries are created on first reference and never removed. New pids start
    in the tracer's own working directory unless a spawn from a known parent
    was observed first.
    """

    def __init__(self, root_cwd : str):
        self.root_cwd : str                     = str(root_cwd)
        self.__procs  : dict[int, ProcessState] = {}
        # Pids with a vfork in flight, most recent last
        self.__vforks : list[int]               = []

    def __is_new(self, pid : int) -> bool:
        state = self.__procs.get(pid)
        return state is None or state.exited

    def __get(self, pid : int) -> ProcessState:
        state = self.__procs.get(pid)
        if state is None or state.exited:
            # An exited pid showing up again is a new process
            state = ProcessState(pid, self.root_cwd)
            self.__procs[pid] = state
        return state

    def state(self, pid : int) -> ProcessState:
        return self.__get(self.resolve(pid))

    # --------------
    # vfork
    #
    def resolve(self, pid : int) -> int:
        if self.__vforks and self.__is_new(pid):
            # Not yet seen pid between "vfork(<unfinished ...>" and "vfork resumed":
            # the freshly created child, borrowing the parent's identity
            self.__procs[pid] = ProcessState(pid, self.root_cwd, alias_of=self.__vforks[-1])

        seen = set()
        state = self.__procs.get(pid)
        while state is not None and state.alias_of is not None and pid not in seen:
            seen.add(pid)
            pid = state.alias_of
            state = self.__procs.get(pid)
        return pid

    def on_vfork_unfinished(self, pid : int):
        pid = self.resolve(pid)
        self.__get(pid)
        if pid in self.__vforks:
            self.__vforks.remove(pid)
        self.__vforks.append(pid)

    def on_vfork_resumed(self, pid : int, child : Optional[int] = None):
        pid = self.resolve(pid)
        parent = self.__get(pid)
        if pid in self.__vforks:
            self.__vforks.remove(pid)

        for state in self.__procs.values():
            if state.alias_of == pid:
                state.alias_of = None
                state.cwd      = parent.cwd
                state.watched  = state.watched or parent.watched

        if child is not None and child != pid:
            self.on_spawn(pid, child)

    # --------------
    # fork, clone, exit
    #
    def on_spawn(self, parent : int, child : int):
        parent_state = self.__get(self.resolve(parent))

        state = self.__procs.get(child)
        if state is None or state.exited:
            # New or reused pid: starts over from the parent
            self.__procs[child] = ProcessState(child, parent_state.cwd, parent_state.watched)
            return

        # The child already ran before the parent's return from clone was logged
        state.watched = state.watched or parent_state.watched
        if not state.cwd_changed:
            state.cwd = parent_state.cwd

    def on_exit(self, pid : int):
        state = self.__procs.get(pid)
        if state is not None and state.alias_of is None:
            state.exited = True

    # --------------
    # cwd and watched flag
    #
    def on_chdir(self, pid : int, new_path : str):
        state = self.state(pid)
        state.cwd = os.path.normpath(os.path.join(state.cwd, new_path))
        state.cwd_changed = True

    def get_cwd(self, pid : int) -> str:
        return self.state(pid).cwd

    def mark_watched(self, pid : int):
        self.state(pid).watched = True

    def is_watched(self, pid : int) -> bool:
        return self.state(pid).watched
