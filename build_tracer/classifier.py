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

import re

from dataclasses import dataclass
from typing      import Final, Optional

from build_tracer.process_state import ProcessStateTracker


# --------------------------------------------------------------
# Events of one trace line
#

@dataclass(frozen=True)
class InvocationStart:
    pid     : int
    raw_args: str


@dataclass(frozen=True)
class DirChange:
    pid     : int
    new_path: str


@dataclass(frozen=True)
class FileOpen:
    pid     : int
    raw_path: str
    # Directory of the dirfd argument when strace decoded it (-y), else None
    dir_path: Optional[str] = None
    flags   : Optional[str] = None


@dataclass(frozen=True)
class VforkUnfinished:
    pid: int


@dataclass(frozen=True)
class VforkResumed:
    pid  : int
    child: Optional[int] = None


@dataclass(frozen=True)
class ProcessSpawn:
    pid  : int
    child: int


@dataclass(frozen=True)
class ProcessExit:
    pid: int


# Header suffixes. Note: suffixes start with a dot!
HEADER_SUFFIXES : Final[tuple] = ('.h', '.hh', '.hpp', '.hxx', '.h++', '.H', '.ipp')


def decode_xstr(raw : str) -> str:
    # Decoder of strings in the strace escaped format (\", \\, \n, \xNN, \303\251).
    # Escapes stand for bytes, the bytes of a path are decoded as UTF-8.
    if raw is None or '\\' not in raw:
        return raw
    data = raw.encode('utf-8', 'surrogateescape').decode('unicode-escape')
    return data.encode('latin1').decode('utf-8', 'surrogateescape')


def is_header(path : str) -> bool:
    return path.endswith(HEADER_SUFFIXES)


class LineClassifier:
    # "1234  syscall(...)" from strace -f -o, or "[pid  1234] syscall(...)" on a terminal
    regex_line       = re.compile(r"^\s*(?:\[pid\s+)?(?P<pid>\d+)\]?\s+(?P<rest>.*?)\s*$")

    # A call interrupted by another process and its continuation:
    #   100 openat(AT_FDCWD, "a.h", O_RDONLY <unfinished ...>
    #   100 <... openat resumed>) = -1 ENOENT (No such file or directory)
    regex_unfinished = re.compile(r"^(?P<head>(?P<call>execve|openat|f?chdir)\(.*?)\s*<unfinished \.\.\.>$")
    regex_resumed    = re.compile(r"^<\.\.\. (?P<call>execve|openat|f?chdir) resumed>\s*(?P<tail>.*)$")

    regex_execve     = re.compile(r"^execve\(\"(?P<args>.*)$")
    regex_openat     = re.compile(r"openat\((?P<dirfd>AT_FDCWD|\d+)(?:<(?P<dir>[^>]*)>)?, \"(?P<path>(?:[^\"\\]|\\.)*)\"(?:, (?P<flags>[A-Z0-9_|]+))?")
    regex_chdir      = re.compile(r"(?:^|\s)f?chdir\((?:\"(?P<path>(?:[^\"\\]|\\.)*)\"|(?P<fd>\d+)<(?P<fdpath>[^>]*)>)")
    regex_return     = re.compile(r"\)\s*=\s*(?P<ret>-?\d+|\?)")
    regex_spawn      = re.compile(r"^(?:<\.\.\. )?(?:fork|vfork|clone|clone2|clone3)(?:\(| resumed>).*\)\s*=\s*(?P<ret>\d+)(?:\s|$)")
    regex_exit       = re.compile(r"^\+\+\+ (?:exited with -?\d+|killed by [A-Z0-9]+)")

    def __init__(self, tracker : ProcessStateTracker):
        self.__tracker : ProcessStateTracker = tracker
        # pid -> (call, text before "<unfinished ...>")
        self.__unfinished : dict[int, tuple[str, str]] = {}

    def __return_value(self, rest : str) -> Optional[str]:
        # The result follows the last ") ="
        ret = None
        for m in LineClassifier.regex_return.finditer(rest):
            ret = m.group('ret')
        return ret

    def __join_resumed(self, pid : int, rest : str) -> Optional[str]:
        """Whole call text for a split call, None while the call is not complete."""
        um = LineClassifier.regex_unfinished.match(rest)
        if um is not None:
            self.__unfinished[pid] = (um.group('call'), um.group('head'))
            return None

        rm = LineClassifier.regex_resumed.match(rest)
        if rm is not None:
            pending = self.__unfinished.get(pid)
            if pending is None or pending[0] != rm.group('call'):
                return None
            del self.__unfinished[pid]
            return pending[1] + rm.group('tail')

        return rest

    def classify(self, line : str):
        m = LineClassifier.regex_line.match(line)
        if m is None:
            return None

        pid  = int(m.group('pid'))
        rest = self.__join_resumed(pid, m.group('rest'))
        if rest is None:
            return None

        # Failed exec is a PATH probe of the shell, not an invocation
        if (em := LineClassifier.regex_execve.match(rest)):
            if 'ENOENT' not in rest and self.__return_value(rest) != '-1':
                return InvocationStart(pid, em.group('args'))
            return None

        if 'openat(' in rest:
            if (event := self.__classify_openat(pid, rest)) is not None:
                return event

        if 'chdir(' in rest:
            return self.__classify_chdir(pid, rest)

        if 'vfork(' in rest and 'unfinished' in rest:
            return VforkUnfinished(pid)

        if 'vfork resumed' in rest:
            ret = self.__return_value(rest)
            child = int(ret) if ret is not None and ret.isdigit() else None
            return VforkResumed(pid, child if child else None)

        if (sm := LineClassifier.regex_spawn.match(rest)):
            child = int(sm.group('ret'))
            if child > 0:
                return ProcessSpawn(pid, child)
            return None

        if LineClassifier.regex_exit.match(rest):
            # A call left unfinished by a killed process never resumes
            self.__unfinished.pop(pid, None)
            return ProcessExit(pid)

        return None

    def __classify_openat(self, pid : int, rest : str) -> Optional[FileOpen]:
        if 'ENOENT' in rest:
            return None
        om = LineClassifier.regex_openat.search(rest)
        if om is None:
            return None
        # -1 EACCES, ENOTDIR, ... ; "?" when the process died inside the call
        if self.__return_value(rest) in (None, '-1', '?'):
            return None

        path = decode_xstr(om.group('path'))
        if not (self.__tracker.is_watched(pid) or is_header(path)):
            return None

        return FileOpen(pid, path, decode_xstr(om.group('dir')), om.group('flags'))

    def __classify_chdir(self, pid : int, rest : str) -> Optional[DirChange]:
        cm = LineClassifier.regex_chdir.search(rest)
        if cm is None:
            # fchdir(3) without decoded descriptors
            return None
        if self.__return_value(rest) == '-1':
            return None
        if cm.group('path') is not None:
            return DirChange(pid, decode_xstr(cm.group('path')))
        return DirChange(pid, decode_xstr(cm.group('fdpath')))
