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

import time


class Timer:
    def __init__(self, clock=time.time):
        self.__clock = clock
        self.stages = []
        self.cut('') # start time

    def cut(self, name):
        self.stages.append((name, self.__clock()))

    def __format_summary_row(self, name, interval):
        return "{}: {:.3f}s".format(name, interval)

    def get_summary_pretty(self):
        ret = []
        for (prev, cur) in zip(self.stages, self.stages[1:]):
            ret.append(self.__format_summary_row(cur[0], cur[1] - prev[1]))
        ret.append(self.__format_summary_row("TOTAL", self.stages[-1][1] - self.stages[0][1]))
        return ret
