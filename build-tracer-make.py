#!/usr/bin/python3

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

from build_tracer.main import main


if __name__ == '__main__':
    main()
