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

import functools
import logging
import sys


# Diagnostics (errors, skipped dependencies) go through the logger to stderr,
# stage banners and the summary go to stdout.

LOGGER_NAME = 'build_tracer'


def getLog(name=None):
    if name is None:
        return logging.getLogger(LOGGER_NAME)
    return logging.getLogger(LOGGER_NAME + '.' + name)


def setup_logging(level='INFO', stream=None):
    log = getLog()
    log.setLevel(level)
    if not log.handlers:
        handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
        handler.setFormatter(logging.Formatter('%(levelname)s: %(message)s'))
        log.addHandler(handler)
    return log


def traceLog(logger=None):
    """Log entry and exit of the decorated function at DEBUG level."""
    def decorator(func):
        @functools.wraps(func)
        def trace(*args, **kw):
            log = logger if logger is not None else getLog()
            if not log.isEnabledFor(logging.DEBUG):
                return func(*args, **kw)
            log.debug("ENTER %s", func.__qualname__)
            try:
                result = func(*args, **kw)
            except Exception as e:
                log.debug("EXCEPTION %s: %s", func.__qualname__, e)
                raise
            log.debug("LEAVE %s", func.__qualname__)
            return result
        return trace
    return decorator


# --------------
# Stage output
#
def print_line(*objects, sep=' ', end='\n', flush=True, file=None):
    out = file if file is not None else sys.stdout
    out.write(sep.join(str(item) for item in objects) + end)
    if flush:
        out.flush()


def print_banner(stage, mark):
    # TRACE-START-------------------- / TRACE-END----------------------
    s = '{}-{}'.format(stage.upper(), mark.upper())
    print_line(s + '-' * max(32 - len(s), 4))
