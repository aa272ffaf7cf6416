# progress.py - part of splinalign

## Copyright (C) 2025  Daniel A. Wagenaar
##
## This program is free software: you can redistribute it and/or
## modify it under the terms of the GNU General Public License as
## published by the Free Software Foundation, either version 3 of the
## License, or (at your option) any later version.
##
## This program is distributed in the hope that it will be useful, but
## WITHOUT ANY WARRANTY; without even the implied warranty of
## MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the GNU
## General Public License for more details.
##
## You should have received a copy of the GNU General Public License
## along with this program.  If not, see <https://www.gnu.org/licenses/>.


import threading
import tqdm
from typing import Dict


class TqdmReporter:
    """Progress callback that shows one tqdm bar per task

    An instance can be passed as the `progress` argument of the
    pyramid builders and of `prepare`. Several builders may report
    through the same instance from different threads. A bar is opened
    when a task reports a current count of zero and closed when it
    reports completion.
    """
    def __init__(self, disable: bool = False):
        self.disable = disable
        self._bars: Dict[str, tqdm.tqdm] = {}
        self._lock = threading.Lock()

    def __call__(self, current: int, total: int, message: str) -> None:
        with self._lock:
            bar = self._bars.get(message)
            if bar is None:
                bar = tqdm.tqdm(total=total, desc=message, unit="step",
                                leave=False, disable=self.disable)
                self._bars[message] = bar
            if total != bar.total:
                bar.reset(total=total)
            bar.n = current
            bar.refresh()
            if current >= total:
                bar.close()
                del self._bars[message]

    def close(self) -> None:
        with self._lock:
            for bar in self._bars.values():
                bar.close()
            self._bars.clear()
