#-------------------------------------------------------------------------
# Copyright (c) Microsoft.  All rights reserved.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#   http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
#--------------------------------------------------------------------------
import asyncio

from ._error import _ERROR_VALUE_NOT_POSITIVE


class _ParallelOperationTracker(object):
    '''
    Runs at most max_parallelism operations at a time and lets the caller
    wait until every dispatched operation finished. Must be created and used
    on the event loop that runs the operations.
    '''

    def __init__(self, max_parallelism):
        if max_parallelism is None or max_parallelism < 1:
            raise ValueError(_ERROR_VALUE_NOT_POSITIVE.format('max_parallelism'))
        self.max_parallelism = max_parallelism
        self._semaphore = asyncio.Semaphore(max_parallelism)
        self._idle = asyncio.Event()
        self._idle.set()
        self._in_flight = 0
        self._error = None

    @property
    def in_flight(self):
        return self._in_flight

    async def dispatch(self, operation):
        '''
        Waits for a free slot, then starts operation, a coroutine function
        taking no argument, in the background. Returns its task. Fails with
        the first error of an earlier operation instead of starting new work.
        '''
        if self._error is not None:
            raise self._error

        await self._semaphore.acquire()
        self._in_flight += 1
        self._idle.clear()
        return asyncio.ensure_future(self._run(operation))

    async def _run(self, operation):
        try:
            return await operation()
        except (Exception, asyncio.CancelledError) as ex:
            if self._error is None:
                self._error = ex
            return None
        finally:
            self._in_flight -= 1
            self._semaphore.release()
            if self._in_flight == 0:
                self._idle.set()

    async def wait_all(self):
        '''
        Returns once no operation is in flight. Raises the first error any
        operation failed with.
        '''
        await self._idle.wait()
        if self._error is not None:
            raise self._error
