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
import unittest
from io import BytesIO

from azstorage._parallel import _ParallelOperationTracker
from azstorage._upload_chunking import _upload_chunks
from tests.testcase import StorageTestCase


# --Helper Classes---------------------------------------------------------------
class _ConcurrencyProbe(object):
    def __init__(self):
        self.in_flight = 0
        self.peak = 0
        self.finished = []

    async def operation(self, name, delay=0.01, error=None):
        self.in_flight += 1
        self.peak = max(self.peak, self.in_flight)
        try:
            await asyncio.sleep(delay)
            if error is not None:
                raise error
            self.finished.append(name)
            return name
        finally:
            self.in_flight -= 1


class _RecordingExecutor(object):
    '''
    Returns the command instead of sending it.
    '''

    def __init__(self, probe):
        self.probe = probe

    async def execute_async(self, command, retry_policy=None, operation_context=None,
                            cancellation_token=None, location_mode=None):
        return await self.probe.operation(command)


# --Test Class -----------------------------------------------------------------
class StorageParallelTest(StorageTestCase):

    # --Test cases for the tracker -------------------------------------
    def test_parallelism_is_bounded(self):
        # Arrange
        probe = _ConcurrencyProbe()

        async def run():
            tracker = _ParallelOperationTracker(3)
            for i in range(10):
                await tracker.dispatch(lambda i=i: probe.operation(i))
                self.assertLessEqual(tracker.in_flight, 3)
            await tracker.wait_all()
            return tracker

        # Act
        tracker = asyncio.run(run())

        # Assert
        self.assertEqual(probe.peak, 3)
        self.assertEqual(sorted(probe.finished), list(range(10)))
        self.assertEqual(tracker.in_flight, 0)

    def test_wait_all_waits_for_outstanding_operations(self):
        # Arrange
        probe = _ConcurrencyProbe()

        async def run():
            tracker = _ParallelOperationTracker(2)
            await tracker.dispatch(lambda: probe.operation('slow', delay=0.2))
            await tracker.dispatch(lambda: probe.operation('fast'))
            await tracker.wait_all()

        # Act
        asyncio.run(run())

        # Assert
        self.assertEqual(probe.finished, ['fast', 'slow'])

    def test_first_error_stops_dispatch(self):
        # Arrange
        probe = _ConcurrencyProbe()

        async def run():
            tracker = _ParallelOperationTracker(2)
            await tracker.dispatch(lambda: probe.operation('bad', delay=0, error=ValueError('boom')))
            await asyncio.sleep(0.05)
            await tracker.dispatch(lambda: probe.operation('never'))

        # Act
        with self.assertRaises(ValueError):
            asyncio.run(run())

        # Assert
        self.assertEqual(probe.finished, [])

    def test_wait_all_raises_first_error(self):
        # Arrange
        probe = _ConcurrencyProbe()

        async def run():
            tracker = _ParallelOperationTracker(2)
            await tracker.dispatch(lambda: probe.operation('bad', error=ValueError('boom')))
            await tracker.dispatch(lambda: probe.operation('good', delay=0.1))
            await tracker.wait_all()

        # Act
        with self.assertRaises(ValueError):
            asyncio.run(run())

        # Assert
        self.assertEqual(probe.finished, ['good'])
        self.assertEqual(probe.in_flight, 0)

    def test_invalid_parallelism(self):
        # Arrange

        # Act
        with self.assertRaises(ValueError):
            _ParallelOperationTracker(0)

        # Assert

    # --Test cases for chunked upload ---------------------------------
    def test_upload_chunks_in_order(self):
        # Arrange
        data = self.get_random_bytes(1000)
        probe = _ConcurrencyProbe()
        progress = []

        # Act
        results = asyncio.run(_upload_chunks(_RecordingExecutor(probe), BytesIO(data), 300,
                                             lambda offset, chunk: (offset, chunk), max_parallelism=2,
                                             total_size=len(data),
                                             progress_callback=lambda current, total: progress.append(
                                                 (current, total))))

        # Assert
        self.assertEqual([offset for offset, _ in results], [0, 300, 600, 900])
        self.assertEqual(b''.join(chunk for _, chunk in results), data)
        self.assertLessEqual(probe.peak, 2)
        self.assert_upload_progress(len(data), 300, progress)
        self.assertEqual(progress[-1], (1000, 1000))

    def test_upload_chunks_unknown_size(self):
        # Arrange
        data = self.get_random_bytes(650)
        probe = _ConcurrencyProbe()

        # Act
        results = asyncio.run(_upload_chunks(_RecordingExecutor(probe), BytesIO(data), 200,
                                             lambda offset, chunk: (offset, chunk), max_parallelism=4))

        # Assert
        self.assertEqual([len(chunk) for _, chunk in results], [200, 200, 200, 50])

    def test_upload_chunks_respects_total_size(self):
        # Arrange
        data = self.get_random_bytes(1000)
        probe = _ConcurrencyProbe()

        # Act
        results = asyncio.run(_upload_chunks(_RecordingExecutor(probe), BytesIO(data), 300,
                                             lambda offset, chunk: (offset, chunk), total_size=500))

        # Assert
        self.assertEqual(b''.join(chunk for _, chunk in results), data[:500])

    def test_upload_chunk_failure(self):
        # Arrange
        data = self.get_random_bytes(1000)
        probe = _ConcurrencyProbe()

        def command_factory(offset, chunk):
            if offset == 300:
                raise ValueError('bad chunk')
            return offset

        # Act
        with self.assertRaises(ValueError):
            asyncio.run(_upload_chunks(_RecordingExecutor(probe), BytesIO(data), 300, command_factory,
                                       max_parallelism=2))

        # Assert
        self.assertEqual(probe.in_flight, 0)


# ------------------------------------------------------------------------------
if __name__ == '__main__':
    unittest.main()
