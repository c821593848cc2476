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
import functools

from ._error import (
    _validate_not_none,
    _ERROR_VALUE_NOT_POSITIVE,
)
from ._parallel import _ParallelOperationTracker
from ._serialization import _get_data_bytes_only


async def _upload_chunks(executor, stream, chunk_size, command_factory, max_parallelism=1,
                         total_size=None, progress_callback=None, retry_policy=None,
                         operation_context=None, cancellation_token=None, location_mode=None):
    '''
    Splits stream into chunks and executes the command command_factory builds
    for each (chunk_offset, chunk_data) pair, at most max_parallelism at a
    time. Returns once every dispatched command completed, so a subsequent
    commit observes all of them. The results are returned in chunk order.
    '''
    uploader = _ChunkUploader(executor, stream, chunk_size, total_size, command_factory,
                              progress_callback, retry_policy, operation_context,
                              cancellation_token, location_mode)

    if progress_callback is not None:
        progress_callback(0, total_size)

    tracker = _ParallelOperationTracker(max_parallelism)
    tasks = []
    try:
        for chunk_offset, chunk_data in uploader.get_chunk_streams():
            operation = functools.partial(uploader.process_chunk, chunk_offset, chunk_data)
            tasks.append(await tracker.dispatch(operation))
    finally:
        # never leave writes running behind the caller
        await tracker.wait_all()
    return [task.result() for task in tasks]


class _ChunkUploader(object):
    def __init__(self, executor, stream, chunk_size, total_size, command_factory,
                 progress_callback, retry_policy, operation_context, cancellation_token,
                 location_mode):
        _validate_not_none('stream', stream)
        _validate_not_none('command_factory', command_factory)
        if chunk_size is None or chunk_size < 1:
            raise ValueError(_ERROR_VALUE_NOT_POSITIVE.format('chunk_size'))
        self.executor = executor
        self.stream = stream
        self.chunk_size = chunk_size
        self.total_size = total_size
        self.command_factory = command_factory
        self.progress_callback = progress_callback
        self.progress_total = 0
        self.retry_policy = retry_policy
        self.operation_context = operation_context
        self.cancellation_token = cancellation_token
        self.location_mode = location_mode

    def get_chunk_streams(self):
        index = 0
        while True:
            data = b''
            read_size = self.chunk_size

            # Buffer until we either reach the end of the stream or get a whole chunk.
            while True:
                if self.total_size:
                    read_size = min(self.chunk_size - len(data), self.total_size - (index + len(data)))
                temp = self.stream.read(read_size) if read_size > 0 else b''
                temp = _get_data_bytes_only('temp', temp)
                data += temp

                # We have read an empty string and so are at the end
                # of the buffer or we have read a full chunk.
                if temp == b'' or len(data) == self.chunk_size:
                    break

            if len(data) == self.chunk_size:
                yield index, data
            else:
                if len(data) > 0:
                    yield index, data
                break

            index += len(data)

    async def process_chunk(self, chunk_offset, chunk_data):
        command = self.command_factory(chunk_offset, chunk_data)
        result = await self.executor.execute_async(command, self.retry_policy, self.operation_context,
                                                   self.cancellation_token, self.location_mode)
        self._update_progress(len(chunk_data))
        return result

    def _update_progress(self, length):
        if self.progress_callback is not None:
            self.progress_total += length
            self.progress_callback(self.progress_total, self.total_size)
