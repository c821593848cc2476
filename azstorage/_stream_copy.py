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
import base64
import hashlib

from ._common_conversion import (
    _encode_crc64,
    _update_crc64,
)
from ._constants import DEFAULT_COPY_BUFFER_SIZE
from ._error import (
    _validate_not_none,
    _validate_not_negative,
    _ERROR_STREAM_LENGTH_EXCEEDED,
    _ERROR_STREAM_TOO_SHORT,
)


class StreamDescriptor(object):
    '''
    Running totals over the bytes a copy wrote to its destination. A
    descriptor may be carried over several copies, for example when a
    download resumes after a failed attempt.

    :ivar int length:
        The number of bytes written so far.
    '''

    def __init__(self):
        self.length = 0
        self._md5 = None
        self._crc64 = None

    def enable_md5(self):
        if self._md5 is None:
            self._md5 = hashlib.md5()

    def enable_crc64(self):
        if self._crc64 is None:
            self._crc64 = 0

    def update(self, data):
        self.length += len(data)
        if self._md5 is not None:
            self._md5.update(data)
        if self._crc64 is not None:
            self._crc64 = _update_crc64(data, self._crc64)

    @property
    def md5(self):
        ''' The base64 encoded MD5 of the bytes written, or None when not computed. '''
        if self._md5 is None:
            return None
        return base64.b64encode(self._md5.digest()).decode('utf-8')

    @property
    def crc64(self):
        ''' The base64 encoded CRC64 of the bytes written, or None when not computed. '''
        if self._crc64 is None:
            return None
        return _encode_crc64(self._crc64)


def copy_stream(source, destination, max_length=None, copy_length=None,
                calculate_md5=False, calculate_crc64=False, state=None,
                cancellation_token=None, buffer_size=DEFAULT_COPY_BUFFER_SIZE):
    '''
    Copies source into destination chunk by chunk.

    :param source:
        A readable file-like object.
    :param destination:
        A writable file-like object, or None to only compute the digests.
    :param int max_length:
        Fail with ValueError once the source yields more than this many bytes.
        Nothing beyond the limit is written.
    :param int copy_length:
        Copy exactly this many bytes. Fail with ValueError when the source ends
        early.
    :param bool calculate_md5:
        Maintain an MD5 over the copied bytes on state.
    :param bool calculate_crc64:
        Maintain a CRC64 over the copied bytes on state.
    :param StreamDescriptor state:
        Receives the length and the digests of the written bytes.
    :param CancellationToken cancellation_token:
        Checked before each chunk.
    :param int buffer_size:
        The size of the chunks read from source.
    :return: The number of bytes copied by this call.
    :rtype: int
    '''
    _validate_not_none('source', source)
    _validate_not_negative('max_length', max_length)
    _validate_not_negative('copy_length', copy_length)
    if state is None:
        state = StreamDescriptor()
    if calculate_md5:
        state.enable_md5()
    if calculate_crc64:
        state.enable_crc64()

    copied = 0
    while True:
        if cancellation_token is not None:
            cancellation_token.raise_if_cancelled()

        read_size = buffer_size
        if copy_length is not None:
            if copied >= copy_length:
                break
            read_size = min(read_size, copy_length - copied)
        elif max_length is not None:
            # one byte past the limit is enough to detect an overflow
            read_size = min(read_size, max_length - copied + 1)

        data = source.read(read_size)
        if not data:
            break

        if max_length is not None and copied + len(data) > max_length:
            raise ValueError(_ERROR_STREAM_LENGTH_EXCEEDED.format(max_length))

        if destination is not None:
            destination.write(data)
        state.update(data)
        copied += len(data)

    if copy_length is not None and copied < copy_length:
        raise ValueError(_ERROR_STREAM_TOO_SHORT.format(copied, copy_length))

    return copied
