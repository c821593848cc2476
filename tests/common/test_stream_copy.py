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
import base64
import struct
import unittest
from io import BytesIO

from azstorage._common_conversion import (
    _get_content_crc64,
    _get_content_md5,
    _update_crc64,
)
from azstorage._stream_copy import (
    StreamDescriptor,
    copy_stream,
)
from azstorage.models import CancellationToken
from tests.testcase import StorageTestCase


class StorageStreamCopyTest(StorageTestCase):
    def setUp(self):
        super(StorageStreamCopyTest, self).setUp()
        self.data = self.get_random_bytes(10 * 1024)

    # --Test cases --------------------------------------------------------
    def test_copy_whole_stream(self):
        # Arrange
        destination = BytesIO()
        state = StreamDescriptor()

        # Act
        copied = copy_stream(BytesIO(self.data), destination, state=state, buffer_size=1000)

        # Assert
        self.assertEqual(copied, len(self.data))
        self.assertEqual(destination.getvalue(), self.data)
        self.assertEqual(state.length, len(self.data))
        self.assertIsNone(state.md5)
        self.assertIsNone(state.crc64)

    def test_copy_computes_digests(self):
        # Arrange
        state = StreamDescriptor()

        # Act
        copy_stream(BytesIO(self.data), BytesIO(), calculate_md5=True, calculate_crc64=True,
                    state=state, buffer_size=777)

        # Assert
        self.assertEqual(state.md5, _get_content_md5(self.data))
        self.assertEqual(state.crc64, _get_content_crc64(self.data))

    def test_crc64_check_value(self):
        # Arrange
        expected = 0xAE8B14860A799888

        # Act
        crc = _update_crc64(b'123456789')
        chained = _update_crc64(b'6789', _update_crc64(b'12345'))
        encoded = _get_content_crc64(b'123456789')

        # Assert
        self.assertEqual(crc, expected)
        self.assertEqual(chained, expected)
        self.assertEqual(encoded, base64.b64encode(struct.pack('<Q', expected)).decode('utf-8'))

    def test_digests_continue_across_copies(self):
        # Arrange
        state = StreamDescriptor()
        destination = BytesIO()

        # Act
        copy_stream(BytesIO(self.data[:3000]), destination, calculate_md5=True, calculate_crc64=True, state=state)
        copy_stream(BytesIO(self.data[3000:]), destination, calculate_md5=True, calculate_crc64=True, state=state)

        # Assert
        self.assertEqual(destination.getvalue(), self.data)
        self.assertEqual(state.length, len(self.data))
        self.assertEqual(state.md5, _get_content_md5(self.data))
        self.assertEqual(state.crc64, _get_content_crc64(self.data))

    def test_copy_without_destination(self):
        # Arrange
        state = StreamDescriptor()

        # Act
        copied = copy_stream(BytesIO(self.data), None, calculate_md5=True, state=state)

        # Assert
        self.assertEqual(copied, len(self.data))
        self.assertEqual(state.md5, _get_content_md5(self.data))

    def test_copy_length(self):
        # Arrange
        source = BytesIO(self.data)
        destination = BytesIO()

        # Act
        copied = copy_stream(source, destination, copy_length=1500, buffer_size=1000)

        # Assert
        self.assertEqual(copied, 1500)
        self.assertEqual(destination.getvalue(), self.data[:1500])
        self.assertEqual(source.tell(), 1500)

    def test_copy_length_source_too_short(self):
        # Arrange
        destination = BytesIO()

        # Act
        with self.assertRaises(ValueError):
            copy_stream(BytesIO(self.data[:100]), destination, copy_length=200)

        # Assert
        self.assertEqual(destination.getvalue(), self.data[:100])

    def test_max_length_exceeded(self):
        # Arrange
        destination = BytesIO()

        # Act
        with self.assertRaises(ValueError):
            copy_stream(BytesIO(self.data), destination, max_length=2500, buffer_size=1000)

        # Assert
        self.assertLessEqual(len(destination.getvalue()), 2500)

    def test_max_length_exact(self):
        # Arrange
        destination = BytesIO()

        # Act
        copied = copy_stream(BytesIO(self.data[:2500]), destination, max_length=2500, buffer_size=1000)

        # Assert
        self.assertEqual(copied, 2500)

    def test_empty_source(self):
        # Arrange
        state = StreamDescriptor()

        # Act
        copied = copy_stream(BytesIO(b''), BytesIO(), calculate_md5=True, state=state)

        # Assert
        self.assertEqual(copied, 0)
        self.assertEqual(state.md5, _get_content_md5(b''))

    def test_negative_length(self):
        # Arrange

        # Act
        with self.assertRaises(ValueError):
            copy_stream(BytesIO(self.data), BytesIO(), copy_length=-1)

        # Assert

    def test_cancelled_copy(self):
        # Arrange
        token = CancellationToken()
        token.cancel()
        destination = BytesIO()

        # Act
        with self.assertRaises(asyncio.CancelledError):
            copy_stream(BytesIO(self.data), destination, cancellation_token=token)

        # Assert
        self.assertEqual(destination.getvalue(), b'')


# ------------------------------------------------------------------------------
if __name__ == '__main__':
    unittest.main()
