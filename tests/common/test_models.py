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

from azstorage._deserialization import _convert_xml_to_extended_error_information
from azstorage._http import HTTPRequest
from azstorage._serialization import (
    _build_request_from_uri,
    _format_range_header,
    _update_request,
)
from azstorage.models import (
    AccessPolicy,
    CancellationToken,
    LocationMode,
    OperationContext,
    StorageLocation,
    StorageUri,
    _get_first_location,
    _get_next_location,
)
from tests.testcase import StorageTestCase


class StorageModelsTest(StorageTestCase):

    # --Test cases for locations -------------------------------------------
    def test_first_and_next_location(self):
        # Arrange

        # Act
        first = _get_first_location(LocationMode.SECONDARY_THEN_PRIMARY)
        second = _get_next_location(LocationMode.SECONDARY_THEN_PRIMARY, first)
        third = _get_next_location(LocationMode.SECONDARY_THEN_PRIMARY, second)
        pinned = _get_next_location(LocationMode.PRIMARY_ONLY, StorageLocation.PRIMARY)

        # Assert
        self.assertEqual(first, StorageLocation.SECONDARY)
        self.assertEqual(second, StorageLocation.PRIMARY)
        self.assertEqual(third, StorageLocation.SECONDARY)
        self.assertEqual(pinned, StorageLocation.PRIMARY)
        with self.assertRaises(ValueError):
            _get_first_location('nowhere')

    def test_storage_uri(self):
        # Arrange
        storage_uri = StorageUri('https://a.blob.core.windows.net/c')

        # Act
        primary = storage_uri.get_uri(StorageLocation.PRIMARY)

        # Assert
        self.assertEqual(primary, 'https://a.blob.core.windows.net/c')
        self.assertTrue(storage_uri.validate_location_mode(LocationMode.PRIMARY_ONLY))
        self.assertFalse(storage_uri.validate_location_mode(LocationMode.SECONDARY_ONLY))
        self.assertFalse(storage_uri.validate_location_mode(LocationMode.PRIMARY_THEN_SECONDARY))
        with self.assertRaises(ValueError):
            storage_uri.get_uri(StorageLocation.SECONDARY)

    def test_operation_context_defaults(self):
        # Arrange

        # Act
        first = OperationContext()
        second = OperationContext(client_request_id='my-id')

        # Assert
        self.assertTrue(first.client_request_id)
        self.assertNotEqual(first.client_request_id, OperationContext().client_request_id)
        self.assertEqual(second.client_request_id, 'my-id')
        self.assertIsNone(first.last_result)

    def test_access_policy(self):
        # Arrange

        # Act
        policy = AccessPolicy('rw', expiry='2030-01-01T00:00:00Z')

        # Assert
        self.assertEqual(policy.permission, 'rw')
        self.assertEqual(policy.expiry, '2030-01-01T00:00:00Z')
        self.assertIsNone(policy.start)

    # --Test cases for cancellation ----------------------------------------
    def test_cancellation_callbacks_run_once(self):
        # Arrange
        token = CancellationToken()
        calls = []
        token.register(lambda: calls.append('a'))
        unregister = token.register(lambda: calls.append('b'))

        # Act
        unregister()
        token.cancel()
        token.cancel()

        # Assert
        self.assertEqual(calls, ['a'])
        self.assertTrue(token.is_cancelled)
        with self.assertRaises(asyncio.CancelledError):
            token.raise_if_cancelled()

    def test_register_after_cancel(self):
        # Arrange
        token = CancellationToken()
        token.cancel()
        calls = []

        # Act
        token.register(lambda: calls.append('late'))

        # Assert
        self.assertEqual(calls, ['late'])

    # --Test cases for serialization ---------------------------------------
    def test_build_request_from_uri(self):
        # Arrange

        # Act
        request = _build_request_from_uri(
            'https://a.blob.core.windows.net/container/my%20blob?snapshot=2024&sig=a%2Bb', 'GET')

        # Assert
        self.assertEqual(request.protocol, 'https')
        self.assertEqual(request.host, 'a.blob.core.windows.net')
        self.assertEqual(request.path, '/container/my blob')
        self.assertEqual(request.query, {'snapshot': '2024', 'sig': 'a+b'})

    def test_update_request(self):
        # Arrange
        request = _build_request_from_uri('http://127.0.0.1:10000/devstoreaccount1/container/my blob', 'PUT')
        request.host = '127.0.0.1:10000/devstoreaccount1'
        request.path = '/container/my blob'
        request.body = BytesIO(b'12345')

        # Act
        _update_request(request, '2019-07-07', 'agent')

        # Assert
        self.assertEqual(request.host, '127.0.0.1:10000')
        self.assertEqual(request.path, '/devstoreaccount1/container/my%20blob')
        self.assertEqual(request.headers['Content-Length'], '5')
        self.assertEqual(request.headers['x-ms-version'], '2019-07-07')
        self.assertEqual(request.headers['User-Agent'], 'agent')
        self.assertIn('x-ms-client-request-id', request.headers)

    def test_update_request_without_body(self):
        # Arrange
        request = HTTPRequest()
        request.method = 'DELETE'
        request.host = 'a.blob.core.windows.net'
        request.path = '/container'
        request.headers = {'x-ms-client-request-id': 'mine'}

        # Act
        _update_request(request, '2019-07-07', 'agent')

        # Assert
        self.assertEqual(request.headers['Content-Length'], '0')
        self.assertEqual(request.headers['x-ms-client-request-id'], 'mine')

    def test_format_range_header(self):
        # Arrange

        # Act
        bounded = _format_range_header(0, 511)
        open_ended = _format_range_header(512)

        # Assert
        self.assertEqual(bounded, 'bytes=0-511')
        self.assertEqual(open_ended, 'bytes=512-')

    def test_error_body_that_is_not_xml(self):
        # Arrange

        # Act
        empty = _convert_xml_to_extended_error_information(b'')
        garbage = _convert_xml_to_extended_error_information(b'<html>oops')
        other = _convert_xml_to_extended_error_information(b'<Other/>')

        # Assert
        self.assertIsNone(empty)
        self.assertIsNone(garbage)
        self.assertIsNone(other)


# ------------------------------------------------------------------------------
if __name__ == '__main__':
    unittest.main()
