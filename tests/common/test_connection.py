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
import unittest

from azstorage._connection import _ServiceParameters
from azstorage._constants import (
    DEV_ACCOUNT_KEY,
    DEV_ACCOUNT_NAME,
)
from azstorage.models import StorageUri
from azstorage.tokencredential import TokenCredential
from tests.testcase import StorageTestCase


class StorageConnectionTest(StorageTestCase):
    def setUp(self):
        super(StorageConnectionTest, self).setUp()
        self.account_name = self.settings.STORAGE_ACCOUNT_NAME
        self.account_key = self.settings.STORAGE_ACCOUNT_KEY

    # --Test cases --------------------------------------------------------
    def test_account_endpoints(self):
        # Arrange

        # Act
        params = _ServiceParameters.get_service_parameters('blob', self.account_name, self.account_key)

        # Assert
        self.assertEqual(params.protocol, 'https')
        self.assertEqual(params.primary_endpoint, 'storagename.blob.core.windows.net')
        self.assertEqual(params.secondary_endpoint, 'storagename-secondary.blob.core.windows.net')
        self.assertEqual(params.account_key, self.account_key)

    def test_endpoint_suffix_and_protocol(self):
        # Arrange

        # Act
        params = _ServiceParameters.get_service_parameters('queue', self.account_name, self.account_key,
                                                           protocol='http',
                                                           endpoint_suffix='core.chinacloudapi.cn')

        # Assert
        self.assertEqual(params.protocol, 'http')
        self.assertEqual(params.primary_endpoint, 'storagename.queue.core.chinacloudapi.cn')

    def test_account_key_is_stripped(self):
        # Arrange

        # Act
        params = _ServiceParameters.get_service_parameters('blob', self.account_name, ' ' + self.account_key + '\n')

        # Assert
        self.assertEqual(params.account_key, self.account_key)

    def test_connection_string(self):
        # Arrange

        # Act
        params = _ServiceParameters.get_service_parameters('blob',
                                                           connection_string=self.settings.CONNECTION_STRING)

        # Assert
        self.assertEqual(params.account_name, self.account_name)
        self.assertEqual(params.account_key, self.account_key)
        self.assertEqual(params.protocol, 'https')
        self.assertEqual(params.primary_endpoint, 'storagename.blob.core.windows.net')
        self.assertEqual(params.secondary_endpoint, 'storagename-secondary.blob.core.windows.net')

    def test_connection_string_with_sas_and_custom_endpoints(self):
        # Arrange
        connection_string = 'BlobEndpoint=https://www.mydomain.com/;' \
                            'BlobSecondaryEndpoint=https://www.mydomain-secondary.com/;' \
                            'SharedAccessSignature=sv=2021-08-06&sig=abc'

        # Act
        params = _ServiceParameters.get_service_parameters('blob', connection_string=connection_string)

        # Assert
        self.assertIsNone(params.account_name)
        self.assertEqual(params.sas_token, 'sv=2021-08-06&sig=abc')
        self.assertEqual(params.primary_endpoint, 'www.mydomain.com')
        self.assertEqual(params.secondary_endpoint, 'www.mydomain-secondary.com')

    def test_custom_endpoint_without_secondary(self):
        # Arrange
        connection_string = 'AccountName=storagename;AccountKey={};QueueEndpoint=http://queues.local:8080/base/' \
            .format(self.account_key)

        # Act
        params = _ServiceParameters.get_service_parameters('queue', connection_string=connection_string)

        # Assert
        self.assertEqual(params.protocol, 'http')
        self.assertEqual(params.primary_endpoint, 'queues.local:8080/base')
        self.assertIsNone(params.secondary_endpoint)

    def test_secondary_endpoint_requires_primary(self):
        # Arrange
        connection_string = 'AccountName=storagename;BlobSecondaryEndpoint=https://www.mydomain-secondary.com/'

        # Act
        with self.assertRaises(ValueError):
            _ServiceParameters.get_service_parameters('blob', connection_string=connection_string)

        # Assert

    def test_malformed_connection_string(self):
        # Arrange

        # Act
        with self.assertRaises(ValueError):
            _ServiceParameters.get_service_parameters('blob', connection_string='AccountName;AccountKey=abc')

        # Assert

    def test_development_storage(self):
        # Arrange

        # Act
        params = _ServiceParameters.get_service_parameters('blob', connection_string='UseDevelopmentStorage=true;')

        # Assert
        self.assertEqual(params.account_name, DEV_ACCOUNT_NAME)
        self.assertEqual(params.account_key, DEV_ACCOUNT_KEY)
        self.assertEqual(params.protocol, 'http')
        self.assertEqual(params.primary_endpoint, '127.0.0.1:10000/devstoreaccount1')
        self.assertEqual(params.secondary_endpoint, '127.0.0.1:10000/devstoreaccount1-secondary')

    def test_emulator_does_not_support_files(self):
        # Arrange

        # Act
        with self.assertRaises(ValueError):
            _ServiceParameters.get_service_parameters('file', is_emulated=True)

        # Assert

    def test_missing_account(self):
        # Arrange

        # Act
        with self.assertRaises(ValueError):
            _ServiceParameters.get_service_parameters('blob', account_key=self.account_key)

        # Assert

    def test_token_credential_requires_https(self):
        # Arrange

        # Act
        with self.assertRaises(ValueError):
            _ServiceParameters.get_service_parameters('blob', self.account_name,
                                                      token_credential=TokenCredential('token'), protocol='http')

        # Assert

    def test_storage_uri(self):
        # Arrange
        params = _ServiceParameters.get_service_parameters('blob', self.account_name, self.account_key)

        # Act
        storage_uri = params.get_storage_uri('/container/blob')

        # Assert
        self.assertEqual(storage_uri, StorageUri('https://storagename.blob.core.windows.net/container/blob',
                                                 'https://storagename-secondary.blob.core.windows.net/container/blob'))


# ------------------------------------------------------------------------------
if __name__ == '__main__':
    unittest.main()
