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
import hmac
import unittest
from datetime import datetime, timedelta, timezone
from urllib.parse import (
    parse_qs,
    quote,
)

from azstorage.models import (
    AccountPermissions,
    IPAddressOrRange,
    Protocol,
    ResourceTypes,
    Services,
    SharedAccessAccountPolicy,
)
from azstorage.sharedaccesssignature import (
    SharedAccessSignature,
    _get_account_sas_query,
    _get_account_sas_string_to_sign,
    parse_query,
)
from tests.testcase import StorageTestCase

_START = '2024-01-01T00:00:00Z'
_EXPIRY = '2024-01-01T01:00:00Z'


def _sign(key, string_to_sign):
    digest = hmac.HMAC(base64.b64decode(key), string_to_sign.encode('utf-8'), hashlib.sha256).digest()
    return base64.b64encode(digest).decode('utf-8')


class StorageSharedAccessSignatureTest(StorageTestCase):
    def setUp(self):
        super(StorageSharedAccessSignatureTest, self).setUp()
        self.account_name = self.settings.SAS_ACCOUNT_NAME
        self.account_key = self.settings.SAS_ACCOUNT_KEY
        self.version = self.settings.SAS_VERSION
        self.policy = SharedAccessAccountPolicy(
            permission=AccountPermissions.READ,
            services=Services.BLOB,
            resource_types=ResourceTypes.OBJECT,
            expiry=_EXPIRY,
            start=_START,
            protocol=Protocol.HTTPS)

    # --Test cases --------------------------------------------------------
    def test_account_string_to_sign(self):
        # Arrange

        # Act
        string_to_sign = _get_account_sas_string_to_sign(self.policy, self.account_name, self.version)

        # Assert
        self.assertEqual(string_to_sign,
                         'acct\nr\nb\no\n2024-01-01T00:00:00Z\n2024-01-01T01:00:00Z\n\nhttps\n2021-08-06\n')

    def test_account_string_to_sign_with_datetimes(self):
        # Arrange
        start = datetime(2024, 1, 1, 1, 0, 0, tzinfo=timezone(timedelta(hours=1)))
        expiry = datetime(2024, 1, 1, 1, 0, 0)
        policy = SharedAccessAccountPolicy(AccountPermissions.READ, Services.BLOB, ResourceTypes.OBJECT,
                                           expiry, start, None, Protocol.HTTPS)

        # Act
        string_to_sign = _get_account_sas_string_to_sign(policy, self.account_name, self.version)

        # Assert
        self.assertIn('\n' + _START + '\n' + _EXPIRY + '\n', string_to_sign)

    def test_generate_account_token(self):
        # Arrange
        sas = SharedAccessSignature(self.account_name, self.account_key, x_ms_version=self.version)
        expected_signature = _sign(self.account_key,
                                   'acct\nr\nb\no\n2024-01-01T00:00:00Z\n2024-01-01T01:00:00Z\n\nhttps\n2021-08-06\n')

        # Act
        token = sas.generate_account(Services.BLOB, ResourceTypes.OBJECT, AccountPermissions.READ,
                                     _EXPIRY, start=_START, protocol=Protocol.HTTPS)

        # Assert
        self.assertEqual(token,
                         'sv=2021-08-06'
                         '&sig=' + quote(expected_signature, safe='') +
                         '&spr=https'
                         '&st=2024-01-01T00%3A00%3A00Z'
                         '&se=2024-01-01T01%3A00%3A00Z'
                         '&srt=o&ss=b&sp=r')

    def test_generate_account_token_is_deterministic(self):
        # Arrange
        sas = SharedAccessSignature(self.account_name, self.account_key, x_ms_version=self.version)

        # Act
        first = sas.generate_account(Services.BLOB, ResourceTypes.OBJECT, AccountPermissions.READ, _EXPIRY)
        second = sas.generate_account(Services.BLOB, ResourceTypes.OBJECT, AccountPermissions.READ, _EXPIRY)

        # Assert
        self.assertEqual(first, second)

    def test_token_omits_empty_fields(self):
        # Arrange
        policy = SharedAccessAccountPolicy(permission=AccountPermissions.READ, services=Services.BLOB,
                                           resource_types=ResourceTypes.OBJECT, expiry=_EXPIRY)

        # Act
        token = _get_account_sas_query(policy, 'c2ln', None, self.version)

        # Assert
        self.assertEqual(token, 'sv=2021-08-06&sig=c2ln&se=2024-01-01T01%3A00%3A00Z&srt=o&ss=b&sp=r')

    def test_token_with_key_name_and_ip_range(self):
        # Arrange
        self.policy.ip = IPAddressOrRange('168.1.5.60', '168.1.5.70')

        # Act
        token = _get_account_sas_query(self.policy, 'c2ln', 'key1', self.version)

        # Assert
        self.assertTrue(token.startswith('sv=2021-08-06&sk=key1&sig=c2ln&spr=https&sip=168.1.5.60-168.1.5.70&'))

    def test_query_requires_signature(self):
        # Arrange

        # Act
        with self.assertRaises(ValueError):
            _get_account_sas_query(self.policy, None, None, self.version)

        # Assert

    def test_invalid_protocol(self):
        # Arrange
        self.policy.protocol = 'http'

        # Act
        with self.assertRaises(ValueError):
            _get_account_sas_string_to_sign(self.policy, self.account_name, self.version)

        # Assert

    def test_combined_permissions(self):
        # Arrange

        # Act
        permission = AccountPermissions.READ | AccountPermissions.WRITE | AccountPermissions.LIST
        services = Services.BLOB + Services.FILE
        resource_types = ResourceTypes.SERVICE | ResourceTypes.OBJECT

        # Assert
        self.assertEqual(str(permission), 'rwl')
        self.assertEqual(str(services), 'bf')
        self.assertEqual(str(resource_types), 'so')

    def test_ip_address_or_range(self):
        # Arrange

        # Act
        single = IPAddressOrRange('168.1.5.65')
        ip_range = IPAddressOrRange('168.1.5.60-168.1.5.70')

        # Assert
        self.assertEqual(str(single), '168.1.5.65')
        self.assertEqual(str(ip_range), '168.1.5.60-168.1.5.70')
        with self.assertRaises(ValueError):
            IPAddressOrRange('168.1.5')

    def test_parse_query(self):
        # Arrange
        query = {'comp': 'list', 'restype': 'container', 'sv': '2021-08-06', 'sig': 'a+b='}

        # Act
        token = parse_query(query)
        no_token = parse_query({'comp': 'list'})

        # Assert
        self.assertEqual(token, 'sv=2021-08-06&sig=a%2Bb%3D')
        self.assertIsNone(no_token)

    def test_parse_query_signature_name_is_case_insensitive(self):
        # Arrange
        query = {'SIG': 'abc', 'se': 'x', 'Comp': 'list'}

        # Act
        token = parse_query(query)

        # Assert
        self.assertEqual(token, 'sig=abc&se=x')

    def test_token_does_not_verify_with_altered_key(self):
        # Arrange
        sas = SharedAccessSignature(self.account_name, self.account_key, self.version)
        key_bytes = bytearray(base64.b64decode(self.account_key))
        key_bytes[0] ^= 0x01
        altered_key = base64.b64encode(bytes(key_bytes)).decode('utf-8')

        # Act
        token = sas.generate_account(Services.BLOB, ResourceTypes.OBJECT, AccountPermissions.READ,
                                     _EXPIRY, start=_START, protocol=Protocol.HTTPS)
        signature = parse_qs(token)['sig'][0]
        string_to_sign = _get_account_sas_string_to_sign(self.policy, self.account_name, self.version)

        # Assert
        self.assertEqual(signature, _sign(self.account_key, string_to_sign))
        self.assertNotEqual(signature, _sign(altered_key, string_to_sign))


# ------------------------------------------------------------------------------
if __name__ == '__main__':
    unittest.main()
