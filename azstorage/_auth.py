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
import logging
from urllib.parse import parse_qsl

from ._common_conversion import (
    _sign_string,
    _str,
)
from ._constants import (
    DEV_ACCOUNT_NAME,
    DEV_ACCOUNT_SECONDARY_NAME,
    _AUTHORIZATION_HEADER_NAME,
    _KEY_NAME_HEADER_NAME,
)
from ._error import (
    AzureSigningError,
    _validate_not_none,
)

logger = logging.getLogger(__name__)


class _SharedKeyCanonicalizer(object):
    '''
    Builds the string to sign of the SharedKey authorization scheme.
    '''

    authorization_scheme = 'SharedKey'

    headers_to_sign = [
        'content-encoding', 'content-language', 'content-length',
        'content-md5', 'content-type', 'date', 'if-modified-since',
        'if-match', 'if-none-match', 'if-unmodified-since', 'range'
    ]

    def canonicalize(self, request, account_name):
        headers = _get_lowercase_headers(request)
        string_to_sign = \
            request.method.upper() + '\n' + \
            _get_standard_headers(headers, self.headers_to_sign) + \
            _get_canonicalized_headers(headers) + \
            _get_canonicalized_resource(request, account_name) + \
            self._get_canonicalized_resource_query(request)
        return string_to_sign.encode('utf-8')

    def _get_canonicalized_resource_query(self, request):
        sorted_queries = [(name.lower(), value) for name, value in request.query.items() if value is not None]
        sorted_queries.sort()

        string_to_sign = ''
        for name, value in sorted_queries:
            string_to_sign += '\n' + name + ':' + _str(value)

        return string_to_sign


class _SharedKeyLiteCanonicalizer(object):
    '''
    Builds the string to sign of the SharedKeyLite authorization scheme. Only
    the comp query parameter takes part in the canonical resource.
    '''

    authorization_scheme = 'SharedKeyLite'

    headers_to_sign = ['content-md5', 'content-type', 'date']

    def canonicalize(self, request, account_name):
        headers = _get_lowercase_headers(request)
        string_to_sign = \
            request.method.upper() + '\n' + \
            _get_standard_headers(headers, self.headers_to_sign) + \
            _get_canonicalized_headers(headers) + \
            _get_canonicalized_resource(request, account_name)

        for name, value in request.query.items():
            if name.lower() == 'comp' and value is not None:
                string_to_sign += '?comp=' + _str(value)
                break

        return string_to_sign.encode('utf-8')


def _get_lowercase_headers(request):
    return dict((name.lower(), value) for name, value in request.headers.items() if value is not None)


def _get_standard_headers(headers, headers_to_sign):
    values = dict((name, _str(headers.get(name, ''))) for name in headers_to_sign)

    if values.get('content-length') == '0':
        values['content-length'] = ''

    # x-ms-date supersedes Date
    if 'date' in values and 'x-ms-date' in headers:
        values['date'] = ''

    return ''.join(values[name] + '\n' for name in headers_to_sign)


def _get_canonicalized_headers(headers):
    x_ms_headers = sorted((name, value) for name, value in headers.items() if name.startswith('x-ms-'))

    string_to_sign = ''
    for name, value in x_ms_headers:
        string_to_sign += ''.join([name, ':', _str(value).strip(), '\n'])
    return string_to_sign


def _get_canonicalized_resource(request, account_name):
    uri_path = request.path.split('?')[0] or '/'

    # the emulator signs secondary requests against the primary account name
    if uri_path.find(DEV_ACCOUNT_SECONDARY_NAME) == 1:
        uri_path = uri_path.replace(DEV_ACCOUNT_SECONDARY_NAME, DEV_ACCOUNT_NAME, 1)

    return '/' + account_name + uri_path


class _StorageSharedKeyAuthentication(object):
    '''
    Signs requests with an account key.

    :param str account_name:
        The storage account name.
    :param str account_key:
        The base64 encoded account key.
    :param str key_name:
        The name of the key, sent as x-ms-key-name when set.
    :param canonicalizer:
        _SharedKeyCanonicalizer (default) or _SharedKeyLiteCanonicalizer.
    '''

    def __init__(self, account_name, account_key, key_name=None, canonicalizer=None):
        _validate_not_none('account_name', account_name)
        _validate_not_none('account_key', account_key)
        self.account_name = account_name
        self.account_key = account_key
        self.key_name = key_name
        self.canonicalizer = canonicalizer or _SharedKeyCanonicalizer()

    def sign_request(self, request):
        if self.key_name:
            request.headers[_KEY_NAME_HEADER_NAME] = self.key_name

        string_to_sign = self.canonicalizer.canonicalize(request, self.account_name)
        self._add_authorization_header(request, string_to_sign)
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("String_to_sign=%r", string_to_sign)

    def _add_authorization_header(self, request, string_to_sign):
        try:
            signature = _sign_string(self.account_key, string_to_sign)
        except AzureSigningError:
            raise
        except (TypeError, ValueError) as ex:
            # Wrap any error that occurred as signing error
            # Doing so will clarify/locate the source of problem
            raise AzureSigningError(str(ex)) from ex

        auth_string = self.canonicalizer.authorization_scheme + ' ' + self.account_name + ':' + signature
        request.headers[_AUTHORIZATION_HEADER_NAME] = auth_string


class _StorageSASAuthentication(object):
    '''
    Appends a shared access signature to the query of every request. The
    token can be swapped for a new one while requests are in flight.
    '''

    def __init__(self, sas_token):
        self.update_token(sas_token)

    def update_token(self, sas_token):
        _validate_not_none('sas_token', sas_token)
        # ignore ?-prefix (added by tools such as Azure Portal) on sas tokens
        # doing so avoids double question marks when signing
        if sas_token.startswith('?'):
            sas_token = sas_token[1:]

        self.sas_token = sas_token
        self.sas_qs = dict(parse_qsl(sas_token, keep_blank_values=True))

    def sign_request(self, request):
        # a signature already embedded in the request uri wins
        if 'sig' in request.query:
            return

        request.query.update(self.sas_qs)


class _StorageTokenAuthentication(object):
    '''
    Adds the bearer token of a TokenCredential to every request. The
    credential is read at signing time so updated tokens are picked up.
    '''

    def __init__(self, token_credential):
        _validate_not_none('token_credential', token_credential)
        self.token_credential = token_credential

    def sign_request(self, request):
        request.headers[_AUTHORIZATION_HEADER_NAME] = 'Bearer ' + self.token_credential.token


class _StorageNoAuthentication(object):

    def sign_request(self, request):
        pass
