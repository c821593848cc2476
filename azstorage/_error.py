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
from azure.common import (
    AzureException,
    AzureHttpError,
)

from ._constants import (
    _ERROR_CODE_HEADER_NAME,
    _REQUEST_ID_HEADER_NAME,
)


_ERROR_VALUE_NONE = '{0} should not be None.'
_ERROR_VALUE_NEGATIVE = '{0} should not be negative.'
_ERROR_VALUE_NOT_POSITIVE = '{0} should be greater than zero.'
_ERROR_VALUE_SHOULD_BE_BYTES = '{0} should be of type bytes.'
_ERROR_VALUE_SHOULD_BE_BYTES_OR_STREAM = '{0} should be of type bytes or a readable file-like/io.IOBase stream object.'
_ERROR_VALUE_SHOULD_BE_SEEKABLE_STREAM = '{0} should be a seekable file-like/io.IOBase type stream object.'
_ERROR_STORAGE_MISSING_INFO = \
    'You need to provide an account name and either an account_key or sas_token when creating a storage service.'
_ERROR_EMULATOR_DOES_NOT_SUPPORT_FILES = \
    'The emulator does not support the file service.'
_ERROR_INVALID_PROTOCOL = \
    'Invalid value for protocol: {0}. Only \'https\' and \'https,http\' are permitted.'
_ERROR_INVALID_IP_ADDRESS = 'Invalid IP address or range: {0}.'
_ERROR_INVALID_CONNECTION_STRING = 'Connection string is either blank or malformed.'
_ERROR_DECODE_KEY = 'Account key is not a valid base64 string.'
_ERROR_STREAM_LENGTH_EXCEEDED = 'The source stream exceeded the maximum allowed length of {0} bytes.'
_ERROR_STREAM_TOO_SHORT = 'The source stream ended after {0} bytes; {1} bytes were expected.'
_ERROR_MD5_MISMATCH = \
    'MD5 mismatch. Expected value is \'{0}\', computed value is \'{1}\'.'
_ERROR_CRC64_MISMATCH = \
    'CRC64 mismatch. Expected value is \'{0}\', computed value is \'{1}\'.'
_ERROR_LENGTH_MISMATCH = \
    'Incorrect number of bytes received. Expected \'{0}\', received \'{1}\'.'
_ERROR_MD5_NOT_PRESENT = \
    'The service did not return a Content-MD5 value although it was requested.'
_ERROR_PRECONDITION_FAILED = \
    'The condition specified using HTTP conditional header(s) is not met.'
_ERROR_OPERATION_TIMEOUT = \
    'The client could not finish the operation within the specified timeout.'
_ERROR_CLIENT_REQUEST_ID_MISMATCH = \
    'Echoed client request ID: {0} does not match sent client request ID: {1}. Service request ID: {2}'
_ERROR_PRIMARY_ONLY_COMMAND = \
    'This operation can only be executed against the primary storage location.'
_ERROR_SECONDARY_ONLY_COMMAND = \
    'This operation can only be executed against the secondary storage location.'
_ERROR_STORAGE_URI_MISSING_LOCATION = \
    'The storage uri does not contain a uri for the requested location mode: {0}.'
_ERROR_UNEXPECTED_STATUS = 'Unexpected status code {0}. Expected one of {1}.'
_ERROR_UNKNOWN_LOCATION_MODE = 'Unknown location mode: {0}.'


class AzureSigningError(AzureException):
    """
    Represents a fatal error when attempting to sign a request.
    In general, the cause of this exception is user error. For example, the given account key is not valid.
    Please visit https://docs.microsoft.com/en-us/azure/storage/common/storage-create-storage-account for more info.
    """
    pass


class AzureContentChecksumError(AzureException):
    """
    Raised when the digest or the length of a transferred body does not match
    the value advertised by the service. The payload is corrupt and the
    operation is never retried.
    """
    pass


class AzureTimeoutError(AzureException):
    """
    Raised when the maximum execution time of an operation elapsed.
    """
    pass


def _http_error_handler(http_error, request_result=None, extended_error_information=None):
    ''' Simple error handler for azure.'''
    message = str(http_error)
    error_code = None
    headers = http_error.respheader or {}
    if _ERROR_CODE_HEADER_NAME in headers:
        error_code = headers[_ERROR_CODE_HEADER_NAME]
    elif extended_error_information is not None:
        error_code = extended_error_information.error_code

    if error_code:
        message += ' ErrorCode: ' + error_code

    if http_error.respbody is not None:
        message += '\n' + http_error.respbody.decode('utf-8-sig', errors='replace')

    ex = AzureHttpError(message, http_error.status)
    ex.error_code = error_code
    ex.request_id = headers.get(_REQUEST_ID_HEADER_NAME)
    ex.request_result = request_result
    ex.extended_error_information = extended_error_information
    return ex


def _validate_not_none(param_name, param):
    if param is None:
        raise ValueError(_ERROR_VALUE_NONE.format(param_name))


def _validate_not_negative(param_name, param):
    if param is not None and param < 0:
        raise ValueError(_ERROR_VALUE_NEGATIVE.format(param_name))
