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
from azure.common import AzureException

from ._command import RESTCommand
from ._common_conversion import _int_or_none
from ._error import (
    AzureContentChecksumError,
    _http_error_handler,
    _validate_not_none,
    _ERROR_LENGTH_MISMATCH,
    _ERROR_MD5_MISMATCH,
    _ERROR_MD5_NOT_PRESENT,
    _ERROR_PRECONDITION_FAILED,
    _ERROR_UNEXPECTED_STATUS,
)
from ._http import HTTPError
from ._serialization import _format_range_header
from .models import (
    CommandLocationMode,
    StorageLocation,
)


class _DownloadProperties(object):
    '''
    What the first response of a download said about the resource.
    '''

    def __init__(self):
        self.etag = None
        self.last_modified = None
        self.content_length = None
        self.content_md5 = None
        self.content_range = None


class _DownloadCommand(RESTCommand):
    '''
    Reads a resource, or a range of it, into destination_stream. A failed
    attempt resumes where the previous one stopped: the rest of the range is
    requested from the same location with If-Match set to the ETag the first
    response carried, so the bytes written always belong to one version.

    :param int offset:
        Start of the range to read. The whole resource is read when None.
    :param int length:
        Number of bytes to read from offset. Up to the end when None.
    :param bool validate_content:
        Compute the MD5 of the received bytes and compare it with the
        Content-MD5 the service returned.
    :param bool use_transactional_md5:
        Ask the service for the MD5 of the requested range.
    '''

    def __init__(self, storage_uri, destination_stream, offset=None, length=None,
                 validate_content=False, use_transactional_md5=False, **kwargs):
        _validate_not_none('destination_stream', destination_stream)
        if length is not None:
            _validate_not_none('offset', offset)
        super(_DownloadCommand, self).__init__(
            storage_uri, 'GET',
            command_location_mode=CommandLocationMode.PRIMARY_OR_SECONDARY,
            retrieve_response_stream=True,
            destination_stream=destination_stream,
            calculate_md5=validate_content,
            **kwargs)

        self.offset = offset
        self.length = length
        self.use_transactional_md5 = use_transactional_md5
        self.properties = None

        self._starting_offset = offset or 0
        self._starting_length = length
        self._validate_length = None

    def build_request(self, uri, context):
        request = super(_DownloadCommand, self).build_request(uri, context)
        if self.offset is not None:
            end = self.offset + self.length - 1 if self.length is not None else None
            request.headers['x-ms-range'] = _format_range_header(self.offset, end)
            if self.use_transactional_md5 and self.properties is None:
                request.headers['x-ms-range-get-content-md5'] = 'true'
        return request

    def pre_process_response(self, response, exception, context):
        if exception is not None:
            raise exception

        expected_status = 206 if self.offset is not None else 200
        if response.status != expected_status:
            raise _http_error_handler(
                HTTPError(response.status, _ERROR_UNEXPECTED_STATUS.format(response.status, [expected_status]),
                          response.headers, response.body),
                self.current_result)

        if self.properties is None:
            self._populate_properties(response)
        elif response.headers.get('etag') != self.properties.etag:
            error = _http_error_handler(
                HTTPError(412, _ERROR_PRECONDITION_FAILED, response.headers, None),
                self.current_result)
            error.is_retryable = False
            raise error

        return response

    def _populate_properties(self, response):
        properties = _DownloadProperties()
        properties.etag = response.headers.get('etag')
        properties.last_modified = response.headers.get('last-modified')
        properties.content_length = _int_or_none(response.headers.get('content-length'))
        properties.content_md5 = response.headers.get('content-md5')
        properties.content_range = response.headers.get('content-range')

        if self.calculate_md5 and self.use_transactional_md5 and not properties.content_md5:
            raise AzureException(_ERROR_MD5_NOT_PRESENT)

        # a resumed download has to go back to the location holding this version
        if self.current_result.target_location == StorageLocation.PRIMARY:
            self.command_location_mode = CommandLocationMode.PRIMARY_ONLY
        else:
            self.command_location_mode = CommandLocationMode.SECONDARY_ONLY

        self._validate_length = properties.content_length
        self.properties = properties

    def post_process_response(self, response, context):
        received = self.stream_copy_state.length if self.stream_copy_state is not None else 0
        if self._validate_length is not None and received != self._validate_length:
            raise AzureContentChecksumError(_ERROR_LENGTH_MISMATCH.format(self._validate_length, received))

        stored_md5 = self.properties.content_md5
        if self.calculate_md5 and stored_md5 and self.stream_copy_state.md5 != stored_md5:
            raise AzureContentChecksumError(_ERROR_MD5_MISMATCH.format(stored_md5, self.stream_copy_state.md5))

        return self.properties

    def recovery_action(self, exception, context):
        if self.locked_etag is None and self.properties is not None:
            self.locked_etag = self.properties.etag

        if self.stream_copy_state is not None:
            self.offset = self._starting_offset + self.stream_copy_state.length
            if self._starting_length is not None:
                self.length = self._starting_length - self.stream_copy_state.length
