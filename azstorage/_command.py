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
from io import SEEK_SET

from ._deserialization import _convert_xml_to_extended_error_information
from ._error import (
    _validate_not_none,
    _http_error_handler,
    _ERROR_UNEXPECTED_STATUS,
    _ERROR_VALUE_SHOULD_BE_SEEKABLE_STREAM,
)
from ._http import HTTPError
from ._serialization import _build_request_from_uri
from ._stream_copy import StreamDescriptor
from .models import CommandLocationMode


class RESTCommand(object):
    '''
    Describes one REST operation for the executor: where it may be sent, how
    to build each attempt's request and how to interpret the response.
    Subclasses override the hooks; the executor owns the retry loop.

    :ivar StorageUri storage_uri:
        The primary and secondary uris of the target resource.
    :ivar str method:
        The HTTP verb.
    :ivar str command_location_mode:
        One of :class:`~azstorage.models.CommandLocationMode`. Restricts the
        locations the executor may use regardless of the location mode.
    :ivar str location_mode:
        The location mode in effect. Set by the executor on every execution.
    :ivar list expected_status_codes:
        Status codes that count as success. Any 2xx when empty.
    :ivar list retryable_error_codes:
        Service error codes a retry policy may treat as transient.
    :ivar bool retrieve_response_stream:
        Stream the response body into destination_stream instead of buffering it.
    :ivar destination_stream:
        Writable file-like object receiving the response body.
    :ivar bool calculate_md5:
        Compute the MD5 of the received body and compare it with Content-MD5.
    :ivar bool calculate_crc64:
        Compute the CRC64 of the received body and compare it with x-ms-content-crc64.
    :ivar StreamDescriptor stream_copy_state:
        Length and digests of the body bytes written so far.
    :ivar int server_timeout:
        Sent as the timeout query parameter, in seconds.
    :ivar float max_execution_time:
        Upper bound, in seconds, for the whole operation including retries.
    :ivar str locked_etag:
        When set, sent as If-Match so every attempt targets the same version.
    :ivar RequestResult current_result:
        The result of the attempt in progress.
    :ivar list request_results:
        The results of every attempt of this command.
    '''

    def __init__(self, storage_uri, method='GET',
                 command_location_mode=CommandLocationMode.PRIMARY_ONLY,
                 expected_status_codes=None, retryable_error_codes=None,
                 body=None, headers=None, query=None,
                 retrieve_response_stream=False, destination_stream=None,
                 calculate_md5=False, calculate_crc64=False,
                 server_timeout=None, max_execution_time=None):
        _validate_not_none('storage_uri', storage_uri)
        self.storage_uri = storage_uri
        self.method = method
        self.command_location_mode = command_location_mode
        self.location_mode = None
        self.expected_status_codes = expected_status_codes or []
        self.retryable_error_codes = retryable_error_codes or []

        self.body = body
        self.headers = headers or {}
        self.query = query or {}

        self.retrieve_response_stream = retrieve_response_stream
        self.destination_stream = destination_stream
        self.calculate_md5 = calculate_md5
        self.calculate_crc64 = calculate_crc64
        self.stream_copy_state = None

        self.server_timeout = server_timeout
        self.max_execution_time = max_execution_time
        self.locked_etag = None

        self.current_result = None
        self.request_results = []

        self._body_start = None
        self._destination_start = None

    def build_request(self, uri, context):
        '''
        Returns a new HTTPRequest for one attempt against uri.
        '''
        request = _build_request_from_uri(uri, self.method)
        request.query.update(self.query)
        request.headers.update(self.headers)
        if self.server_timeout is not None:
            request.query['timeout'] = str(self.server_timeout)
        if self.locked_etag is not None:
            request.headers['If-Match'] = self.locked_etag
        return request

    def build_body(self, context):
        '''
        Returns the request body of one attempt, bytes or a readable stream.
        Streams are rewound to where the first attempt found them.
        '''
        body = self.body
        if body is None or isinstance(body, bytes) or not hasattr(body, 'read'):
            return body

        if self._body_start is None:
            try:
                self._body_start = body.tell()
            except (AttributeError, IOError):
                # not seekable, only the first attempt can send it
                self._body_start = -1
            return body

        if self._body_start < 0:
            raise ValueError(_ERROR_VALUE_SHOULD_BE_SEEKABLE_STREAM.format('body'))
        body.seek(self._body_start, SEEK_SET)
        return body

    def pre_process_response(self, response, exception, context):
        '''
        Inspects the response before its body is consumed. exception is the
        service error built for a non-success status, or None. Raising fails
        the attempt.
        '''
        if exception is not None:
            raise exception

        if self.expected_status_codes and response.status not in self.expected_status_codes:
            message = _ERROR_UNEXPECTED_STATUS.format(response.status, self.expected_status_codes)
            raise _http_error_handler(
                HTTPError(response.status, message, response.headers, response.body),
                self.current_result)

        return response

    def post_process_response(self, response, context):
        '''
        Turns the response into the return value of the operation. May be a
        coroutine function.
        '''
        return response

    def begin_stream_copy(self):
        '''
        Returns the descriptor the response body is copied under, creating it
        and remembering where the destination started on first use.
        '''
        if self.stream_copy_state is None:
            self.stream_copy_state = StreamDescriptor()
            try:
                self._destination_start = self.destination_stream.tell()
            except (AttributeError, IOError):
                self._destination_start = None
        return self.stream_copy_state

    def recovery_action(self, exception, context):
        '''
        Called before a retry to bring the command back into a state from
        which the next attempt can start. A partially received body is
        discarded so the next attempt starts over.
        '''
        if self.stream_copy_state is None or not self.stream_copy_state.length:
            return

        if self._destination_start is None:
            raise ValueError(_ERROR_VALUE_SHOULD_BE_SEEKABLE_STREAM.format('destination_stream'))
        self.destination_stream.seek(self._destination_start, SEEK_SET)
        self.destination_stream.truncate()
        self.stream_copy_state = None

    def parse_error(self, body, response):
        return _convert_xml_to_extended_error_information(body)
