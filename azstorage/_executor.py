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
import functools
import inspect
import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from time import monotonic

from azure.common import (
    AzureException,
    AzureHttpError,
)
from dateutil.tz import tzutc
from requests.exceptions import RequestException

from ._common_conversion import (
    _get_content_crc64,
    _get_content_md5,
)
from ._constants import (
    DEFAULT_CLIENT_SIDE_TIMEOUT,
    DEFAULT_USER_AGENT_STRING,
    MAXIMUM_RETRY_BACKOFF,
    X_MS_VERSION,
    _AUTHORIZATION_HEADER_NAME,
    _CLIENT_REQUEST_ID_HEADER_NAME,
    _COPY_SOURCE_HEADER_NAME,
    _REDACTED_VALUE,
    _REQUEST_ID_HEADER_NAME,
)
from ._deserialization import _to_datetime
from ._error import (
    AzureContentChecksumError,
    AzureSigningError,
    AzureTimeoutError,
    _http_error_handler,
    _validate_not_none,
    _ERROR_CLIENT_REQUEST_ID_MISMATCH,
    _ERROR_CRC64_MISMATCH,
    _ERROR_MD5_MISMATCH,
    _ERROR_OPERATION_TIMEOUT,
    _ERROR_PRIMARY_ONLY_COMMAND,
    _ERROR_SECONDARY_ONLY_COMMAND,
    _ERROR_STORAGE_URI_MISSING_LOCATION,
)
from ._http import HTTPError
from ._serialization import (
    _add_date_header,
    _update_request,
)
from ._stream_copy import copy_stream
from .models import (
    CancellationToken,
    CommandLocationMode,
    LocationMode,
    OperationContext,
    RequestResult,
    RetryContext,
    StorageLocation,
    _get_first_location,
    _get_next_location,
)

logger = logging.getLogger(__name__)

# returned by an attempt that failed and is to be retried
_RETRY = object()


def _is_retryable(exception):
    if isinstance(exception, (AzureContentChecksumError, AzureSigningError)):
        return False
    if isinstance(exception, AzureHttpError):
        return getattr(exception, 'is_retryable', True)
    return isinstance(exception, (AzureTimeoutError, RequestException, OSError, EOFError))


def _redact_query(query):
    return dict((name, _REDACTED_VALUE if name.lower() == 'sig' else value) for name, value in query.items())


def _redact_headers(headers):
    redacted = {}
    for name, value in headers.items():
        if name.lower() == _AUTHORIZATION_HEADER_NAME.lower():
            value = _REDACTED_VALUE
        elif name.lower() == _COPY_SOURCE_HEADER_NAME and 'sig=' in str(value):
            value = value.split('?', 1)[0] + '?' + _REDACTED_VALUE
        redacted[name] = value
    return redacted


def _set_future_done(future):
    if not future.done():
        future.set_result(None)


def _close_abandoned_response(future):
    # the worker thread finished after the attempt was abandoned
    if future.cancelled() or future.exception() is not None:
        return
    response = future.result()
    if hasattr(response, 'close'):
        response.close()


class _ExecutionState(object):
    '''
    Mutable bookkeeping of one execution: where the next attempt goes, how
    many retries happened and when each location was last tried.
    '''

    def __init__(self, command, retry_policy, operation_context, cancellation_token):
        self.command = command
        self.retry_policy = retry_policy
        self.operation_context = operation_context
        self.cancellation_token = cancellation_token
        self.current_location = None
        self.retry_count = 0
        self.last_attempt_times = {}
        self.response = None

        # sends and body copies of this execution; never joined so an
        # abandoned send cannot hold the caller
        self.thread_pool = ThreadPoolExecutor(thread_name_prefix='azstorage')

        self.start_time = monotonic()
        if command.max_execution_time is not None:
            self.expiry_time = self.start_time + command.max_execution_time
        else:
            self.expiry_time = None

    def remaining_time(self):
        if self.expiry_time is None:
            return DEFAULT_CLIENT_SIDE_TIMEOUT
        return min(DEFAULT_CLIENT_SIDE_TIMEOUT, self.expiry_time - monotonic())

    def remaining_copy_time(self):
        # a body copy is only bounded by the operation's own budget
        if self.expiry_time is None:
            return None
        return max(self.expiry_time - monotonic(), 0)

    def would_expire(self, delay):
        return self.expiry_time is not None and monotonic() + delay > self.expiry_time


class Executor(object):
    '''
    Runs RESTCommands against the storage service: signs and sends each
    attempt, interprets the response and applies the retry policy until the
    operation succeeds, fails for good, runs out of time or is cancelled.

    The core is asynchronous. Requests are sent on a thread pool owned by
    the execution through a synchronous transport so a slow or abandoned
    send never blocks the loop nor the synchronous caller.

    :param transport:
        An object with a perform_request(request, stream) method returning an
        HTTPResponse, normally :class:`~azstorage._http.httpclient._HTTPClient`.
    :param authentication:
        An object with a sign_request(request) method.
    :param request_callback:
        Called with the request right before it is signed.
    :param response_callback:
        Called with every response as soon as it is received.
    :param retry_callback:
        Called with the RetryContext after the backoff of each retry elapsed.
    '''

    def __init__(self, transport, authentication, request_callback=None, response_callback=None,
                 retry_callback=None, x_ms_version=X_MS_VERSION, user_agent_string=DEFAULT_USER_AGENT_STRING):
        _validate_not_none('transport', transport)
        _validate_not_none('authentication', authentication)
        self.transport = transport
        self.authentication = authentication
        self.request_callback = request_callback
        self.response_callback = response_callback
        self.retry_callback = retry_callback
        self.x_ms_version = x_ms_version
        self.user_agent_string = user_agent_string

    def execute(self, command, retry_policy=None, operation_context=None, cancellation_token=None,
                location_mode=None):
        '''
        Synchronous form of :meth:`execute_async`. Must not be called from a
        running event loop.
        '''
        return asyncio.run(self.execute_async(command, retry_policy, operation_context,
                                              cancellation_token, location_mode))

    def execute_with_no_return(self, command, retry_policy=None, operation_context=None,
                               cancellation_token=None, location_mode=None):
        asyncio.run(self.execute_with_no_return_async(command, retry_policy, operation_context,
                                                      cancellation_token, location_mode))

    async def execute_with_no_return_async(self, command, retry_policy=None, operation_context=None,
                                           cancellation_token=None, location_mode=None):
        await self.execute_async(command, retry_policy, operation_context, cancellation_token, location_mode)

    async def execute_async(self, command, retry_policy=None, operation_context=None,
                            cancellation_token=None, location_mode=None):
        '''
        Executes command and returns what its post_process_response returned.

        :param RESTCommand command:
            The operation to run.
        :param retry_policy:
            A function taking a RetryContext and returning a RetryInfo, or None
            to stop. No retries are made when not given.
        :param OperationContext operation_context:
            Collects the RequestResult of every attempt. A fresh one is used
            when not given.
        :param CancellationToken cancellation_token:
            Cancels the operation between attempts, during a send and during
            the backoff. Cancellation raises asyncio.CancelledError.
        :param str location_mode:
            One of :class:`~azstorage.models.LocationMode`. Defaults to the
            command's own location mode, or primary only.
        '''
        _validate_not_none('command', command)
        operation_context = operation_context or OperationContext()
        state = _ExecutionState(command, retry_policy, operation_context, cancellation_token)

        command.location_mode = location_mode or command.location_mode or LocationMode.PRIMARY_ONLY
        state.current_location = self._get_initial_location(command, operation_context)

        if operation_context.start_time is None:
            operation_context.start_time = datetime.now(tzutc())

        try:
            while True:
                value = await self._execute_attempt(state)
                if value is not _RETRY:
                    return value
        finally:
            state.thread_pool.shutdown(wait=False)
            operation_context.end_time = datetime.now(tzutc())
            operation_context.last_location = state.current_location

    def _get_initial_location(self, command, operation_context):
        if operation_context.location_lock and operation_context.last_location is not None:
            location = operation_context.last_location
            if command.location_mode == LocationMode.PRIMARY_ONLY:
                location = StorageLocation.PRIMARY
            elif command.location_mode == LocationMode.SECONDARY_ONLY:
                location = StorageLocation.SECONDARY
            return location
        return _get_first_location(command.location_mode)

    def _start_attempt(self, state):
        command = state.command
        context = state.operation_context
        if state.cancellation_token is not None:
            state.cancellation_token.raise_if_cancelled()

        if command.command_location_mode == CommandLocationMode.PRIMARY_ONLY:
            if command.location_mode == LocationMode.SECONDARY_ONLY:
                raise ValueError(_ERROR_PRIMARY_ONLY_COMMAND)
            command.location_mode = LocationMode.PRIMARY_ONLY
            state.current_location = StorageLocation.PRIMARY
        elif command.command_location_mode == CommandLocationMode.SECONDARY_ONLY:
            if command.location_mode == LocationMode.PRIMARY_ONLY:
                raise ValueError(_ERROR_SECONDARY_ONLY_COMMAND)
            command.location_mode = LocationMode.SECONDARY_ONLY
            state.current_location = StorageLocation.SECONDARY

        if not command.storage_uri.validate_location_mode(command.location_mode):
            raise ValueError(_ERROR_STORAGE_URI_MISSING_LOCATION.format(command.location_mode))

        result = RequestResult()
        result.start_time = datetime.now(tzutc())
        command.current_result = result
        command.request_results.append(result)
        context.request_results.append(result)
        result.target_location = state.current_location
        return result

    def _prepare_request(self, state):
        command = state.command
        context = state.operation_context

        request = command.build_request(command.storage_uri.get_uri(state.current_location), context)
        request.body = command.build_body(context)

        request.headers.update(context.user_headers)
        request.headers[_CLIENT_REQUEST_ID_HEADER_NAME] = context.client_request_id
        _update_request(request, self.x_ms_version, self.user_agent_string)

        if self.request_callback:
            self.request_callback(request)
        if context.sending_request:
            context.sending_request(request, context)

        # Add date and auth after the callback so date doesn't get too old and
        # authentication is still correct if signed headers are added in the request
        # callback
        _add_date_header(request)
        self.authentication.sign_request(request)
        return request

    async def _execute_attempt(self, state):
        command = state.command
        context = state.operation_context
        client_request_id_prefix = 'Client-Request-ID={}'.format(context.client_request_id)

        result = self._start_attempt(state)
        try:
            request = self._prepare_request(state)
        except Exception as ex:
            # build failures are not retried
            self._finish_attempt(state, result, ex)
            raise

        if state.expiry_time is not None and state.remaining_time() <= 0:
            ex = AzureTimeoutError(_ERROR_OPERATION_TIMEOUT)
            self._finish_attempt(state, result, ex)
            raise ex

        if logger.isEnabledFor(logging.INFO):
            logger.info("%s Outgoing request: Method=%s, Path=%s, Query=%s, Headers=%s, Location=%s.",
                        client_request_id_prefix, request.method, request.path,
                        _redact_query(request.query), _redact_headers(request.headers), state.current_location)

        try:
            value = await self._send_and_process(state, request, result)
        except asyncio.CancelledError as ex:
            self._finish_attempt(state, result, ex)
            raise
        except Exception as ex:
            self._finish_attempt(state, result, ex)
            await self._handle_failure(state, ex, client_request_id_prefix)
            return _RETRY

        self._finish_attempt(state, result, None)
        return value

    def _finish_attempt(self, state, result, exception):
        result.end_time = datetime.now(tzutc())
        result.exception = exception
        state.last_attempt_times[state.current_location] = monotonic()
        if state.response is not None:
            state.response.close()
            state.response = None
        if state.operation_context.request_completed:
            state.operation_context.request_completed(result, state.operation_context)

    async def _send_and_process(self, state, request, result):
        command = state.command
        context = state.operation_context
        client_request_id_prefix = 'Client-Request-ID={}'.format(context.client_request_id)

        if isinstance(request.body, bytes):
            result.egress_bytes = len(request.body)

        stream = bool(command.retrieve_response_stream and command.destination_stream is not None)
        send = functools.partial(self.transport.perform_request, request, stream)
        response = await self._run_in_executor(state, send, abandon_on_cancel=True)
        state.response = response

        self._record_response(result, response)
        if logger.isEnabledFor(logging.INFO):
            logger.info("%s Receiving Response: Server-Timestamp=%s, Server-Request-ID=%s, HTTP Status Code=%s, "
                        "Message=%s, Headers=%s.", client_request_id_prefix, result.request_date,
                        result.service_request_id, response.status, response.message,
                        str(response.headers).replace('\n', ''))

        if self.response_callback:
            self.response_callback(response)
        if context.response_received:
            context.response_received(response, context)

        echoed_id = response.headers.get(_CLIENT_REQUEST_ID_HEADER_NAME)
        if echoed_id is not None and echoed_id != context.client_request_id:
            raise AzureException(_ERROR_CLIENT_REQUEST_ID_MISMATCH.format(
                echoed_id, context.client_request_id, result.service_request_id))

        exception = None
        if response.status >= 300:
            body = response.read_body()
            result.extended_error_information = command.parse_error(body, response)
            exception = _http_error_handler(
                HTTPError(response.status, response.message, response.headers, body),
                result, result.extended_error_information)

        command.pre_process_response(response, exception, context)

        if response.stream is not None and command.destination_stream is not None:
            await self._copy_response_body(state, response, result)
        else:
            body = response.read_body() or b''
            result.ingress_bytes = len(body)
            self._validate_checksums(command, result,
                                     _get_content_md5(body) if command.calculate_md5 else None,
                                     _get_content_crc64(body) if command.calculate_crc64 else None)

        value = command.post_process_response(response, context)
        if inspect.isawaitable(value):
            value = await value
        return value

    async def _copy_response_body(self, state, response, result):
        command = state.command
        copy_state = command.begin_stream_copy()
        starting_length = copy_state.length

        # stops the worker between chunks once this attempt gives up on it
        copy_token = CancellationToken()
        unregister = None
        if state.cancellation_token is not None:
            unregister = state.cancellation_token.register(copy_token.cancel)

        copy = functools.partial(copy_stream, response.stream, command.destination_stream,
                                 calculate_md5=command.calculate_md5,
                                 calculate_crc64=command.calculate_crc64,
                                 state=copy_state,
                                 cancellation_token=copy_token)
        future = asyncio.wrap_future(state.thread_pool.submit(copy))
        try:
            try:
                done, _ = await asyncio.wait([future], timeout=state.remaining_copy_time())
            except asyncio.CancelledError:
                copy_token.cancel()
                raise

            if future not in done:
                copy_token.cancel()
                # the destination and the copy state belong to the worker until it stops
                await asyncio.wait([future])
                if future.exception() is not None:
                    raise AzureTimeoutError(_ERROR_OPERATION_TIMEOUT)
        finally:
            if unregister is not None:
                unregister()

        result.ingress_bytes = future.result()

        # digests only describe this response when it carries the whole body
        if starting_length == 0:
            self._validate_checksums(command, result, copy_state.md5, copy_state.crc64)

    def _validate_checksums(self, command, result, computed_md5, computed_crc64):
        if command.calculate_md5 and result.content_md5 and computed_md5 != result.content_md5:
            raise AzureContentChecksumError(_ERROR_MD5_MISMATCH.format(result.content_md5, computed_md5))
        if command.calculate_crc64 and result.content_crc64 and computed_crc64 != result.content_crc64:
            raise AzureContentChecksumError(_ERROR_CRC64_MISMATCH.format(result.content_crc64, computed_crc64))

    def _record_response(self, result, response):
        headers = response.headers
        result.http_status_code = response.status
        result.http_status_message = response.message
        result.service_request_id = headers.get(_REQUEST_ID_HEADER_NAME)
        result.etag = headers.get('etag')
        result.content_md5 = headers.get('content-md5')
        result.content_crc64 = headers.get('x-ms-content-crc64')
        result.request_date = _to_datetime(headers.get('date'))

    async def _run_in_executor(self, state, func, abandon_on_cancel):
        '''
        Runs func on the execution's thread pool. The wait ends early when the
        remaining execution time elapses and, with abandon_on_cancel, when the
        operation is cancelled. An abandoned call keeps running; its response
        is released once it completes.
        '''
        loop = asyncio.get_running_loop()
        work = state.thread_pool.submit(func)
        future = asyncio.wrap_future(work, loop=loop)

        waiters = [future]
        cancel_waiter = None
        unregister = None
        token = state.cancellation_token
        if abandon_on_cancel and token is not None:
            cancel_waiter = loop.create_future()
            unregister = token.register(lambda: loop.call_soon_threadsafe(_set_future_done, cancel_waiter))
            waiters.append(cancel_waiter)

        try:
            done, _ = await asyncio.wait(waiters, timeout=max(state.remaining_time(), 0),
                                         return_when=asyncio.FIRST_COMPLETED)
        finally:
            if unregister is not None:
                unregister()
            if cancel_waiter is not None and not cancel_waiter.done():
                cancel_waiter.cancel()

        if future in done:
            return future.result()

        # detached from the loop, which may be closed before the worker returns
        future.cancel()
        work.add_done_callback(_close_abandoned_response)
        if cancel_waiter is not None and cancel_waiter in done:
            raise asyncio.CancelledError('The operation was cancelled.')
        raise AzureTimeoutError(_ERROR_OPERATION_TIMEOUT)

    async def _handle_failure(self, state, exception, client_request_id_prefix):
        '''
        Decides whether a failed attempt is retried. Returns after the backoff
        elapsed when it is; re-raises the failure otherwise.
        '''
        command = state.command
        context = state.operation_context
        result = command.current_result
        retryable = _is_retryable(exception)

        logger.info("%s Retry check: attempt=%s, status=%s, retryable=%s, error=%s.",
                    client_request_id_prefix, state.retry_count, result.http_status_code,
                    'yes' if retryable else 'no', exception)

        retry_info = None
        retry_context = None
        if retryable and state.retry_policy is not None:
            next_location = _get_next_location(command.location_mode, state.current_location)
            retry_context = RetryContext(state.retry_count, result, next_location, command.location_mode,
                                         dict(state.last_attempt_times), command.retryable_error_codes)
            state.retry_count += 1
            retry_info = state.retry_policy(retry_context)

        if retry_info is None:
            logger.error("%s Retry policy did not allow for a retry: %s, HTTP status code=%s, Exception=%s.",
                         client_request_id_prefix, result.end_time, result.http_status_code, exception)
            self._raise_final(exception, result)

        delay = min(max(retry_info.retry_interval or 0, 0), MAXIMUM_RETRY_BACKOFF)
        if state.would_expire(delay):
            logger.error("%s Operation cannot be retried because the maximum execution time has been reached "
                         "or will be reached before the next attempt: %s.", client_request_id_prefix, exception)
            self._raise_final(exception, result)

        state.current_location = retry_info.target_location or retry_context.next_location
        command.location_mode = retry_info.updated_location_mode or command.location_mode
        logger.info("%s Retry policy is allowing a retry: Location=%s, Location mode=%s, Delay=%s.",
                    client_request_id_prefix, state.current_location, command.location_mode, delay)

        if context.retrying:
            context.retrying(retry_context, retry_info, context)

        command.recovery_action(exception, context)

        if delay > 0:
            await self._delay(state, delay)

        if self.retry_callback:
            self.retry_callback(retry_context)

    def _raise_final(self, exception, result):
        if getattr(exception, 'request_result', None) is None:
            exception.request_result = result
        raise exception

    async def _delay(self, state, delay):
        token = state.cancellation_token
        if token is None:
            await asyncio.sleep(delay)
            return

        loop = asyncio.get_running_loop()
        waiter = loop.create_future()
        unregister = token.register(lambda: loop.call_soon_threadsafe(_set_future_done, waiter))
        try:
            # completes early when the token is cancelled
            await asyncio.wait_for(waiter, delay)
        except asyncio.TimeoutError:
            pass
        finally:
            unregister()

        token.raise_if_cancelled()
