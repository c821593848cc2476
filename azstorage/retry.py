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
import random
from time import monotonic

from .models import (
    LocationMode,
    RetryInfo,
    StorageLocation,
)


def _get_error_code(request_result):
    if request_result is None:
        return None
    if request_result.extended_error_information is not None:
        return request_result.extended_error_information.error_code
    return getattr(request_result.exception, 'error_code', None)


class _Retry(object):
    '''
    The base class for Exponential and Linear retries containing shared code.
    '''

    def __init__(self, max_attempts):
        '''
        Constructs a base retry object.

        :param int max_attempts:
            The maximum number of retry attempts.
        '''
        self.max_attempts = max_attempts

    def _should_retry(self, context):
        '''
        A function which determines whether or not to retry.

        :param ~azstorage.models.RetryContext context:
            The retry context. This contains the request, response, and other data
            which can be used to determine whether or not to retry.
        :return:
            A boolean indicating whether or not to retry the request.
        :rtype: bool
        '''
        # If max attempts are reached, do not retry.
        if context.count >= self.max_attempts:
            return False

        result = context.last_request_result
        status = result.http_status_code if result is not None else None

        if status is None:
            '''
            If status is None, retry as this request triggered an exception. For
            example, network issues would trigger this.
            '''
            return True

        error_code = _get_error_code(result)
        if error_code is not None and error_code in context.retryable_error_codes:
            return True

        if 200 <= status < 300:
            '''
            This method is called after a successful response, meaning we failed
            during the response body download or parsing. So, success codes should
            be retried.
            '''
            return True
        elif 300 <= status < 500:
            '''
            An exception occured, but in most cases it was expected. Examples could
            include a 409 Conflict or 412 Precondition Failed.
            '''
            if status == 404 and result.target_location == StorageLocation.SECONDARY:
                # Response code 404 should be retried if secondary was used.
                return True
            if status == 408:
                # Response code 408 is a timeout and should be retried.
                return True
            return False
        elif status >= 500:
            '''
            Response codes above 500 with the exception of 501 Not Implemented and
            505 Version Not Supported indicate a server issue and should be retried.
            '''
            if status == 501 or status == 505:
                return False
            return True
        else:
            # If something else happened, it's unexpected. Retry.
            return True

    def _get_next_location(self, context):
        '''
        The secondary may not have caught up with the primary yet, so a 404
        read there moves the rest of the operation to the primary.
        '''
        result = context.last_request_result
        if result is not None and result.http_status_code == 404 and \
                result.target_location == StorageLocation.SECONDARY and \
                context.location_mode != LocationMode.SECONDARY_ONLY:
            return StorageLocation.PRIMARY, LocationMode.PRIMARY_ONLY

        return context.next_location, context.location_mode

    def _retry(self, context, backoff):
        '''
        A function which determines whether and how to retry.

        :param ~azstorage.models.RetryContext context:
            The retry context.
        :param function() backoff:
            A function which returns the backoff time if a retry is to be performed.
        :return:
            A RetryInfo describing the next attempt, or None to stop retrying.
        :rtype: :class:`~azstorage.models.RetryInfo`
        '''
        if not self._should_retry(context):
            return None

        target_location, location_mode = self._get_next_location(context)

        # A location that was never tried is attempted right away; otherwise the
        # time spent since its last attempt counts towards the backoff.
        last_attempt = context.last_attempt_times.get(target_location)
        if last_attempt is None:
            interval = 0
        else:
            interval = max(0, backoff(context) - (monotonic() - last_attempt))

        return RetryInfo(target_location, location_mode, interval)


class ExponentialRetry(_Retry):
    '''
    Exponential retry.
    '''

    def __init__(self, initial_backoff=15, increment_base=3, max_attempts=3,
                 random_jitter_range=3):
        '''
        Constructs an Exponential retry object. The initial_backoff is used for
        the first retry. Subsequent retries are retried after initial_backoff +
        increment_power^retry_count seconds. For example, by default the first retry
        occurs after 15 seconds, the second after (15+3^1) = 18 seconds, and the
        third after (15+3^2) = 24 seconds.

        :param int initial_backoff:
            The initial backoff interval, in seconds, for the first retry.
        :param int increment_base:
            The base, in seconds, to increment the initial_backoff by after the
            first retry.
        :param int max_attempts:
            The maximum number of retry attempts.
        :param int random_jitter_range:
            A number in seconds which indicates a range to jitter/randomize for the back-off interval.
            For example, a random_jitter_range of 3 results in the back-off interval x to vary between x+3 and x-3.
        '''
        self.initial_backoff = initial_backoff
        self.increment_base = increment_base
        self.random_jitter_range = random_jitter_range
        super(ExponentialRetry, self).__init__(max_attempts)

    def retry(self, context):
        '''
        A function which determines whether and how to retry.

        :param ~azstorage.models.RetryContext context:
            The retry context.
        :return:
            A RetryInfo describing the next attempt, or None to stop retrying.
        :rtype: :class:`~azstorage.models.RetryInfo`
        '''
        return self._retry(context, self._backoff)

    def _backoff(self, context):
        '''
        Calculates how long to sleep before retrying.

        :return:
            An integer indicating how long to wait before retrying the request,
            or None to indicate no retry should be performed.
        :rtype: int or None
        '''
        random_generator = random.Random()
        backoff = self.initial_backoff + (0 if context.count == 0 else pow(self.increment_base, context.count))
        random_range_start = backoff - self.random_jitter_range if backoff > self.random_jitter_range else 0
        random_range_end = backoff + self.random_jitter_range
        return random_generator.uniform(random_range_start, random_range_end)


class LinearRetry(_Retry):
    '''
    Linear retry.
    '''

    def __init__(self, backoff=15, max_attempts=3, random_jitter_range=3):
        '''
        Constructs a Linear retry object.

        :param int backoff:
            The backoff interval, in seconds, between retries.
        :param int max_attempts:
            The maximum number of retry attempts.
        :param int random_jitter_range:
            A number in seconds which indicates a range to jitter/randomize for the back-off interval.
            For example, a random_jitter_range of 3 results in the back-off interval x to vary between x+3 and x-3.
        '''
        self.backoff = backoff
        self.max_attempts = max_attempts
        self.random_jitter_range = random_jitter_range
        super(LinearRetry, self).__init__(max_attempts)

    def retry(self, context):
        '''
        A function which determines whether and how to retry.

        :param ~azstorage.models.RetryContext context:
            The retry context.
        :return:
            A RetryInfo describing the next attempt, or None to stop retrying.
        :rtype: :class:`~azstorage.models.RetryInfo`
        '''
        return self._retry(context, self._backoff)

    def _backoff(self, context):
        '''
        Calculates how long to sleep before retrying.

        :return:
            An integer indicating how long to wait before retrying the request,
            or None to indicate no retry should be performed.
        :rtype: int or None
        '''
        random_generator = random.Random()
        # the backoff interval normally does not change, however there is the possibility
        # that it was modified by accessing the property directly after initializing the object
        random_range_start = self.backoff - self.random_jitter_range if self.backoff > self.random_jitter_range else 0
        random_range_end = self.backoff + self.random_jitter_range
        return random_generator.uniform(random_range_start, random_range_end)


def no_retry(context):
    '''
    Specifies never to retry.

    :param ~azstorage.models.RetryContext context:
        The retry context.
    :return:
        Always returns None to indicate never to retry.
    :rtype: None
    '''
    return None
