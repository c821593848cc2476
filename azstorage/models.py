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
import ipaddress
import threading
import uuid

from ._error import (
    _validate_not_none,
    _ERROR_INVALID_IP_ADDRESS,
    _ERROR_STORAGE_URI_MISSING_LOCATION,
    _ERROR_UNKNOWN_LOCATION_MODE,
)


class LocationMode(object):
    '''
    Specifies the location the request should be sent to. This mode only applies
    for RA-GRS accounts which allow secondary read access. All other account types
    must use PRIMARY_ONLY.
    '''

    PRIMARY_ONLY = 'primary_only'
    ''' Requests should be sent to the primary location only. '''

    SECONDARY_ONLY = 'secondary_only'
    ''' Requests should be sent to the secondary location only. '''

    PRIMARY_THEN_SECONDARY = 'primary_then_secondary'
    ''' Requests start at the primary location and alternate on each retry. '''

    SECONDARY_THEN_PRIMARY = 'secondary_then_primary'
    ''' Requests start at the secondary location and alternate on each retry. '''


class StorageLocation(object):
    '''
    Represents a storage service location.
    '''

    PRIMARY = 'primary'
    SECONDARY = 'secondary'


class CommandLocationMode(object):
    '''
    Restricts the locations an individual operation may be sent to,
    independently of the location mode requested by the caller.
    '''

    PRIMARY_ONLY = 'primary_only'
    ''' Write operations. Only the primary location accepts them. '''

    SECONDARY_ONLY = 'secondary_only'
    ''' Operations such as Get Service Stats which only exist on the secondary. '''

    PRIMARY_OR_SECONDARY = 'primary_or_secondary'
    ''' Read operations. Either location may serve them. '''


def _get_first_location(location_mode):
    if location_mode in (LocationMode.PRIMARY_ONLY, LocationMode.PRIMARY_THEN_SECONDARY):
        return StorageLocation.PRIMARY
    if location_mode in (LocationMode.SECONDARY_ONLY, LocationMode.SECONDARY_THEN_PRIMARY):
        return StorageLocation.SECONDARY
    raise ValueError(_ERROR_UNKNOWN_LOCATION_MODE.format(location_mode))


def _get_next_location(location_mode, current_location):
    if location_mode == LocationMode.PRIMARY_ONLY:
        return StorageLocation.PRIMARY
    if location_mode == LocationMode.SECONDARY_ONLY:
        return StorageLocation.SECONDARY
    if location_mode in (LocationMode.PRIMARY_THEN_SECONDARY, LocationMode.SECONDARY_THEN_PRIMARY):
        if current_location == StorageLocation.PRIMARY:
            return StorageLocation.SECONDARY
        return StorageLocation.PRIMARY
    raise ValueError(_ERROR_UNKNOWN_LOCATION_MODE.format(location_mode))


class StorageUri(object):
    '''
    The pair of absolute uris through which a resource is reachable.

    :ivar str primary_uri:
        The uri of the resource at the primary location.
    :ivar str secondary_uri:
        The uri of the resource at the secondary location, or None when the
        account does not offer read access to a secondary.
    '''

    def __init__(self, primary_uri, secondary_uri=None):
        self.primary_uri = primary_uri
        self.secondary_uri = secondary_uri

    def get_uri(self, location):
        if location == StorageLocation.PRIMARY:
            uri = self.primary_uri
        elif location == StorageLocation.SECONDARY:
            uri = self.secondary_uri
        else:
            raise ValueError(_ERROR_UNKNOWN_LOCATION_MODE.format(location))

        if uri is None:
            raise ValueError(_ERROR_STORAGE_URI_MISSING_LOCATION.format(location))
        return uri

    def validate_location_mode(self, location_mode):
        '''
        Returns True when every location the mode may visit has a uri.
        '''
        if location_mode == LocationMode.PRIMARY_ONLY:
            return self.primary_uri is not None
        if location_mode == LocationMode.SECONDARY_ONLY:
            return self.secondary_uri is not None
        return self.primary_uri is not None and self.secondary_uri is not None

    def __eq__(self, other):
        return isinstance(other, StorageUri) and \
               self.primary_uri == other.primary_uri and \
               self.secondary_uri == other.secondary_uri

    def __ne__(self, other):
        return not self.__eq__(other)

    def __repr__(self):
        return 'StorageUri(primary_uri={0!r}, secondary_uri={1!r})'.format(self.primary_uri, self.secondary_uri)


class RetryContext(object):
    '''
    The retry context passed to a retry policy.

    :ivar int count:
        The number of retries that have already happened for this operation.
    :ivar RequestResult last_request_result:
        The result of the attempt that just failed. status_code is None when
        no response was received.
    :ivar str next_location:
        The location the next attempt is headed to unless the policy says otherwise.
    :ivar str location_mode:
        The location mode currently in effect.
    :ivar dict last_attempt_times:
        Monotonic time of the last attempt against each location, keyed by
        StorageLocation.
    :ivar list retryable_error_codes:
        Service error codes the operation accepts as retryable.
    '''

    def __init__(self, count, last_request_result, next_location, location_mode,
                 last_attempt_times=None, retryable_error_codes=None):
        self.count = count
        self.last_request_result = last_request_result
        self.next_location = next_location
        self.location_mode = location_mode
        self.last_attempt_times = last_attempt_times or {}
        self.retryable_error_codes = retryable_error_codes or []


class RetryInfo(object):
    '''
    The decision of a retry policy when it elects to retry.

    :ivar str target_location:
        The location the next attempt is sent to.
    :ivar str updated_location_mode:
        The location mode for the remainder of the operation.
    :ivar float retry_interval:
        The delay, in seconds, before the next attempt.
    '''

    def __init__(self, target_location=None, updated_location_mode=None, retry_interval=0):
        self.target_location = target_location
        self.updated_location_mode = updated_location_mode
        self.retry_interval = retry_interval

    def __repr__(self):
        return 'RetryInfo(target_location={0}, updated_location_mode={1}, retry_interval={2})'.format(
            self.target_location, self.updated_location_mode, self.retry_interval)


class StorageExtendedErrorInformation(object):
    '''
    The error details the service returns in the body of a failed response.

    :ivar str error_code:
        The storage error code, for example 'ServerBusy'.
    :ivar str error_message:
        The human readable message.
    :ivar dict additional_details:
        Any other element of the error body, keyed by element name.
    '''

    def __init__(self, error_code=None, error_message=None, additional_details=None):
        self.error_code = error_code
        self.error_message = error_message
        self.additional_details = additional_details or {}


class RequestResult(object):
    '''
    The outcome of a single attempt of an operation.
    '''

    def __init__(self):
        self.http_status_code = None
        self.http_status_message = None
        self.service_request_id = None
        self.etag = None
        self.content_md5 = None
        self.content_crc64 = None
        self.request_date = None
        self.start_time = None
        self.end_time = None
        self.target_location = None
        self.exception = None
        self.extended_error_information = None
        self.ingress_bytes = 0
        self.egress_bytes = 0

    def __repr__(self):
        return 'RequestResult(status={0}, request_id={1}, location={2})'.format(
            self.http_status_code, self.service_request_id, self.target_location)


class OperationContext(object):
    '''
    Carries caller supplied settings into an operation and collects the
    results of every attempt it made.

    :ivar str client_request_id:
        Sent as x-ms-client-request-id on every attempt. Generated when not set.
    :ivar dict user_headers:
        Extra headers added to every request.
    :ivar list request_results:
        One RequestResult per attempt, across every operation run with this
        context.
    :ivar bool location_lock:
        When True, operations run with this context start at the location
        the previous operation last used.
    :ivar sending_request:
        Called with (request, operation_context) before each request is signed.
    :ivar response_received:
        Called with (response, operation_context) for each response.
    :ivar request_completed:
        Called with (request_result, operation_context) after each attempt.
    :ivar retrying:
        Called with (retry_context, retry_info, operation_context) before each
        retry is scheduled.
    '''

    def __init__(self, client_request_id=None, user_headers=None, location_lock=False):
        self.client_request_id = client_request_id or str(uuid.uuid4())
        self.user_headers = user_headers or {}
        self.location_lock = location_lock
        self.last_location = None
        self.request_results = []
        self.start_time = None
        self.end_time = None

        self.sending_request = None
        self.response_received = None
        self.request_completed = None
        self.retrying = None

    @property
    def last_result(self):
        if not self.request_results:
            return None
        return self.request_results[-1]


class CancellationToken(object):
    '''
    A thread-safe flag that requests the cooperative cancellation of an
    operation. Observers registered through register are called exactly once,
    on the thread that calls cancel.
    '''

    def __init__(self):
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._callbacks = []

    @property
    def is_cancelled(self):
        return self._event.is_set()

    def cancel(self):
        with self._lock:
            if self._event.is_set():
                return
            self._event.set()
            callbacks, self._callbacks = self._callbacks, []

        for callback in callbacks:
            callback()

    def register(self, callback):
        '''
        Calls callback when the token is cancelled, immediately when it
        already is. Returns a function that removes the registration.
        '''
        with self._lock:
            if not self._event.is_set():
                self._callbacks.append(callback)
                return lambda: self._unregister(callback)

        callback()
        return lambda: None

    def _unregister(self, callback):
        with self._lock:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

    def raise_if_cancelled(self):
        if self._event.is_set():
            raise asyncio.CancelledError('The operation was cancelled.')


class AccessPolicy(object):
    '''
    A stored access policy held by a resource. Signatures that reference the
    policy inherit its start, expiry and permission.

    :param str permission:
        The permissions granted, for example 'rwd'.
    :param expiry:
        The time at which the policy stops granting access. Naive values are
        treated as UTC.
    :type expiry: datetime or str
    :param start:
        The time at which the policy starts granting access.
    :type start: datetime or str
    '''

    def __init__(self, permission=None, expiry=None, start=None):
        self.permission = permission
        self.expiry = expiry
        self.start = start

    def __repr__(self):
        return 'AccessPolicy(permission={!r}, start={!r}, expiry={!r})'.format(
            self.permission, self.start, self.expiry)


class ResourceTypes(object):
    '''
    Specifies the resource types that are accessible with the account SAS.

    :param bool service:
        Access to service-level APIs (e.g., Get/Set Service Properties,
        Get Service Stats, List Containers/Queues/Tables/Shares)
    :param bool container:
        Access to container-level APIs (e.g., Create/Delete Container,
        Create/Delete Queue, Create/Delete Table, Create/Delete Share,
        List Blobs/Files and Directories)
    :param bool object:
        Access to object-level APIs for blobs, queue messages, table entities, and
        files(e.g. Put Blob, Query Entity, Get Messages, Create File, etc.)
    :param str _str:
        A string representing the resource types.
    '''

    def __init__(self, service=False, container=False, object=False, _str=None):
        if not _str:
            _str = ''
        self.service = service or ('s' in _str)
        self.container = container or ('c' in _str)
        self.object = object or ('o' in _str)

    def __or__(self, other):
        return ResourceTypes(_str=str(self) + str(other))

    def __add__(self, other):
        return ResourceTypes(_str=str(self) + str(other))

    def __str__(self):
        return (('s' if self.service else '') +
                ('c' if self.container else '') +
                ('o' if self.object else ''))


ResourceTypes.SERVICE = ResourceTypes(service=True)
ResourceTypes.CONTAINER = ResourceTypes(container=True)
ResourceTypes.OBJECT = ResourceTypes(object=True)


class Services(object):
    '''
    Specifies the services accessible with the account SAS.

    :param bool blob:
        Access to the blob service.
    :param bool queue:
        Access to the queue service.
    :param bool table:
        Access to the table service.
    :param bool file:
        Access to the file service.
    :param str _str:
        A string representing the services.
    '''

    def __init__(self, blob=False, queue=False, table=False, file=False, _str=None):
        if not _str:
            _str = ''
        self.blob = blob or ('b' in _str)
        self.queue = queue or ('q' in _str)
        self.table = table or ('t' in _str)
        self.file = file or ('f' in _str)

    def __or__(self, other):
        return Services(_str=str(self) + str(other))

    def __add__(self, other):
        return Services(_str=str(self) + str(other))

    def __str__(self):
        return (('b' if self.blob else '') +
                ('q' if self.queue else '') +
                ('t' if self.table else '') +
                ('f' if self.file else ''))


Services.BLOB = Services(blob=True)
Services.QUEUE = Services(queue=True)
Services.TABLE = Services(table=True)
Services.FILE = Services(file=True)


class AccountPermissions(object):
    '''
    :class:`~ResourceTypes` class to be used with generate_shared_access_signature
    method and for the AccessPolicies used with set_*_acl. There are two types of
    SAS which may be used to grant resource access. One is to grant access to a
    specific resource (resource-specific). Another is to grant access to the
    entire service for a specific account and allow certain operations based on
    perms found here.

    :param bool read:
        Valid for all signed resources types (Service, Container, and Object).
        Permits read permissions to the specified resource type.
    :param bool write:
        Valid for all signed resources types (Service, Container, and Object).
        Permits write permissions to the specified resource type.
    :param bool delete:
        Valid for Container and Object resource types, except for queue messages.
    :param bool list:
        Valid for Service and Container resource types only.
    :param bool add:
        Valid for the following Object resource types only: queue messages,
        table entities, and append blobs.
    :param bool create:
        Valid for the following Object resource types only: blobs and files.
        Users can create new blobs or files, but may not overwrite existing
        blobs or files.
    :param bool update:
        Valid for the following Object resource types only: queue messages and
        table entities.
    :param bool process:
        Valid for the following Object resource type only: queue messages.
    :param str _str:
        A string representing the permissions.
    '''

    def __init__(self, read=False, write=False, delete=False, list=False,
                 add=False, create=False, update=False, process=False, _str=None):
        if not _str:
            _str = ''
        self.read = read or ('r' in _str)
        self.write = write or ('w' in _str)
        self.delete = delete or ('d' in _str)
        self.list = list or ('l' in _str)
        self.add = add or ('a' in _str)
        self.create = create or ('c' in _str)
        self.update = update or ('u' in _str)
        self.process = process or ('p' in _str)

    def __or__(self, other):
        return AccountPermissions(_str=str(self) + str(other))

    def __add__(self, other):
        return AccountPermissions(_str=str(self) + str(other))

    def __str__(self):
        return (('r' if self.read else '') +
                ('w' if self.write else '') +
                ('d' if self.delete else '') +
                ('l' if self.list else '') +
                ('a' if self.add else '') +
                ('c' if self.create else '') +
                ('u' if self.update else '') +
                ('p' if self.process else ''))


AccountPermissions.READ = AccountPermissions(read=True)
AccountPermissions.WRITE = AccountPermissions(write=True)
AccountPermissions.DELETE = AccountPermissions(delete=True)
AccountPermissions.LIST = AccountPermissions(list=True)
AccountPermissions.ADD = AccountPermissions(add=True)
AccountPermissions.CREATE = AccountPermissions(create=True)
AccountPermissions.UPDATE = AccountPermissions(update=True)
AccountPermissions.PROCESS = AccountPermissions(process=True)


class Protocol(object):
    '''
    Specifies the protocol permitted for a SAS token. Note that HTTP only is
    not allowed.
    '''

    HTTPS = 'https'
    ''' Allow HTTPS requests only. '''

    HTTPS_HTTP = 'https,http'
    ''' Allow HTTP and HTTPS requests. '''


class IPAddressOrRange(object):
    '''
    A single IPv4 address or an inclusive range of addresses from which a
    shared access signature accepts requests.

    :param str start:
        The address, or the lower bound of the range. A string of the form
        'a.b.c.d-e.f.g.h' is accepted as a range.
    :param str end:
        The upper bound of the range.
    '''

    def __init__(self, start, end=None):
        _validate_not_none('start', start)
        if end is None and '-' in start:
            start, end = start.split('-', 1)

        self.start = self._parse(start)
        self.end = self._parse(end) if end else None

    @staticmethod
    def _parse(value):
        try:
            return ipaddress.IPv4Address(value.strip())
        except ValueError as ex:
            raise ValueError(_ERROR_INVALID_IP_ADDRESS.format(value)) from ex

    def __str__(self):
        if self.end is None:
            return str(self.start)
        return '{0}-{1}'.format(self.start, self.end)


class SharedAccessAccountPolicy(object):
    '''
    The constraints an account shared access signature grants access under.

    :param AccountPermissions permission:
        The operations the signature permits.
    :param Services services:
        The services the signature grants access to.
    :param ResourceTypes resource_types:
        The resource types the signature grants access to.
    :param expiry:
        The time at which the signature becomes invalid.
    :type expiry: datetime or str
    :param start:
        The time at which the signature becomes valid.
    :type start: datetime or str
    :param ip:
        The address or address range requests must come from.
    :type ip: str or IPAddressOrRange
    :param str protocol:
        One of the values of :class:`~Protocol`.
    '''

    def __init__(self, permission=None, services=None, resource_types=None,
                 expiry=None, start=None, ip=None, protocol=None):
        self.permission = permission
        self.services = services
        self.resource_types = resource_types
        self.expiry = expiry
        self.start = start
        self.ip = ip
        self.protocol = protocol
