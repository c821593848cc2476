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

import requests

from ._auth import (
    _StorageSharedKeyAuthentication,
    _StorageSASAuthentication,
    _StorageTokenAuthentication,
    _StorageNoAuthentication,
)
from ._constants import (
    DEFAULT_SOCKET_TIMEOUT,
    DEFAULT_USER_AGENT_STRING,
    X_MS_VERSION,
)
from ._executor import Executor
from ._http.httpclient import _HTTPClient
from .models import LocationMode
from .retry import ExponentialRetry

logger = logging.getLogger(__name__)


class StorageClient(object):
    '''
    This is the base class for service objects. Service objects are used to do
    all requests to Storage through an :class:`~azstorage._executor.Executor`
    which applies the retry policy, the location mode and the callbacks held
    here.

    :ivar str account_name:
        The storage account name. This is used to authenticate requests
        signed with an account key and to construct the storage endpoint. It
        is required unless a connection string is given, or if a custom
        domain is used with anonymous authentication.
    :ivar str account_key:
        The storage account key. This is used for shared key authentication.
        If neither account key or sas token is specified, anonymous access
        will be used.
    :ivar str sas_token:
        A shared access signature token to use to authenticate requests
        instead of the account key. If account key and sas token are both
        specified, account key will be used to sign. If neither are
        specified, anonymous access will be used.
    :ivar str primary_endpoint:
        The endpoint to send storage requests to.
    :ivar str secondary_endpoint:
        The secondary endpoint to read storage data from. This will only be a
        valid endpoint if the storage account used is RA-GRS and thus allows
        reading from secondary.
    :ivar function(context) retry:
        A function which determines whether to retry. Takes as a parameter a
        :class:`~azstorage.models.RetryContext` object. Returns a
        :class:`~azstorage.models.RetryInfo` to retry after its interval, or
        None to stop. Defaults to :func:`~azstorage.retry.ExponentialRetry`.
    :ivar str location_mode:
        The host location to use to make requests. Defaults to
        LocationMode.PRIMARY_ONLY. Reading from the secondary requires an
        RA-GRS account.
    :ivar function(request) request_callback:
        A function called immediately before each request is sent. This function
        takes as a parameter the request object and returns nothing. It may be
        used to added custom headers or log request data.
    :ivar function() response_callback:
        A function called immediately after each response is received. This
        function takes as a parameter the response object and returns nothing.
        It may be used to log response data.
    :ivar function() retry_callback:
        A function called immediately after retry evaluation is performed. This
        function takes as a parameter the retry context object and returns nothing.
        It may be used to detect retries and log context information.
    :ivar float max_execution_time:
        Upper bound, in seconds, for one operation including its retries.
        Unbounded apart from the client-side default when None.
    '''

    def __init__(self, connection_params):
        '''
        :param obj connection_params: The parameters to use to construct the client.
        '''
        self.account_name = connection_params.account_name
        self.account_key = connection_params.account_key
        self.sas_token = connection_params.sas_token
        self.token_credential = connection_params.token_credential
        self.is_emulated = connection_params.is_emulated

        self.primary_endpoint = connection_params.primary_endpoint
        self.secondary_endpoint = connection_params.secondary_endpoint
        self._connection_params = connection_params

        protocol = connection_params.protocol
        request_session = connection_params.request_session or requests.Session()
        socket_timeout = connection_params.socket_timeout or DEFAULT_SOCKET_TIMEOUT
        self._httpclient = _HTTPClient(
            protocol=protocol,
            session=request_session,
            timeout=socket_timeout,
        )

        self.retry = ExponentialRetry().retry
        self.location_mode = LocationMode.PRIMARY_ONLY
        self.max_execution_time = None

        self.request_callback = None
        self.response_callback = None
        self.retry_callback = None

        self.authentication = self._get_authentication()
        self.x_ms_version = X_MS_VERSION
        self.user_agent_string = DEFAULT_USER_AGENT_STRING

    def _get_authentication(self):
        if self.account_key:
            return _StorageSharedKeyAuthentication(self.account_name, self.account_key)
        if self.sas_token:
            return _StorageSASAuthentication(self.sas_token)
        if self.token_credential:
            return _StorageTokenAuthentication(self.token_credential)
        return _StorageNoAuthentication()

    @property
    def socket_timeout(self):
        return self._httpclient.timeout

    @socket_timeout.setter
    def socket_timeout(self, value):
        self._httpclient.timeout = value

    @property
    def protocol(self):
        return self._httpclient.protocol

    @protocol.setter
    def protocol(self, value):
        self._httpclient.protocol = value

    @property
    def request_session(self):
        return self._httpclient.session

    @request_session.setter
    def request_session(self, value):
        self._httpclient.session = value

    def set_proxy(self, host, port, user=None, password=None):
        '''
        Sets the proxy server host and port for the HTTP CONNECT Tunnelling.

        :param str host: Address of the proxy. Ex: '192.168.0.100'
        :param int port: Port of the proxy. Ex: 6000
        :param str user: User for proxy authorization.
        :param str password: Password for proxy authorization.
        '''
        self._httpclient.set_proxy(host, port, user, password)

    def update_sas_token(self, sas_token):
        '''
        Replaces the shared access signature used to sign requests, for
        instance once the previous one is about to expire.

        :param str sas_token: The new token, with or without a leading '?'.
        '''
        if not isinstance(self.authentication, _StorageSASAuthentication):
            raise ValueError('The client is not authenticated with a shared access signature.')
        self.sas_token = sas_token
        self.authentication.update_token(sas_token)

    def make_storage_uri(self, path=''):
        '''
        Returns the :class:`~azstorage.models.StorageUri` of the resource at
        path, relative to the service endpoints of this client.

        :param str path: The resource path, e.g. 'container/blob'.
        '''
        return self._connection_params.get_storage_uri(path)

    def _get_executor(self):
        # built per operation so setting changes take effect immediately
        return Executor(self._httpclient, self.authentication,
                        request_callback=self.request_callback,
                        response_callback=self.response_callback,
                        retry_callback=self.retry_callback,
                        x_ms_version=self.x_ms_version,
                        user_agent_string=self.user_agent_string)

    def _prepare_command(self, command):
        if command.max_execution_time is None:
            command.max_execution_time = self.max_execution_time
        return command

    async def _execute_async(self, command, operation_context=None, cancellation_token=None):
        '''
        Runs command with the settings of this client and returns what the
        command's post_process_response produced.

        :param RESTCommand command: The operation to run.
        :param OperationContext operation_context: Collects the attempt results.
        :param CancellationToken cancellation_token: Cancels the operation.
        '''
        command = self._prepare_command(command)
        return await self._get_executor().execute_async(command, self.retry, operation_context,
                                                        cancellation_token, self.location_mode)

    def _execute(self, command, operation_context=None, cancellation_token=None):
        command = self._prepare_command(command)
        return self._get_executor().execute(command, self.retry, operation_context,
                                            cancellation_token, self.location_mode)
