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
from ._connection import _ServiceParameters
from ._error import _validate_not_none
from .sharedaccesssignature import SharedAccessSignature
from .storageclient import StorageClient


class CloudStorageAccount(object):
    """
    Provides a factory for creating storage clients with a common account
    name and account key, sas token or token credential. Users can either use
    the factory or can construct the client directly.
    """

    def __init__(self, account_name=None, account_key=None, sas_token=None, is_emulated=None,
                 token_credential=None, protocol=None, endpoint_suffix=None, connection_string=None):
        '''
        :param str account_name:
            The storage account name. This is used to authenticate requests
            signed with an account key and to construct the storage endpoint.
            It is required unless is_emulated is used.
        :param str account_key:
            The storage account key. This is used for shared key authentication.
        :param str sas_token:
            A shared access signature token to use to authenticate requests
            instead of the account key.
        :param bool is_emulated:
            Whether to use the emulator. Defaults to False. If specified, will
            override all other parameters.
        :param TokenCredential token_credential:
            An OAuth token used to authenticate requests over https.
        :param str protocol:
            The protocol to use for requests. Defaults to https.
        :param str endpoint_suffix:
            The host base component of the url, minus the account name.
            Defaults to Azure (core.windows.net).
        :param str connection_string:
            If specified, this will override all other parameters.
        '''
        self.account_name = account_name
        self.account_key = account_key
        self.sas_token = sas_token
        self.is_emulated = is_emulated
        self.token_credential = token_credential
        self.protocol = protocol
        self.endpoint_suffix = endpoint_suffix
        self.connection_string = connection_string

    def create_service_client(self, service, request_session=None, socket_timeout=None):
        '''
        Creates a :class:`~azstorage.storageclient.StorageClient` for one of
        the storage services of this account.

        :param str service: 'blob', 'queue', 'table' or 'file'.
        :param requests.Session request_session:
            The session object to use for http requests.
        :param socket_timeout:
            The socket timeout of every request, seconds or a
            (connect, read) tuple.
        '''
        params = _ServiceParameters.get_service_parameters(
            service,
            account_name=self.account_name,
            account_key=self.account_key,
            sas_token=self.sas_token,
            token_credential=self.token_credential,
            is_emulated=self.is_emulated,
            protocol=self.protocol,
            endpoint_suffix=self.endpoint_suffix,
            request_session=request_session,
            connection_string=self.connection_string,
            socket_timeout=socket_timeout)
        return StorageClient(params)

    def generate_shared_access_signature(self, services, resource_types,
                                         permission, expiry, start=None,
                                         ip=None, protocol=None):
        '''
        Generates a shared access signature for the account.
        Use the returned signature with the sas_token parameter of the service
        or to create a new account object.

        :param Services services:
            Specifies the services accessible with the account SAS. You can
            combine values to provide access to more than one service.
        :param ResourceTypes resource_types:
            Specifies the resource types that are accessible with the account
            SAS. You can combine values to provide access to more than one
            resource type.
        :param AccountPermissions permission:
            The permissions associated with the shared access signature. The
            user is restricted to operations allowed by the permissions.
            You can combine values to provide more than one permission.
        :param expiry:
            The time at which the shared access signature becomes invalid.
            Azure will always convert values to UTC. If a date is passed in
            without timezone info, it is assumed to be UTC.
        :type expiry: datetime or str
        :param start:
            The time at which the shared access signature becomes valid. If
            omitted, start time for this call is assumed to be the time when the
            storage service receives the request.
        :type start: datetime or str
        :param ip:
            Specifies an IP address or a range of IP addresses from which to accept requests.
            For example, specifying sip=168.1.5.65 or sip=168.1.5.60-168.1.5.70 on the SAS
            restricts the request to those IP addresses.
        :type ip: str or IPAddressOrRange
        :param str protocol:
            Specifies the protocol permitted for a request made. Possible values are
            both HTTPS and HTTP (https,http) or HTTPS only (https). The default value
            is https,http. Note that HTTP only is not a permitted value.
        '''
        _validate_not_none('self.account_name', self.account_name)
        _validate_not_none('self.account_key', self.account_key)

        sas = SharedAccessSignature(self.account_name, self.account_key)
        return sas.generate_account(services, resource_types, permission,
                                    expiry, start=start, ip=ip, protocol=protocol)
