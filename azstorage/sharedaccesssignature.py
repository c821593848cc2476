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
from ._common_conversion import (
    _sign_string,
    _str_or_none,
)
from ._constants import X_MS_VERSION
from ._error import (
    _validate_not_none,
    _ERROR_INVALID_PROTOCOL,
    _ERROR_VALUE_NONE,
)
from ._serialization import (
    url_quote,
    _to_utc_datetime_or_str,
)
from .models import (
    Protocol,
    SharedAccessAccountPolicy,
)


class QueryStringConstants(object):
    SIGNED_SIGNATURE = 'sig'
    SIGNED_PERMISSION = 'sp'
    SIGNED_START = 'st'
    SIGNED_EXPIRY = 'se'
    SIGNED_IP = 'sip'
    SIGNED_PROTOCOL = 'spr'
    SIGNED_VERSION = 'sv'
    SIGNED_KEY = 'sk'
    SIGNED_SERVICES = 'ss'
    SIGNED_RESOURCE_TYPES = 'srt'

    # parameters that address a resource rather than authorize a request
    NON_SAS_PARAMETERS = ['restype', 'comp', 'snapshot', 'api-version', 'sharesnapshot']


def _get_protocol_string(protocol):
    if protocol is None:
        return None
    if protocol == Protocol.HTTPS:
        return Protocol.HTTPS
    if protocol == Protocol.HTTPS_HTTP:
        return Protocol.HTTPS_HTTP
    raise ValueError(_ERROR_INVALID_PROTOCOL.format(protocol))


def _get_account_sas_string_to_sign(policy, account_name, sas_version):
    '''
    Lays out the fields of an account shared access signature in the order
    the service re-derives them in. Absent values contribute an empty line.
    '''
    _validate_not_none('policy', policy)

    def get_value(value):
        value = _str_or_none(_to_utc_datetime_or_str(value))
        return value or ''

    return '\n'.join([
        account_name,
        get_value(policy.permission),
        get_value(policy.services),
        get_value(policy.resource_types),
        get_value(policy.start),
        get_value(policy.expiry),
        get_value(policy.ip),
        get_value(_get_protocol_string(policy.protocol)),
        sas_version,
        '',
    ])


def _get_account_sas_hash(policy, account_name, sas_version, account_key):
    string_to_sign = _get_account_sas_string_to_sign(policy, account_name, sas_version)
    return _sign_string(account_key, string_to_sign)


def _get_account_sas_query(policy, signature, account_key_name, sas_version):
    '''
    Serializes the signature and the policy into the query of a token.
    Only non-empty values are emitted, escaped, in a fixed order.
    '''
    if policy is None:
        raise ValueError(_ERROR_VALUE_NONE.format('policy'))
    if signature is None:
        raise ValueError(_ERROR_VALUE_NONE.format('signature'))

    query = []

    def add_query(name, value):
        value = _str_or_none(_to_utc_datetime_or_str(value))
        if value:
            query.append('{0}={1}'.format(name, url_quote(value, safe='')))

    add_query(QueryStringConstants.SIGNED_VERSION, sas_version)
    add_query(QueryStringConstants.SIGNED_KEY, account_key_name)
    add_query(QueryStringConstants.SIGNED_SIGNATURE, signature)
    add_query(QueryStringConstants.SIGNED_PROTOCOL, _get_protocol_string(policy.protocol))
    add_query(QueryStringConstants.SIGNED_IP, policy.ip)
    add_query(QueryStringConstants.SIGNED_START, policy.start)
    add_query(QueryStringConstants.SIGNED_EXPIRY, policy.expiry)
    add_query(QueryStringConstants.SIGNED_RESOURCE_TYPES, policy.resource_types)
    add_query(QueryStringConstants.SIGNED_SERVICES, policy.services)
    add_query(QueryStringConstants.SIGNED_PERMISSION, policy.permission)

    return '&'.join(query)


def parse_query(query_parameters):
    '''
    Extracts a shared access signature from the query parameters of a uri.

    :param dict query_parameters:
        The decoded query parameters of the uri.
    :return: The token, or None when the parameters carry no signature.
    :rtype: str
    '''
    if not query_parameters:
        return None

    parameters = [(name.lower(), value) for name, value in query_parameters.items()]
    if not any(name == QueryStringConstants.SIGNED_SIGNATURE for name, _ in parameters):
        return None

    sas_parameters = []
    for name, value in parameters:
        if name in QueryStringConstants.NON_SAS_PARAMETERS:
            continue
        sas_parameters.append('{0}={1}'.format(name, url_quote(_str_or_none(value) or '', safe='')))

    return '&'.join(sas_parameters)


class SharedAccessSignature(object):
    '''
    Provides a factory for creating account access
    signature tokens with an account name and account key. Users can either
    use the factory or can construct the appropriate service and use the
    generate_*_shared_access_signature method directly.
    '''

    def __init__(self, account_name, account_key, x_ms_version=X_MS_VERSION):
        '''
        :param str account_name:
            The storage account name used to generate the shared access signatures.
        :param str account_key:
            The access key to generate the shares access signatures.
        :param str x_ms_version:
            The service version used to generate the shared access signatures.
        '''
        _validate_not_none('account_name', account_name)
        _validate_not_none('account_key', account_key)
        self.account_name = account_name
        self.account_key = account_key
        self.x_ms_version = x_ms_version

    def generate_account(self, services, resource_types, permission, expiry, start=None,
                         ip=None, protocol=None, key_name=None):
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
            storage service receives the request. Azure will always convert values
            to UTC. If a date is passed in without timezone info, it is assumed to
            be UTC.
        :type start: datetime or str
        :param ip:
            Specifies an IP address or a range of IP addresses from which to accept requests.
            If the IP address from which the request originates does not match the IP address
            or address range specified on the SAS token, the request is not authenticated.
            For example, specifying sip=168.1.5.65 or sip=168.1.5.60-168.1.5.70 on the SAS
            restricts the request to those IP addresses.
        :type ip: str or IPAddressOrRange
        :param str protocol:
            Specifies the protocol permitted for a request made. Possible values are
            both HTTPS and HTTP (https,http) or HTTPS only (https). The default value
            is https,http. See :class:`~Protocol` for possible values.
        :param str key_name:
            The name of the account key the signature is computed with.
        :return: The shared access signature token.
        :rtype: str
        '''
        policy = SharedAccessAccountPolicy(permission, services, resource_types,
                                           expiry, start, ip, protocol)
        signature = _get_account_sas_hash(policy, self.account_name, self.x_ms_version, self.account_key)
        return _get_account_sas_query(policy, signature, key_name, self.x_ms_version)
