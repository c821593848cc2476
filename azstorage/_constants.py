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
import platform

__author__ = 'Microsoft Corp. <ptvshelp@microsoft.com>'
__version__ = '0.1.0'

# x-ms-version for storage service.
X_MS_VERSION = '2019-07-07'

# UserAgent string sample: 'Azure-Storage/0.1.0-0.1.0 (Python CPython 3.8.5; Linux 5.4)'
# The first version is the package version, the second is the client library version
USER_AGENT_STRING_PREFIX = 'Azure-Storage/{}-'.format(__version__)
USER_AGENT_STRING_SUFFIX = '(Python {} {}; {} {})'.format(platform.python_implementation(),
                                                          platform.python_version(), platform.system(),
                                                          platform.release())

DEFAULT_USER_AGENT_STRING = '{}pipeline/{} {}'.format(USER_AGENT_STRING_PREFIX, __version__,
                                                      USER_AGENT_STRING_SUFFIX)

# Live ServiceClient URLs
SERVICE_HOST_BASE = 'core.windows.net'
DEFAULT_PROTOCOL = 'https'

# Development ServiceClient URLs
DEV_BLOB_HOST = '127.0.0.1:10000'
DEV_QUEUE_HOST = '127.0.0.1:10001'
DEV_TABLE_HOST = '127.0.0.1:10002'

# Default credentials for Development Storage Service
DEV_ACCOUNT_NAME = 'devstoreaccount1'
DEV_ACCOUNT_SECONDARY_NAME = 'devstoreaccount1-secondary'
DEV_ACCOUNT_KEY = 'Eby8vdM02xNOcqFlqUwJPLlmEtlCDXJ1OUzFT50uSRZ6IFsuFq2UVErCz4I6tq/K1SZFPTOtr/KBHBeksoGMGw=='

# for python 3.5+, there was a change to the definition of the socket timeout (as far as socket.sendall is concerned)
# The socket timeout is now the maximum total duration to send all data.
DEFAULT_SOCKET_TIMEOUT = (20, 2000)

# Client-side budget for an operation that does not set a maximum execution time (seconds)
DEFAULT_CLIENT_SIDE_TIMEOUT = 5 * 60

# Upper bound for a single backoff interval computed by a retry policy (seconds)
MAXIMUM_RETRY_BACKOFF = 120

# Size of the buffer used when copying request and response bodies
DEFAULT_COPY_BUFFER_SIZE = 64 * 1024

_AUTHORIZATION_HEADER_NAME = 'Authorization'
_COPY_SOURCE_HEADER_NAME = 'x-ms-copy-source'
_REDACTED_VALUE = 'REDACTED'
_CLIENT_REQUEST_ID_HEADER_NAME = 'x-ms-client-request-id'
_REQUEST_ID_HEADER_NAME = 'x-ms-request-id'
_ERROR_CODE_HEADER_NAME = 'x-ms-error-code'
_KEY_NAME_HEADER_NAME = 'x-ms-key-name'
