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


class HTTPError(Exception):
    '''
    Represents an HTTP Exception when response status code >= 300.

    :ivar int status:
        the status code of the response
    :ivar str message:
        the message
    :ivar dict respheader:
        the returned headers, as a dict of lower-cased names to values
    :ivar bytes respbody:
        the body of the response
    '''

    def __init__(self, status, message, respheader, respbody):
        self.status = status
        self.respheader = respheader
        self.respbody = respbody
        Exception.__init__(self, message)


class HTTPResponse(object):
    '''
    Represents a response from an HTTP request.

    :ivar int status:
        the status code of the response
    :ivar str message:
        the message
    :ivar dict headers:
        the returned headers, keyed by lower-cased header name
    :ivar bytes body:
        the body of the response, or None when the response is streamed
    :ivar stream:
        a readable file-like object over the body when the request asked for
        a streamed response, otherwise None
    '''

    def __init__(self, status, message, headers, body, stream=None):
        self.status = status
        self.message = message
        self.headers = headers
        self.body = body
        self.stream = stream

    def read_body(self):
        '''
        Buffers a streamed body so error parsing can see it. Returns the bytes.
        '''
        if self.body is None and self.stream is not None:
            self.body = self.stream.read()
        return self.body

    def close(self):
        stream, self.stream = self.stream, None
        if stream is not None and hasattr(stream, 'close'):
            stream.close()


class HTTPRequest(object):
    '''
    Represents an HTTP Request.

    :ivar str protocol:
        the scheme of the target uri; the client default is used when None
    :ivar str host:
        the host name to connect to
    :ivar str method:
        the method to use to connect (string such as GET, POST, PUT, etc.)
    :ivar str path:
        the uri fragment
    :ivar dict query:
        query parameters
    :ivar dict headers:
        header values
    :ivar bytes body:
        the body of the request, as bytes or a readable stream.
    '''

    def __init__(self):
        self.protocol = None
        self.host = ''
        self.method = ''
        self.path = ''
        self.query = {}
        self.headers = {}
        self.body = None
