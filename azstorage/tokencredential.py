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


class TokenCredential(object):
    """
    Represents a token credential that is used to authorize HTTPS requests.
    The token can be updated by the user.

    :ivar str token:
        The authorization token. It can be set by the user at any point in a thread-safe way.
    """

    def __init__(self, initial_value=None):
        """
        :param initial_value: initial value for the token.
        """
        self.token = initial_value

    def update_token(self, new_value):
        """
        :param new_value: new value to be set as the token.
        """
        self.token = new_value

    def get_token(self):
        """
        :return: current token value.
        """
        return self.token
