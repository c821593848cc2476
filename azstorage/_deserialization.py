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
from xml.etree import ElementTree as ETree

from dateutil import parser

from .models import StorageExtendedErrorInformation


def _to_datetime(strtime):
    if strtime is None:
        return None
    return parser.parse(strtime)


def _get_etree_text(element):
    text = element.text
    return text if text is not None else ''


def _convert_xml_to_extended_error_information(body):
    '''
    <?xml version="1.0" encoding="utf-8"?>
    <Error>
        <Code>string-value</Code>
        <Message>string-value</Message>
        <AuthenticationErrorDetail>string-value</AuthenticationErrorDetail>
    </Error>

    Returns None when the body is empty or is not an error document.
    '''
    if not body:
        return None

    try:
        error_element = ETree.fromstring(body)
    except ETree.ParseError:
        return None

    if error_element.tag != 'Error':
        return None

    error_information = StorageExtendedErrorInformation()
    for child in error_element:
        if child.tag == 'Code':
            error_information.error_code = _get_etree_text(child)
        elif child.tag == 'Message':
            error_information.error_message = _get_etree_text(child)
        else:
            error_information.additional_details[child.tag] = _get_etree_text(child)

    return error_information
