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
import base64
import hashlib
import hmac
import struct
from io import SEEK_SET

import crcmod
from dateutil.tz import tzutc

from ._error import (
    _ERROR_VALUE_SHOULD_BE_SEEKABLE_STREAM,
    _ERROR_DECODE_KEY,
    AzureSigningError,
)

# Storage service CRC64: reflected polynomial 0x9A6C9329AC4BC9B5, register
# seeded with all ones and inverted on output.
_crc64 = crcmod.mkCrcFun(0x1AD93D23594C93659, initCrc=0, xorOut=0xffffffffffffffff, rev=True)


def _str(value):
    if isinstance(value, str):
        return value
    return str(value)


def _str_or_none(value):
    if value is None:
        return None

    return _str(value)


def _int_or_none(value):
    if value is None:
        return None

    return int(value)


def _bool_or_none(value):
    if value is None:
        return None

    if isinstance(value, bool):
        return value

    return str(value).lower() == 'true'


def _encode_base64(data):
    if isinstance(data, str):
        data = data.encode('utf-8')
    encoded = base64.b64encode(data)
    return encoded.decode('utf-8')


def _decode_base64_to_bytes(data):
    if isinstance(data, str):
        data = data.encode('utf-8')
    return base64.b64decode(data, validate=True)


def _decode_account_key(key):
    if isinstance(key, bytes):
        return key
    try:
        return _decode_base64_to_bytes(key)
    except (TypeError, ValueError) as ex:
        raise AzureSigningError(_ERROR_DECODE_KEY) from ex


def _sign_string(key, string_to_sign, key_is_base64=True):
    if key_is_base64:
        key = _decode_account_key(key)
    else:
        if isinstance(key, str):
            key = key.encode('utf-8')
    if isinstance(string_to_sign, str):
        string_to_sign = string_to_sign.encode('utf-8')
    signed_hmac_sha256 = hmac.HMAC(key, string_to_sign, hashlib.sha256)
    digest = signed_hmac_sha256.digest()
    encoded_digest = _encode_base64(digest)
    return encoded_digest


def _get_content_md5(data):
    md5 = hashlib.md5()
    if isinstance(data, bytes):
        md5.update(data)
    elif hasattr(data, 'read'):
        pos = 0
        try:
            pos = data.tell()
        except (AttributeError, IOError):
            pass
        for chunk in iter(lambda: data.read(4096), b""):
            md5.update(chunk)
        try:
            data.seek(pos, SEEK_SET)
        except (AttributeError, IOError):
            raise ValueError(_ERROR_VALUE_SHOULD_BE_SEEKABLE_STREAM.format('data'))
    else:
        raise ValueError('Data should be of type bytes or a readable file-like/io.IOBase stream object.')

    return base64.b64encode(md5.digest()).decode('utf-8')


def _update_crc64(data, crc=0):
    return _crc64(data, crc)


def _encode_crc64(crc):
    return _encode_base64(struct.pack('<Q', crc))


def _get_content_crc64(data):
    return _encode_crc64(_update_crc64(data))


def _to_utc_datetime(value):
    # Azure expects the date value passed in to be UTC.
    # Azure will always return values as UTC.
    # If a date is passed in without timezone info, it is assumed to be UTC.
    if getattr(value, 'tzinfo', None):
        value = value.astimezone(tzutc())
    return value.strftime('%Y-%m-%dT%H:%M:%SZ')
