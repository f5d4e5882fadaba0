# This file is part of xmppdial.
#
# SPDX-License-Identifier: GPL-3.0-or-later

from __future__ import annotations

from enum import Enum
from enum import IntEnum


DEFAULT_PORT = 5222

KEEPALIVE_INTERVAL = 30
KEEPALIVE_TIMEOUT = 10
PING_INTERVAL = 180
PING_TIMEOUT = 10
STEP_TIMEOUT = 30


class IqType(Enum):
    GET = 'get'
    SET = 'set'
    RESULT = 'result'
    ERROR = 'error'


class Stage(IntEnum):
    STREAM_OPEN = 0
    ENCRYPT = 1
    REGISTER = 2
    AUTHENTICATE = 3
    BIND_RESOURCE = 4
    ESTABLISH_SESSION = 5
    READY = 6

    def __str__(self) -> str:
        return self.name.lower().replace('_', ' ')


class RegistrationState(Enum):
    NOT_REQUESTED = 'not requested'
    NOT_SUPPORTED = 'not supported'
    CREATED = 'created'


class ProxyType(Enum):
    HTTP = 'http'
    SOCKS4 = 'socks4'
    SOCKS5 = 'socks5'


SASL_AUTH_MECHS = [
    'SCRAM-SHA-512',
    'SCRAM-SHA-256',
    'SCRAM-SHA-1',
    'PLAIN',
]

SASL_ERROR_CONDITIONS = [
    'aborted',
    'account-disabled',
    'credentials-expired',
    'encryption-required',
    'incorrect-encoding',
    'invalid-authzid',
    'invalid-mechanism',
    'mechanism-too-weak',
    'malformed-request',
    'not-authorized',
    'temporary-auth-failure',
]

REGISTER_FIELDS = [
    'username',
    'nick',
    'password',
    'name',
    'first',
    'last',
    'email',
    'address',
    'city',
    'state',
    'zip',
    'phone',
    'url',
    'date',
]

REGISTER_ERROR_CODES = {
    '409': 'conflict',
    '406': 'not-acceptable',
}


class TCPState(Enum):
    CONNECTED = 'connected'
    DISCONNECTING = 'disconnecting'
    DISCONNECTED = 'disconnected'
