# This file is part of xmppdial.
#
# SPDX-License-Identifier: GPL-3.0-or-later

from __future__ import annotations

from typing import BinaryIO
from typing import Callable
from typing import NamedTuple
from typing import Optional
from typing import Protocol
from typing import TYPE_CHECKING

import dataclasses
import socket
from dataclasses import dataclass
from urllib.parse import quote

from xmppdial.const import KEEPALIVE_INTERVAL
from xmppdial.const import KEEPALIVE_TIMEOUT
from xmppdial.const import PING_INTERVAL
from xmppdial.const import PING_TIMEOUT
from xmppdial.const import STEP_TIMEOUT

if TYPE_CHECKING:
    from xmppdial.dataforms import DataForm
    from xmppdial.features import Features
    from xmppdial.stream import XMLStream


class BobData(NamedTuple):
    algo: str
    hash_: str
    max_age: int
    data: bytes
    cid: str
    type: str


class RegisterQuery(NamedTuple):
    instructions: Optional[str]
    form: Optional[DataForm]
    bob_data: list[BobData]
    fields: list[str]

    @property
    def has_form(self) -> bool:
        return self.form is not None

    @property
    def has_legacy_fields(self) -> bool:
        return 'username' in self.fields and 'password' in self.fields


class ProxyData(NamedTuple):
    type: str
    host: str
    username: Optional[str] = None
    password: Optional[str] = None

    def get_uri(self) -> str:
        if self.username is not None:
            username = quote(self.username, safe='')
            password = quote(self.password or '', safe='')
            user_pass = f'{username}:{password}'
            return '%s://%s@%s' % (self.type, user_pass, self.host)
        return '%s://%s' % (self.type, self.host)


FormHandler = Callable[['DataForm', list[BobData]], 'DataForm']


class ProxyDialer(Protocol):
    def dial(self, network: str, address: str) -> socket.socket: ...


class TLSUpgrader(Protocol):
    def upgrade(self,
                sock: socket.socket,
                server_hostname: str,
                trusted: bool) -> socket.socket: ...


class Authenticator(Protocol):
    def authenticate(self,
                     stream: XMLStream,
                     features: Features,
                     username: str,
                     password: str,
                     domain: str) -> None: ...


@dataclass(frozen=True)
class DialConfig:
    '''
    Everything needed for a single connection attempt

    identity is the bare local@domain account address, server an optional
    host:port that replaces the address derived from the identity.
    '''

    identity: str
    password: str
    server: Optional[str] = None
    proxy: Optional[ProxyDialer] = None
    in_log: Optional[BinaryIO] = None
    out_log: Optional[BinaryIO] = None
    form_handler: Optional[FormHandler] = None
    tls: Optional[TLSUpgrader] = None
    authenticator: Optional[Authenticator] = None
    step_timeout: Optional[float] = STEP_TIMEOUT
    keepalive_interval: float = KEEPALIVE_INTERVAL
    keepalive_timeout: float = KEEPALIVE_TIMEOUT
    ping_interval: float = PING_INTERVAL
    ping_timeout: float = PING_TIMEOUT
    lang: str = 'en'
    log_context: Optional[str] = None

    @property
    def is_server_overridden(self) -> bool:
        return bool(self.server)

    def with_form_handler(self, form_handler: FormHandler) -> DialConfig:
        return dataclasses.replace(self, form_handler=form_handler)
