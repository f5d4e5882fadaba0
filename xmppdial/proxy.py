# This file is part of xmppdial.
#
# SPDX-License-Identifier: GPL-3.0-or-later

from __future__ import annotations

from typing import Optional

import logging
import socket

from python_socks.sync import Proxy

from xmppdial.const import ProxyType
from xmppdial.structs import ProxyData

log = logging.getLogger('xmppdial.proxy')


def split_address(address: str) -> tuple[str, int]:
    host, sep, port = address.rpartition(':')
    if not sep or not host:
        raise ValueError('Address must have the form host:port: %s' % address)

    if host.startswith('[') and host.endswith(']'):
        host = host[1:-1]

    return host, int(port)


def _check_network(network: str) -> None:
    if network not in ('tcp', 'tcp4', 'tcp6'):
        raise ValueError('Unsupported network: %s' % network)


class DirectDialer:
    '''
    Plain TCP connection to the target
    '''

    def __init__(self, timeout: Optional[float] = None) -> None:
        self._timeout = timeout

    def dial(self, network: str, address: str) -> socket.socket:
        _check_network(network)
        host, port = split_address(address)
        log.info('Connect to %s:%s', host, port)
        return socket.create_connection((host, port), timeout=self._timeout)


class ProxyDialer:
    '''
    Connects through a SOCKS or HTTP CONNECT proxy
    '''

    def __init__(self,
                 proxy: ProxyData,
                 timeout: Optional[float] = None) -> None:

        ProxyType(proxy.type)
        self._proxy = proxy
        self._timeout = timeout

    @property
    def proxy(self) -> ProxyData:
        return self._proxy

    def dial(self, network: str, address: str) -> socket.socket:
        _check_network(network)
        host, port = split_address(address)
        log.info('Connect to %s:%s via %s proxy %s',
                 host, port, self._proxy.type, self._proxy.host)

        proxy = Proxy.from_url(self._proxy.get_uri())
        return proxy.connect(dest_host=host,
                             dest_port=port,
                             timeout=self._timeout)
