# This file is part of xmppdial.
#
# SPDX-License-Identifier: GPL-3.0-or-later

from __future__ import annotations

from typing import Optional

import logging
import socket
import ssl

log = logging.getLogger('xmppdial.tls')


class StartTLSUpgrader:
    '''
    Wraps a connected socket into TLS after <proceed/>

    A trusted session skips the hostname check because the server address
    was chosen explicitly, the certificate chain is still verified.
    '''

    def __init__(self, context: Optional[ssl.SSLContext] = None) -> None:
        self._context = context

    def _create_context(self, trusted: bool) -> ssl.SSLContext:
        context = ssl.create_default_context(ssl.Purpose.SERVER_AUTH)
        context.minimum_version = ssl.TLSVersion.TLSv1_2
        if trusted:
            context.check_hostname = False
        return context

    def upgrade(self,
                sock: socket.socket,
                server_hostname: str,
                trusted: bool) -> ssl.SSLSocket:

        context = self._context or self._create_context(trusted)
        log.info('Start TLS handshake with %s (trusted: %s)',
                 server_hostname, trusted)

        tls_sock = context.wrap_socket(sock, server_hostname=server_hostname)
        log.info('TLS established: %s %s',
                 tls_sock.version(), tls_sock.cipher())
        return tls_sock
