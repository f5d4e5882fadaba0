# This file is part of xmppdial.
#
# SPDX-License-Identifier: GPL-3.0-or-later

from __future__ import annotations

import logging
import socket

from xmppdial.const import DEFAULT_PORT
from xmppdial.jid import JID
from xmppdial.jid import parse_identity
from xmppdial.negotiator import StreamNegotiator
from xmppdial.proxy import DirectDialer
from xmppdial.sasl import SASL
from xmppdial.session import Session
from xmppdial.stream import XMLStream
from xmppdial.structs import DialConfig
from xmppdial.structs import FormHandler
from xmppdial.tls import StartTLSUpgrader
from xmppdial.transport import Transport

log = logging.getLogger('xmppdial.dialer')


def join_host_port(host: str, port: int) -> str:
    if ':' in host:
        return '[%s]:%s' % (host, port)
    return '%s:%s' % (host, port)


def resolve_server(config: DialConfig) -> str:
    '''
    Returns the host:port to connect to, the configured server wins over
    the domain of the identity
    '''
    if config.server:
        return config.server

    identity = parse_identity(config.identity)
    return join_host_port(identity.domain, DEFAULT_PORT)


def connect(config: DialConfig) -> Session:
    identity = parse_identity(config.identity)
    address = resolve_server(config)

    dialer = config.proxy or DirectDialer(timeout=config.step_timeout)
    sock = dialer.dial('tcp', address)
    log.info('Connected to %s', address)

    return setup_session(sock, config, identity)


def setup_session(sock: socket.socket,
                  config: DialConfig,
                  identity: JID) -> Session:
    '''
    Negotiates the stream on an already connected socket
    '''
    transport = Transport(sock,
                          in_log=config.in_log,
                          out_log=config.out_log,
                          log_context=config.log_context)

    stream = XMLStream(transport,
                       identity.domain,
                       lang=config.lang,
                       log_context=config.log_context)

    session = Session(stream,
                      config,
                      identity,
                      trusted=config.is_server_overridden)

    tls = config.tls or StartTLSUpgrader()
    authenticator = config.authenticator or SASL(
        log_context=config.log_context)

    negotiator = StreamNegotiator(session, tls, authenticator)
    return negotiator.negotiate()


def register_account(config: DialConfig,
                     form_handler: FormHandler) -> Session:
    return connect(config.with_form_handler(form_handler))


class Dialer:
    def __init__(self, config: DialConfig) -> None:
        self._config = config

    @property
    def config(self) -> DialConfig:
        return self._config

    def get_server(self) -> str:
        return resolve_server(self._config)

    def dial(self) -> Session:
        return connect(self._config)

    def register_account(self, form_handler: FormHandler) -> Session:
        return register_account(self._config, form_handler)
