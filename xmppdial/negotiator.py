# This file is part of xmppdial.
#
# SPDX-License-Identifier: GPL-3.0-or-later

'''
Stream negotiation, RFC 6120 section 4.3

The steps always run in the same order, optional ones are skipped when the
server does not offer the feature:

    stream open > STARTTLS > in-band registration > SASL > bind > session

All I/O happens on the calling thread. The read loop and the liveness
threads are started once the session is bound.
'''

from __future__ import annotations

from typing import Optional

import logging
import ssl

from xmppdial.builder import BindRequest
from xmppdial.builder import SessionRequest
from xmppdial.builder import TLSRequest
from xmppdial.const import RegistrationState
from xmppdial.const import Stage
from xmppdial.errors import BindFailed
from xmppdial.errors import DecodeError
from xmppdial.errors import InvalidJid
from xmppdial.errors import SessionEstablishmentFailed
from xmppdial.errors import StanzaMalformed
from xmppdial.errors import TLSNegotiationFailed
from xmppdial.features import Features
from xmppdial.liveness import LivenessMonitor
from xmppdial.namespaces import Namespace
from xmppdial.register import RegistrationHandler
from xmppdial.session import Session
from xmppdial.structs import Authenticator
from xmppdial.structs import TLSUpgrader
from xmppdial.util import LogAdapter
from xmppdial.util import generate_id
from xmppdial.util import negotiation_step

log = logging.getLogger('xmppdial.negotiator')


class StreamNegotiator:
    def __init__(self,
                 session: Session,
                 tls: TLSUpgrader,
                 authenticator: Authenticator) -> None:

        self._session = session
        self._config = session.config
        self._stream = session.stream
        self._tls = tls
        self._authenticator = authenticator
        self._log = LogAdapter(log, {'context': self._config.log_context or ''})

        self._liveness: Optional[LivenessMonitor] = None

    @property
    def liveness(self) -> Optional[LivenessMonitor]:
        return self._liveness

    def _set_stage(self, stage: Stage) -> None:
        self._log.info('Set stage: %s', stage)
        self._session.stages.append(stage)

    def negotiate(self) -> Session:
        '''
        Runs all steps and returns the ready session, on any failure the
        transport is closed and the error is raised
        '''
        self._session.transport.set_timeout(self._config.step_timeout)

        try:
            features = self._open_stream()
            features = self._encrypt(features)

            # Later steps decide on the features offered before
            # authentication, the stream restart after SASL does not
            # change them
            self._session.features = features

            self._register(features)
            self._authenticate(features)
            self._bind()
            self._establish_session(features)
            self._ready()

        except BaseException:
            self._log.info('Negotiation failed, close session')
            self._session.close()
            raise

        return self._session

    def _open_stream(self) -> Features:
        self._set_stage(Stage.STREAM_OPEN)
        with negotiation_step(Stage.STREAM_OPEN):
            return self._stream.open()

    def _encrypt(self, features: Features) -> Features:
        supported, required = features.has_starttls()
        if not supported:
            self._log.info('Server does not offer STARTTLS')
            return features

        self._set_stage(Stage.ENCRYPT)
        self._log.info('Negotiate STARTTLS (required: %s)', required)

        with negotiation_step(Stage.ENCRYPT):
            self._stream.send(TLSRequest())
            element = self._stream.read_element()
            if element.namespace != Namespace.TLS:
                raise StanzaMalformed('Unexpected STARTTLS response: %s'
                                      % element.tag)

            if element.localname == 'failure':
                raise TLSNegotiationFailed('Server refused STARTTLS')

            if element.localname != 'proceed':
                raise StanzaMalformed('Unexpected STARTTLS response: %s'
                                      % element.tag)

            try:
                self._session.transport.swap(self._upgrade)
            except ssl.SSLError as error:
                raise TLSNegotiationFailed(str(error)) from error

            self._session.transport.set_timeout(self._config.step_timeout)
            return self._stream.open()

    def _upgrade(self, sock):
        return self._tls.upgrade(sock,
                                 self._session.domain,
                                 self._session.trusted)

    def _register(self, features: Features) -> None:
        handler = RegistrationHandler(self._stream,
                                      self._config.form_handler,
                                      self._config.log_context)

        if not handler.is_configured:
            self._session.registration = RegistrationState.NOT_REQUESTED
            return

        if not features.has_register():
            self._log.warning('Registration requested but server does not '
                              'offer in-band registration')
            self._session.registration = RegistrationState.NOT_SUPPORTED
            return

        self._set_stage(Stage.REGISTER)
        self._session.registration = handler.create_account(
            self._session.identity.localpart,
            self._config.password)

    def _authenticate(self, features: Features) -> None:
        self._set_stage(Stage.AUTHENTICATE)
        with negotiation_step(Stage.AUTHENTICATE):
            self._authenticator.authenticate(self._stream,
                                             features,
                                             self._session.identity.localpart,
                                             self._config.password,
                                             self._session.domain)

            # RFC 6120, 6.4.6 the stream is restarted after SASL success
            self._stream.open()

    def _bind(self) -> None:
        self._set_stage(Stage.BIND_RESOURCE)
        with negotiation_step(Stage.BIND_RESOURCE):
            request = BindRequest(id=generate_id())
            self._stream.send(request)
            response = self._stream.read_reply(request.id)

        if not response.is_result:
            raise BindFailed(str(response.get_error()))

        jid = None
        bind = response.find_tag('bind', namespace=Namespace.BIND)
        if bind is not None:
            jid = bind.find_tag_text('jid')

        if not jid:
            raise DecodeError(Stage.BIND_RESOURCE, 'No jid in bind response')

        try:
            self._session.set_bound_jid(jid)
        except InvalidJid as error:
            raise BindFailed('Server returned invalid JID: %s' % jid) from error

        self._log.info('Successfully bound %s', jid)

    def _establish_session(self, features: Features) -> None:
        if not features.session_required():
            self._log.info('No session required')
            return

        self._set_stage(Stage.ESTABLISH_SESSION)
        with negotiation_step(Stage.ESTABLISH_SESSION):
            request = SessionRequest(self._session.domain, id=generate_id())
            self._stream.send(request)
            response = self._stream.read_reply(request.id)

        if response.get('type') != 'result':
            self._log.error('Session open failed')
            raise SessionEstablishmentFailed()

        self._log.info('Successfully started session')

    def _ready(self) -> None:
        self._set_stage(Stage.READY)
        self._session.transport.set_timeout(None)
        self._session.start()

        self._liveness = LivenessMonitor(self._session)
        self._session.liveness = self._liveness
        self._liveness.start()
