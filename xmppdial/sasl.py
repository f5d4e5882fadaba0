# Copyright (C) 2020 Philipp Hörist <philipp AT hoerist.com>
#
# This file is part of xmppdial.
#
# SPDX-License-Identifier: GPL-3.0-or-later

from __future__ import annotations

from typing import Any
from typing import Optional
from typing import TYPE_CHECKING

import binascii
import hashlib
import hmac
import logging
import os
from hashlib import pbkdf2_hmac

from xmppdial.builder import E
from xmppdial.const import SASL_AUTH_MECHS
from xmppdial.const import SASL_ERROR_CONDITIONS
from xmppdial.elements import Base
from xmppdial.errors import AuthenticationFailed
from xmppdial.errors import StanzaMalformed
from xmppdial.namespaces import Namespace
from xmppdial.util import b64decode
from xmppdial.util import b64encode
from xmppdial.util import LogAdapter

if TYPE_CHECKING:
    from xmppdial.features import Features
    from xmppdial.stream import XMLStream

log = logging.getLogger('xmppdial.sasl')


class SASL:
    '''
    Implements SASL authentication.
    '''

    def __init__(self,
                 mechs: Optional[set[str]] = None,
                 log_context: Optional[str] = None) -> None:

        self._mechanism_classes = {
            'PLAIN': PLAIN,
            'SCRAM-SHA-1': SCRAM_SHA_1,
            'SCRAM-SHA-256': SCRAM_SHA_256,
            'SCRAM-SHA-512': SCRAM_SHA_512,
        }

        if mechs is None:
            mechs = set(self._mechanism_classes)
        self._allowed_mechs = mechs

        self._log = LogAdapter(log, {'context': log_context or ''})

    def authenticate(self,
                     stream: XMLStream,
                     features: Features,
                     username: str,
                     password: str,
                     domain: str) -> None:

        feature_mechs = features.get_mechs()

        self._log.info('Allowed mechanisms: %s', self._allowed_mechs)
        self._log.info('Server mechanisms: %s', feature_mechs)

        available_mechs = feature_mechs & self._allowed_mechs
        self._log.info('Available mechanisms: %s', available_mechs)

        chosen_mechanism = None
        for mech in SASL_AUTH_MECHS:
            if mech in available_mechs:
                chosen_mechanism = mech
                break

        if chosen_mechanism is None:
            self._log.error('No available auth mechanisms found')
            raise AuthenticationFailed('invalid-mechanism')

        self._log.info('Chosen auth mechanism: %s', chosen_mechanism)

        if not password:
            raise AuthenticationFailed('no-password')

        mech_class = self._mechanism_classes[chosen_mechanism]
        mechanism = mech_class(username, password, domain)

        try:
            data = mechanism.get_initiate_data()
        except AuthFail as error:
            self._log.error(error)
            self._abort_auth(stream)

        stream.send(get_initiate_nonza(mechanism.name, data))

        while True:
            element = stream.read_element()
            if element.namespace != Namespace.SASL:
                raise StanzaMalformed('Unexpected element during '
                                      'authentication: %s' % element.tag)

            name = element.localname
            if name == 'challenge':
                self._on_challenge(stream, mechanism, element)

            elif name == 'success':
                self._on_success(stream, mechanism, element)
                return

            elif name == 'failure':
                self._on_failure(element)

            else:
                raise StanzaMalformed('Unknown SASL element: %s' % name)

    def _on_challenge(self,
                      stream: XMLStream,
                      mechanism: BaseMechanism,
                      element: Base) -> None:
        try:
            data = mechanism.get_response_data(element.text or '')
        except NotImplementedError:
            self._log.info('Mechanism has no response method')
            self._abort_auth(stream)

        except (AuthFail, ValueError, KeyError) as error:
            self._log.error(error)
            self._abort_auth(stream)

        stream.send(get_response_nonza(data))

    def _on_success(self,
                    stream: XMLStream,
                    mechanism: BaseMechanism,
                    element: Base) -> None:
        self._log.info('Successfully authenticated with remote server')
        try:
            mechanism.validate_success_data(element.text)
        except Exception as error:
            self._log.error('Unable to validate success data: %s', error)
            self._abort_auth(stream)

        self._log.info('Validated success data')

    def _on_failure(self, element: Base) -> None:
        text = element.find_tag_text('text')
        reason = 'not-authorized'
        for child in element:
            name = child.localname
            if name == 'text':
                continue
            if name in SASL_ERROR_CONDITIONS:
                reason = name
                break

        self._log.info('Failed SASL authentification: %s %s', reason, text)
        raise AuthenticationFailed(reason, text)

    def _abort_auth(self,
                    stream: XMLStream,
                    reason: str = 'malformed-request',
                    text: Optional[str] = None) -> None:
        stream.send(E('abort', namespace=Namespace.SASL))
        raise AuthenticationFailed(reason, text)


def get_initiate_nonza(mechanism: str, data: Optional[str]) -> Base:
    return E('auth', text=data, namespace=Namespace.SASL, mechanism=mechanism)


def get_response_nonza(data: Optional[str]) -> Base:
    return E('response', text=data, namespace=Namespace.SASL)


class BaseMechanism:

    name: str

    def __init__(self, username: str, password: str, domain: str) -> None:
        self._username = username
        self._password = password
        self._domain = domain

    def get_initiate_data(self) -> Optional[str]:
        raise NotImplementedError

    def get_response_data(self, data: str) -> str:
        raise NotImplementedError

    def validate_success_data(self, _data: Optional[str]) -> None:
        return None


class PLAIN(BaseMechanism):

    name = 'PLAIN'

    def get_initiate_data(self) -> str:
        return b64encode('\x00%s\x00%s' % (self._username, self._password))


class SCRAM(BaseMechanism):

    name = ''
    _hash_method = ''

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        BaseMechanism.__init__(self, *args, **kwargs)
        self._gs2_header = 'n,,'
        self._client_nonce = '%x' % int(binascii.hexlify(os.urandom(24)), 16)
        self._client_first_message_bare: Optional[str] = None
        self._server_signature: Optional[bytes] = None

    @property
    def nonce_length(self) -> int:
        return len(self._client_nonce)

    @property
    def _b64_channel_binding_data(self) -> str:
        return b64encode(self._gs2_header)

    @staticmethod
    def _scram_parse(scram_data: str) -> dict[str, str]:
        return dict(s.split('=', 1) for s in scram_data.split(','))

    def get_initiate_data(self) -> str:
        self._client_first_message_bare = 'n=%s,r=%s' % (
            self._username,
            self._client_nonce)

        client_first_message = '%s%s' % (
            self._gs2_header,
            self._client_first_message_bare)

        return b64encode(client_first_message)

    def get_response_data(self, data: str) -> str:
        server_first_message = b64decode(data).decode()
        challenge = self._scram_parse(server_first_message)

        client_nonce = challenge['r'][:self.nonce_length]
        if client_nonce != self._client_nonce:
            raise AuthFail('Invalid client nonce received from server')

        salt = b64decode(challenge['s'])
        iteration_count = int(challenge['i'])

        if iteration_count < 4096:
            raise AuthFail('Salt iteration count to low: %s' % iteration_count)

        salted_password = pbkdf2_hmac(self._hash_method,
                                      self._password.encode('utf8'),
                                      salt,
                                      iteration_count)

        client_final_message_wo_proof = 'c=%s,r=%s' % (
            self._b64_channel_binding_data,
            challenge['r'])

        client_key = self._hmac(salted_password, 'Client Key')
        stored_key = self._h(client_key)
        auth_message = '%s,%s,%s' % (
            self._client_first_message_bare,
            server_first_message,
            client_final_message_wo_proof)
        client_signature = self._hmac(stored_key, auth_message)
        client_proof = self._xor(client_key, client_signature)

        client_finale_message = 'c=%s,r=%s,p=%s' % (
            self._b64_channel_binding_data,
            challenge['r'],
            b64encode(client_proof))

        server_key = self._hmac(salted_password, 'Server Key')
        self._server_signature = self._hmac(server_key, auth_message)

        return b64encode(client_finale_message)

    def validate_success_data(self, data: Optional[str]) -> None:
        if not data:
            raise AuthFail('No server signature received')

        server_last_message = b64decode(data).decode()
        success = self._scram_parse(server_last_message)
        server_signature = b64decode(success['v'])
        if server_signature != self._server_signature:
            raise AuthFail('Invalid server signature')

    def _hmac(self, key: bytes, message: str) -> bytes:
        return hmac.new(key=key,
                        msg=message.encode(),
                        digestmod=self._hash_method).digest()

    @staticmethod
    def _xor(x: bytes, y: bytes) -> bytes:
        return bytes([px ^ py for px, py in zip(x, y)])

    def _h(self, data: bytes) -> bytes:
        return hashlib.new(self._hash_method, data).digest()


class SCRAM_SHA_1(SCRAM):

    name = 'SCRAM-SHA-1'
    _hash_method = 'sha1'


class SCRAM_SHA_256(SCRAM):

    name = 'SCRAM-SHA-256'
    _hash_method = 'sha256'


class SCRAM_SHA_512(SCRAM):

    name = 'SCRAM-SHA-512'
    _hash_method = 'sha512'


class AuthFail(Exception):
    pass
