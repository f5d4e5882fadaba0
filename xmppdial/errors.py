# Copyright (C) 2020 Philipp Hörist <philipp AT hoerist.com>
#
# This file is part of xmppdial.
#
# SPDX-License-Identifier: GPL-3.0-or-later

from __future__ import annotations

from typing import Any
from typing import TYPE_CHECKING

import logging

from xmppdial.const import Stage
from xmppdial.namespaces import Namespace

if TYPE_CHECKING:
    from xmppdial.elements import Base


def is_error(error: Any) -> bool:
    return isinstance(error, BaseError)


class BaseError(Exception):
    def __init__(self, is_fatal: bool = False) -> None:
        self.is_fatal = is_fatal
        self.text = ''

    def __str__(self) -> str:
        return self.text

    def get_text(self, _pref_lang: str | None = None) -> str:
        return self.text


class StanzaError(BaseError):

    log_level = logging.INFO

    def __init__(self, stanza: Base) -> None:
        BaseError.__init__(self)
        self.stanza = stanza
        self._error_node = stanza.find_tag('error')
        self.condition: str | None = None
        self.code: str | None = None
        self.type: str | None = None
        self.jid = stanza.get('from')
        self.id = stanza.get('id')
        self._text: dict[str | None, str] = {}

        if self._error_node is None:
            return

        self.code = self._error_node.get('code')
        self.type = self._error_node.get('type')
        for node in self._error_node.iter_tags('text', Namespace.STANZAS):
            self._text[node.lang] = node.text or ''

        for node in self._error_node:
            if node.namespace != Namespace.STANZAS:
                continue
            if node.localname == 'text':
                continue
            self.condition = node.localname
            break

    def get_text(self, pref_lang: str | None = None) -> str:
        if pref_lang is not None:
            text = self._text.get(pref_lang)
            if text is not None:
                return text

        if self._text:
            text = self._text.get('en')
            if text is not None:
                return text

            text = self._text.get(None)
            if text is not None:
                return text
            return next(iter(self._text.values()))
        return ''

    def __str__(self) -> str:
        condition = self.condition
        if self.code is not None:
            condition = '%s (%s)' % (condition, self.code)
        text = self.get_text('en')
        if text:
            text = ' - %s' % text
        return 'Error from %s: %s%s' % (self.jid, condition, text)


class ConnectionClosed(BaseError):

    log_level = logging.INFO

    def __init__(self, text: str = 'Connection closed') -> None:
        BaseError.__init__(self, is_fatal=True)
        self.text = text


class NegotiationError(BaseError):
    '''
    Terminal error of a dial attempt, tagged with the stage that failed
    '''

    log_level = logging.ERROR
    default_text = 'Stream negotiation failed'

    def __init__(self, stage: Stage, text: str | None = None) -> None:
        BaseError.__init__(self, is_fatal=True)
        self.stage = stage
        self.text = text or self.default_text

    def __str__(self) -> str:
        return '%s: %s' % (self.stage, self.text)


class DecodeError(NegotiationError):
    default_text = 'Unable to decode response'


class StepTimeout(NegotiationError):
    default_text = 'Timeout reached'


class StreamErrorReceived(NegotiationError):

    def __init__(self, stage: Stage, condition: str | None,
                 text: str | None = None) -> None:
        NegotiationError.__init__(self, stage, 'Stream error: %s' % condition)
        self.condition = condition
        if text:
            self.text = '%s - %s' % (self.text, text)


class TLSNegotiationFailed(NegotiationError):
    default_text = 'STARTTLS negotiation failed'

    def __init__(self, text: str | None = None) -> None:
        NegotiationError.__init__(self, Stage.ENCRYPT, text)


class AuthenticationFailed(NegotiationError):

    def __init__(self, reason: str | None, text: str | None = None) -> None:
        NegotiationError.__init__(self, Stage.AUTHENTICATE,
                                  'Authentication failed: %s' % reason)
        self.reason = reason
        if text:
            self.text = '%s - %s' % (self.text, text)


class BindFailed(NegotiationError):
    default_text = 'Resource binding failed'

    def __init__(self, text: str | None = None) -> None:
        NegotiationError.__init__(self, Stage.BIND_RESOURCE, text)


class SessionEstablishmentFailed(NegotiationError):
    default_text = 'Session establishment failed'

    def __init__(self, text: str | None = None) -> None:
        NegotiationError.__init__(self, Stage.ESTABLISH_SESSION, text)


class RegistrationFailed(NegotiationError):
    default_text = 'Account creation failed'

    def __init__(self,
                 text: str | None = None,
                 stanza_error: StanzaError | None = None) -> None:
        NegotiationError.__init__(self, Stage.REGISTER, text)
        self.stanza_error = stanza_error


class UsernameConflict(RegistrationFailed):
    default_text = 'The username is not available for registration'


class MissingRequiredRegistrationInfo(RegistrationFailed):
    default_text = 'Missing required registration information'


class LivenessError(BaseError):

    log_level = logging.WARNING
    default_text = 'Connection liveness check failed'

    def __init__(self, text: str | None = None) -> None:
        BaseError.__init__(self, is_fatal=True)
        self.text = text or self.default_text


class KeepaliveFailed(LivenessError):
    default_text = 'Keepalive write failed'


class PingFailed(LivenessError):
    default_text = 'Ping failed'


class InvalidJid(Exception):
    pass


class LocalpartByteLimit(InvalidJid):
    def __init__(self):
        InvalidJid.__init__(self, 'Localpart must be between 1 and 1023 bytes')


class LocalpartNotAllowedChar(InvalidJid):
    def __init__(self):
        InvalidJid.__init__(self, 'Not allowed character in localpart')


class ResourcepartByteLimit(InvalidJid):
    def __init__(self):
        InvalidJid.__init__(self,
                            'Resourcepart must be between 1 and 1023 bytes')


class ResourcepartNotAllowedChar(InvalidJid):
    def __init__(self):
        InvalidJid.__init__(self, 'Not allowed character in resourcepart')


class DomainpartByteLimit(InvalidJid):
    def __init__(self):
        InvalidJid.__init__(self, 'Domainpart must be between 1 and 1023 bytes')


class DomainpartNotAllowedChar(InvalidJid):
    def __init__(self):
        InvalidJid.__init__(self, 'Not allowed character in domainpart')


class InvalidIdentity(InvalidJid):
    def __init__(self, identity: str):
        InvalidJid.__init__(
            self, 'Identity must have the form local@domain: %s' % identity)
        self.identity = identity


class StanzaMalformed(Exception):
    pass


class WrongFieldValue(Exception):
    pass


class RemoteStreamError(BaseError):

    log_level = logging.WARNING

    def __init__(self, condition: str | None, text: str | None = None) -> None:
        BaseError.__init__(self, is_fatal=True)
        self.condition = condition
        self.description = text
        self.text = 'Stream error: %s' % condition
        if text:
            self.text = '%s - %s' % (self.text, text)
