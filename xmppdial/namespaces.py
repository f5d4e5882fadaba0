# This file is part of xmppdial.
#
# SPDX-License-Identifier: GPL-3.0-or-later

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class _Namespaces:
    BIND: str = 'urn:ietf:params:xml:ns:xmpp-bind'
    BOB: str = 'urn:xmpp:bob'
    CLIENT: str = 'jabber:client'
    DATA: str = 'jabber:x:data'
    DATA_MEDIA: str = 'urn:xmpp:media-element'
    PING: str = 'urn:xmpp:ping'
    REGISTER: str = 'jabber:iq:register'
    REGISTER_FEATURE: str = 'http://jabber.org/features/iq-register'
    SASL: str = 'urn:ietf:params:xml:ns:xmpp-sasl'
    SESSION: str = 'urn:ietf:params:xml:ns:xmpp-session'
    STANZAS: str = 'urn:ietf:params:xml:ns:xmpp-stanzas'
    STREAMS: str = 'http://etherx.jabber.org/streams'
    XMPP_STREAMS: str = 'urn:ietf:params:xml:ns:xmpp-streams'
    TLS: str = 'urn:ietf:params:xml:ns:xmpp-tls'
    XML: str = 'http://www.w3.org/XML/1998/namespace'
    X_OOB: str = 'jabber:x:oob'


Namespace = _Namespaces()
