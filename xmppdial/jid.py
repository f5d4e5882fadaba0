# This file is part of xmppdial.
#
# SPDX-License-Identifier: GPL-3.0-or-later

from __future__ import annotations

from typing import Optional
from typing import cast

import functools
import ipaddress
from dataclasses import dataclass

import idna
from precis_i18n import get_profile

from xmppdial.errors import DomainpartByteLimit
from xmppdial.errors import DomainpartNotAllowedChar
from xmppdial.errors import InvalidIdentity
from xmppdial.errors import LocalpartByteLimit
from xmppdial.errors import LocalpartNotAllowedChar
from xmppdial.errors import ResourcepartByteLimit
from xmppdial.errors import ResourcepartNotAllowedChar


_localpart_disallowed_chars = set('"&\'/:<>@')


def is_ip_address(address: str) -> bool:
    try:
        ipaddress.ip_address(address)
    except ValueError:
        return False
    return True


@functools.lru_cache(maxsize=None)
def validate_localpart(localpart: str) -> str:
    if not localpart or len(localpart.encode()) > 1023:
        raise LocalpartByteLimit

    if _localpart_disallowed_chars & set(localpart):
        raise LocalpartNotAllowedChar

    try:
        username = get_profile('UsernameCaseMapped')
        return username.enforce(localpart)
    except Exception:
        raise LocalpartNotAllowedChar


@functools.lru_cache(maxsize=None)
def validate_resourcepart(resourcepart: str) -> str:
    if not resourcepart or len(resourcepart.encode()) > 1023:
        raise ResourcepartByteLimit

    try:
        opaque = get_profile('OpaqueString')
        return opaque.enforce(resourcepart)
    except Exception:
        raise ResourcepartNotAllowedChar


@functools.lru_cache(maxsize=None)
def validate_domainpart(domainpart: str) -> str:
    if not domainpart:
        raise DomainpartByteLimit

    ip_address = domainpart.strip('[]')
    if is_ip_address(ip_address):
        return ip_address

    length = len(domainpart.encode())
    if length == 0 or length > 1023:
        raise DomainpartByteLimit

    if domainpart.endswith('.'):  # RFC7622, 3.2
        domainpart = domainpart[:-1]

    try:
        idna_encode(domainpart)
    except Exception:
        raise DomainpartNotAllowedChar

    return domainpart


@functools.lru_cache(maxsize=None)
def idna_encode(domain: str) -> str:
    return idna.encode(domain, uts46=True).decode()


@dataclass(frozen=True)
class JID:
    localpart: Optional[str] = None
    domain: Optional[str] = None
    resource: Optional[str] = None

    def __init__(self,
                 localpart: Optional[str] = None,
                 domain: Optional[str] = None,
                 resource: Optional[str] = None):

        if localpart is not None:
            localpart = validate_localpart(localpart)
            object.__setattr__(self, 'localpart', localpart)

        domain = validate_domainpart(domain)
        object.__setattr__(self, 'domain', domain)

        if resource is not None:
            resource = validate_resourcepart(resource)
            object.__setattr__(self, 'resource', resource)

    @classmethod
    @functools.lru_cache(maxsize=None)
    def from_string(cls, jid_string: str) -> JID:
        # https://tools.ietf.org/html/rfc7622#section-3.2

        if jid_string.find('/') != -1:
            rest, resourcepart = jid_string.split('/', 1)
        else:
            rest, resourcepart = jid_string, None

        if rest.find('@') != -1:
            localpart, domainpart = rest.split('@', 1)
        else:
            localpart, domainpart = None, rest

        return cls(localpart=localpart,
                   domain=domainpart,
                   resource=resourcepart)

    def __str__(self) -> str:
        if self.localpart:
            jid = f'{self.localpart}@{self.domain}'
        else:
            jid = cast(str, self.domain)

        if self.resource is not None:
            return f'{jid}/{self.resource}'
        return jid

    def __hash__(self):
        return hash(str(self))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, JID):
            return NotImplemented

        return (self.localpart == other.localpart and
                self.domain == other.domain and
                self.resource == other.resource)

    @property
    def bare(self) -> Optional[str]:
        if self.localpart is not None:
            return f'{self.localpart}@{self.domain}'
        return self.domain

    @property
    def is_full(self) -> bool:
        return (self.localpart is not None and
                self.domain is not None and
                self.resource is not None)


def parse_identity(identity: str) -> JID:
    '''
    Parse a bare local@domain account address

    Exactly one '@' is allowed, the result never carries a resource
    '''
    if identity.count('@') != 1 or '/' in identity:
        raise InvalidIdentity(identity)

    localpart, domain = identity.split('@')
    try:
        return JID(localpart=localpart, domain=domain)
    except Exception as error:
        raise InvalidIdentity(identity) from error
