# This file is part of xmppdial.
#
# SPDX-License-Identifier: GPL-3.0-or-later

from __future__ import annotations

from typing import Optional
from typing import Union
from typing import cast

from lxml import etree

from xmppdial.const import IqType
from xmppdial.elements import Base
from xmppdial.elements import Iq as _Iq
from xmppdial.elements import StreamStart as _StreamStart
from xmppdial.elements import StreamEnd as StreamEnd
from xmppdial.elements import create_nsmap_and_tag
from xmppdial.jid import JID
from xmppdial.lookups import ElementLookup
from xmppdial.namespaces import Namespace


_element_parser = etree.XMLParser(resolve_entities=False, no_network=True)
_element_parser.set_element_class_lookup(ElementLookup)


def E(tag: str,
      text: Optional[str] = None,
      namespace: Optional[str] = None,
      **attrib: str) -> Base:

    tag, nsmap = create_nsmap_and_tag(tag, namespace)

    element = cast(Base, _element_parser.makeelement(tag,
                                                     nsmap=nsmap,
                                                     attrib=attrib))
    if text is not None:
        element.text = text
    return element


def Iq(to: Optional[Union[str, JID]] = None,
       type: str = 'get',
       id: Optional[str] = None) -> _Iq:

    iq = cast(_Iq, E('iq', namespace=Namespace.CLIENT))

    IqType(type)
    iq.set('type', type)

    if to:
        if isinstance(to, str):
            to = JID.from_string(to)
        iq.set_to(str(to))

    if id is not None:
        iq.set('id', id)

    return iq


def StreamStart(domain: str, lang: str) -> Base:
    return _StreamStart(attrib={'version': '1.0',
                                'to': domain,
                                f'{{{Namespace.XML}}}lang': lang},
                        nsmap={'stream': Namespace.STREAMS,
                               None: Namespace.CLIENT})


def TLSRequest() -> Base:
    return E('starttls', namespace=Namespace.TLS)


def BindRequest(id: Optional[str] = None) -> _Iq:
    iq = Iq(type='set', id=id)
    iq.add_tag('bind', namespace=Namespace.BIND)
    return iq


def SessionRequest(domain: str, id: Optional[str] = None) -> _Iq:
    iq = Iq(to=domain, type='set', id=id)
    iq.add_tag('session', namespace=Namespace.SESSION)
    return iq


def PingRequest(jid: Union[str, JID],
                to: Union[str, JID],
                id: Optional[str] = None) -> _Iq:
    iq = Iq(to=to, type='get', id=id)
    iq.set_from(jid)
    iq.add_tag('ping', namespace=Namespace.PING)
    return iq


def RegisterQuery(type: str = 'get', id: Optional[str] = None) -> _Iq:
    iq = Iq(type=type, id=id)
    iq.add_tag('query', namespace=Namespace.REGISTER)
    return iq


def UnregisterRequest() -> Base:
    query = E('query', namespace=Namespace.REGISTER)
    query.add_tag('remove')
    return query


def parse(data: Union[str, bytes]) -> Base:
    return cast(Base, etree.fromstring(data, _element_parser))
