# This file is part of xmppdial.
#
# SPDX-License-Identifier: GPL-3.0-or-later

from __future__ import annotations

from typing import Iterator
from typing import Optional
from typing import Union
from typing import cast

from lxml import etree

from xmppdial.const import IqType
from xmppdial.errors import StanzaError
from xmppdial.jid import JID
from xmppdial.namespaces import Namespace


NSMap = dict[Optional[str], str]


def create_nsmap_and_tag(tag: str,
                         namespace: Optional[str]) -> tuple[str, Optional[NSMap]]:
    nsmap: Optional[NSMap] = None
    if namespace is not None:
        nsmap = {None: namespace}
        tag = '{%s}%s' % (namespace, tag)
    return tag, nsmap


class Base(etree.ElementBase):

    def find_tag(self,
                 tag: str,
                 namespace: Optional[str] = None) -> Optional[Base]:

        if namespace is None:
            namespace = etree.QName(self).namespace
        return self.find('{%s}%s' % (namespace, tag))

    def find_tag_text(self,
                      tag: str,
                      namespace: Optional[str] = None) -> Optional[str]:

        element = self.find_tag(tag, namespace=namespace)
        if element is None:
            return element
        return element.text

    def add_tag(self,
                tag: str,
                namespace: Optional[str] = None,
                **attrib: str) -> Base:

        if namespace is None:
            namespace = etree.QName(self).namespace

        tag, nsmap = create_nsmap_and_tag(tag, namespace)

        element = etree.SubElement(self, tag, nsmap=nsmap, attrib=attrib)
        return element

    def add_tag_text(self,
                     tag: str,
                     text: str,
                     namespace: Optional[str] = None) -> Base:

        element = self.find_tag(tag, namespace=namespace)
        if element is None:
            element = self.add_tag(tag, namespace=namespace)
        element.text = text
        return element

    def find_tags(self,
                  tag: str,
                  namespace: Optional[str] = None) -> list[Base]:
        return list(self.iter_tags(tag, namespace=namespace))

    def remove_tags(self,
                    tag: str,
                    namespace: Optional[str] = None) -> None:
        for element in self.find_tags(tag, namespace=namespace):
            self.remove(element)

    def iter_tags(self,
                  tag: str,
                  namespace: Optional[str] = None) -> Iterator[Base]:
        if namespace is None:
            namespace = etree.QName(self).namespace
        return self.iterchildren('{%s}%s' % (namespace, tag))

    @property
    def lang(self) -> Optional[str]:
        return self.get(f'{{{Namespace.XML}}}lang')

    @property
    def localname(self) -> str:
        return etree.QName(self).localname

    @property
    def namespace(self) -> Optional[str]:
        return etree.QName(self).namespace

    @property
    def default_namespace(self) -> Optional[str]:
        return self.nsmap.get(None)

    def tostring(self, pretty_print: bool = False) -> str:
        if pretty_print:
            etree.indent(self, space=8*' ')
        return etree.tostring(self, pretty_print=pretty_print).decode()

    def __str__(self) -> str:
        return self.tostring()

    def __repr__(self) -> str:
        repr_str = super().__repr__()
        return repr_str.replace('<Element', f'<{self.__class__.__name__}')


class Stanza(Base):

    @property
    def id(self) -> Optional[str]:
        return self.get('id')

    def set_from(self, jid: Union[str, JID]):
        self.set('from', str(jid))

    def set_to(self, jid: Union[str, JID]):
        self.set('to', str(jid))


class Iq(Stanza):

    @property
    def type(self) -> IqType:
        return IqType(self.get('type'))

    @property
    def is_result(self) -> bool:
        return self.get('type') == 'result'

    @property
    def is_error(self) -> bool:
        return self.get('type') == 'error'

    def get_query(self, namespace: str) -> Optional[Base]:
        return self.find_tag('query', namespace=namespace)

    def get_error(self) -> StanzaError:
        return StanzaError(self)

    def make_result(self) -> Iq:
        iq = cast(Iq, self.makeelement(self.tag, nsmap=self.nsmap))
        iq.set('type', 'result')
        if self.id is not None:
            iq.set('id', self.id)
        sender = self.get('from')
        if sender is not None:
            iq.set('to', sender)
        return iq


class Nonza(Base):
    pass


class StreamStart(Base):
    TAG = 'stream'
    NAMESPACE = Namespace.STREAMS

    def tostring(self, pretty_print: bool = False) -> str:
        data = etree.tostring(self, pretty_print=False, encoding=str)
        return '<?xml version="1.0"?>' + data[:-2] + '>'


class StreamEnd(Base):
    TAG = 'stream'
    NAMESPACE = Namespace.STREAMS

    def tostring(self, pretty_print: bool = False) -> str:
        return '</stream:stream>'
