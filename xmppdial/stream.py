# This file is part of xmppdial.
#
# SPDX-License-Identifier: GPL-3.0-or-later

from __future__ import annotations

from typing import Callable
from typing import Optional
from typing import Union

import logging
from collections import deque

from xmppdial.builder import StreamEnd
from xmppdial.builder import StreamStart
from xmppdial.elements import Base
from xmppdial.elements import Iq
from xmppdial.errors import BaseError
from xmppdial.errors import ConnectionClosed
from xmppdial.errors import RemoteStreamError
from xmppdial.errors import StanzaMalformed
from xmppdial.features import Features
from xmppdial.namespaces import Namespace
from xmppdial.stream_parser import TCPStreamParser
from xmppdial.transport import Transport
from xmppdial.util import LogAdapter
from xmppdial.util import validate_stream_header

log = logging.getLogger('xmppdial.stream')


class XMLStream:
    '''
    XML stream on top of a Transport

    During negotiation elements are pulled one at a time with read_element(),
    after that run_reader() pushes every element to a callback until the
    transport closes.
    '''

    def __init__(self,
                 transport: Transport,
                 domain: str,
                 lang: str = 'en',
                 log_context: Optional[str] = None) -> None:

        self._log = LogAdapter(log, {'context': log_context or ''})
        self._log_context = log_context or ''
        self._transport = transport
        self._domain = domain
        self._lang = lang

        self._parser: Optional[TCPStreamParser] = None
        self._pending: deque[Base] = deque()
        self._stream_header: Optional[Base] = None
        self._stream_id: Optional[str] = None
        self._stream_ended = False

    @property
    def transport(self) -> Transport:
        return self._transport

    @property
    def domain(self) -> str:
        return self._domain

    @property
    def stream_id(self) -> Optional[str]:
        return self._stream_id

    def reset_parser(self) -> None:
        if self._parser is not None and not self._parser.is_destroyed:
            self._parser.destroy()

        self._pending.clear()
        self._stream_header = None
        self._stream_ended = False

        self._parser = TCPStreamParser(self._log_context)
        self._parser.subscribe('stream-start', self._on_stream_start)
        self._parser.subscribe('element', self._on_element)
        self._parser.subscribe('stream-end', self._on_stream_end)

    def _on_stream_start(self, _parser, _signal_name, element: Base) -> None:
        self._stream_header = element

    def _on_element(self, _parser, _signal_name, element: Base) -> None:
        self._pending.append(element)

    def _on_stream_end(self, _parser, _signal_name, _element: Base) -> None:
        self._log.info('Stream end received')
        self._stream_ended = True

    def open(self) -> Features:
        '''
        Sends the stream header and returns the advertised features
        '''
        self.reset_parser()
        header = StreamStart(self._domain, self._lang)
        self.send(header)

        while self._stream_header is None:
            self._read_more()

        self._stream_id = validate_stream_header(self._stream_header,
                                                 self._domain)
        self._log.info('Stream opened, id: %s', self._stream_id)

        features = self.read_element()
        if not isinstance(features, Features):
            raise StanzaMalformed('Expected stream features, received: %s'
                                  % features.localname)
        return features

    def _read_more(self) -> None:
        if self._stream_ended:
            raise ConnectionClosed('Stream closed by remote')

        data = self._transport.read()
        if data is None:
            raise ConnectionClosed()

        self._parser.feed(data)

    def read_element(self) -> Base:
        while not self._pending:
            self._read_more()

        element = self._pending.popleft()
        self._check_stream_error(element)
        return element

    def _check_stream_error(self, element: Base) -> None:
        if element.namespace != Namespace.STREAMS:
            return
        if element.localname != 'error':
            return

        condition = None
        for child in element:
            if child.namespace != Namespace.XMPP_STREAMS:
                continue
            if child.localname == 'text':
                continue
            condition = child.localname
            break

        text = element.find_tag_text('text', namespace=Namespace.XMPP_STREAMS)
        raise RemoteStreamError(condition, text)

    def read_reply(self, request_id: str) -> Iq:
        element = self.read_element()
        if not isinstance(element, Iq):
            raise StanzaMalformed('Expected iq reply, received: %s'
                                  % element.localname)

        if element.id != request_id:
            raise StanzaMalformed('Unexpected reply id: %s, expected: %s'
                                  % (element.id, request_id))
        return element

    def run_reader(self, on_element: Callable[[Base], None]) -> None:
        '''
        Dispatches elements until the transport or the stream closes,
        the error that ended the loop is raised
        '''
        while True:
            while self._pending:
                element = self._pending.popleft()
                self._check_stream_error(element)
                on_element(element)
            self._read_more()

    def send(self,
             element: Union[Base, str, bytes],
             timeout: Optional[float] = None,
             sensitive: bool = False) -> None:

        if isinstance(element, Base):
            element = element.tostring()
        self._transport.write(element, timeout=timeout, sensitive=sensitive)

    def close(self) -> None:
        if self._transport.is_closed:
            return

        if not self._stream_ended:
            try:
                self.send(str(StreamEnd()), timeout=1)
            except (OSError, BaseError) as error:
                self._log.info('Unable to send stream end: %s', error)

        self._transport.close()
