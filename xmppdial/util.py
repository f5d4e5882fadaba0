# Copyright (C) 2018 Philipp Hörist <philipp AT hoerist.com>
#
# This file is part of xmppdial.
#
# SPDX-License-Identifier: GPL-3.0-or-later

from __future__ import annotations

from typing import Any
from typing import Callable
from typing import Iterator
from typing import TYPE_CHECKING

import base64
import logging
import threading
import uuid
from collections import defaultdict
from contextlib import contextmanager
from logging import LoggerAdapter

from lxml import etree

from xmppdial.const import Stage
from xmppdial.errors import ConnectionClosed
from xmppdial.errors import DecodeError
from xmppdial.errors import NegotiationError
from xmppdial.errors import RemoteStreamError
from xmppdial.errors import StanzaMalformed
from xmppdial.errors import StepTimeout
from xmppdial.errors import StreamErrorReceived
from xmppdial.namespaces import Namespace

if TYPE_CHECKING:
    from xmppdial.elements import Base


log = logging.getLogger('xmppdial.util')


def b64decode(data: str | bytes) -> bytes:
    if not data:
        raise ValueError('No data to decode')

    if isinstance(data, str):
        data = data.encode()

    return base64.b64decode(data)


def b64encode(data: str | bytes) -> str:
    if not data:
        raise ValueError('No data to encode')

    if isinstance(data, str):
        data = data.encode()

    result = base64.b64encode(data)
    return result.decode()


def generate_id() -> str:
    return str(uuid.uuid4())


def validate_stream_header(stanza: Base, domain: str) -> str:
    if stanza.get('from') != domain:
        raise StanzaMalformed('Invalid from attr in stream header')

    if stanza.namespace != Namespace.STREAMS:
        raise StanzaMalformed('Invalid stream namespace in stream header')

    if stanza.default_namespace != Namespace.CLIENT:
        raise StanzaMalformed('Invalid namespace in stream header')

    if stanza.get('version') != '1.0':
        raise StanzaMalformed('Invalid stream version in stream header')

    stream_id = stanza.get('id')
    if stream_id is None:
        raise StanzaMalformed('No stream id found in stream header')
    return stream_id


def utf8_decode(data: bytes) -> tuple[str, bytes]:
    '''
    Decodes utf8 byte string to unicode string
    Does handle incomplete utf8 sequences by splitting
    the incomplete sequence at the end

    returns (decoded unicode string, incomplete byte sequence)
    '''
    try:
        return data.decode(), b''
    except UnicodeDecodeError:
        for i in range(1, min(4, len(data)) + 1):
            char = data[-i]
            if char & 0xc0 == 0x80:
                continue

            if char & 0xe0 == 0xc0:
                expected = 2
            elif char & 0xf0 == 0xe0:
                expected = 3
            elif char & 0xf8 == 0xf0:
                expected = 4
            else:
                break

            if i < expected:
                return data[:-i].decode(), data[-i:]
            break
        raise


class Observable:
    def __init__(self, log_: logging.Logger | LoggerAdapter):
        self._log = log_
        self._callbacks_lock = threading.Lock()
        self._callbacks: defaultdict[str, list[Callable[..., Any]]] = defaultdict(list)

    def remove_subscriptions(self):
        with self._callbacks_lock:
            self._callbacks = defaultdict(list)

    def subscribe(self, signal_name: str, func: Callable[..., Any]):
        with self._callbacks_lock:
            self._callbacks[signal_name].append(func)

    def notify(self, signal_name: str, *args: Any, **kwargs: Any):
        self._log.info('Signal: %s', signal_name)
        with self._callbacks_lock:
            callbacks = list(self._callbacks.get(signal_name, []))

        for func in callbacks:
            try:
                func(self, signal_name, *args, **kwargs)
            except Exception:
                self._log.exception('Error in %s callback', signal_name)


class LogAdapter(LoggerAdapter):

    def process(self, msg, kwargs):
        return '(%s) %s' % (self.extra['context'], msg), kwargs


@contextmanager
def negotiation_step(stage: Stage) -> Iterator[None]:
    '''
    Converts low level failures inside a negotiation step into errors
    tagged with the step, network errors pass unchanged
    '''
    try:
        yield

    except NegotiationError:
        raise

    except RemoteStreamError as error:
        raise StreamErrorReceived(stage,
                                  error.condition,
                                  error.description) from error

    except TimeoutError as error:
        raise StepTimeout(stage) from error

    except (ConnectionClosed,
            StanzaMalformed,
            UnicodeDecodeError,
            etree.XMLSyntaxError) as error:
        raise DecodeError(stage, str(error)) from error
