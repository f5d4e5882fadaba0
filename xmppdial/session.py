# This file is part of xmppdial.
#
# SPDX-License-Identifier: GPL-3.0-or-later

from __future__ import annotations

from typing import Optional
from typing import TYPE_CHECKING
from typing import Union

import logging
import queue
import threading
from concurrent.futures import Future

from xmppdial.builder import Iq
from xmppdial.const import RegistrationState
from xmppdial.const import Stage
from xmppdial.elements import Base
from xmppdial.elements import Iq as IqElement
from xmppdial.errors import BaseError
from xmppdial.errors import ConnectionClosed
from xmppdial.features import Features
from xmppdial.jid import JID
from xmppdial.namespaces import Namespace
from xmppdial.register import cancel_registration
from xmppdial.stream import XMLStream
from xmppdial.structs import DialConfig
from xmppdial.transport import Transport
from xmppdial.util import LogAdapter
from xmppdial.util import Observable
from xmppdial.util import generate_id

if TYPE_CHECKING:
    from xmppdial.liveness import LivenessMonitor

log = logging.getLogger('xmppdial.session')


class Session(Observable):
    '''
    A negotiated connection

    Signals
        stanza-received
        connection-failed
        disconnected
    '''

    def __init__(self,
                 stream: XMLStream,
                 config: DialConfig,
                 identity: JID,
                 trusted: bool = False) -> None:

        self._log = LogAdapter(log, {'context': config.log_context or ''})
        Observable.__init__(self, self._log)

        self._stream = stream
        self._config = config
        self._identity = identity
        self._trusted = trusted
        self._jid: Optional[JID] = None
        self._bound_jid: Optional[str] = None

        self.features: Optional[Features] = None
        self.registration = RegistrationState.NOT_REQUESTED
        self.stages: list[Stage] = []
        self.liveness: Optional[LivenessMonitor] = None
        self.failures: queue.Queue[BaseError] = queue.Queue()

        self._waiters: dict[str, Future[IqElement]] = {}
        self._waiters_lock = threading.Lock()
        self._closed = threading.Event()
        self._failed = False
        self._reader: Optional[threading.Thread] = None

    @property
    def config(self) -> DialConfig:
        return self._config

    @property
    def identity(self) -> JID:
        return self._identity

    @property
    def domain(self) -> str:
        return self._identity.domain

    @property
    def trusted(self) -> bool:
        return self._trusted

    @property
    def jid(self) -> Optional[JID]:
        return self._jid

    @property
    def stream(self) -> XMLStream:
        return self._stream

    @property
    def transport(self) -> Transport:
        return self._stream.transport

    @property
    def is_closed(self) -> bool:
        return self._closed.is_set()

    @property
    def has_failed(self) -> bool:
        return self._failed

    @property
    def bound_jid(self) -> Optional[str]:
        '''
        The full JID exactly as the server returned it
        '''
        return self._bound_jid

    def set_bound_jid(self, jid: str) -> None:
        if self._bound_jid is not None:
            raise RuntimeError('Session is already bound to %s' % self._bound_jid)
        self._jid = JID.from_string(jid)
        self._bound_jid = jid
        self._log.info('Bound JID: %s', jid)

    def wait_closed(self, timeout: Optional[float] = None) -> bool:
        return self._closed.wait(timeout)

    def send_stanza(self,
                    stanza: Union[Base, str],
                    timeout: Optional[float] = None) -> None:
        self._stream.send(stanza, timeout=timeout)

    def send_iq(self,
                to: Optional[Union[str, JID]],
                type: str,
                payload: Optional[Base] = None,
                timeout: Optional[float] = None) -> tuple[Future[IqElement], str]:
        '''
        Sends an iq and returns a future for the reply and the stanza id
        which correlates both, the call never waits for the reply
        '''

        cookie = generate_id()
        iq = Iq(to=to, type=type, id=cookie)
        if payload is not None:
            iq.append(payload)

        return self.send_request(iq, timeout=timeout), cookie

    def send_request(self,
                     iq: IqElement,
                     timeout: Optional[float] = None) -> Future[IqElement]:

        if iq.id is None:
            iq.set('id', generate_id())

        future: Future[IqElement] = Future()
        with self._waiters_lock:
            if self.is_closed:
                future.set_exception(ConnectionClosed())
                return future
            self._waiters[iq.id] = future

        try:
            self._stream.send(iq, timeout=timeout)
        except Exception:
            with self._waiters_lock:
                self._waiters.pop(iq.id, None)
            raise

        return future

    def discard_request(self, request_id: str) -> None:
        with self._waiters_lock:
            self._waiters.pop(request_id, None)

    def cancel_registration(self) -> tuple[Future[IqElement], str]:
        return cancel_registration(self)

    def start(self) -> None:
        self._reader = threading.Thread(target=self._read_loop,
                                        name='xmppdial-reader',
                                        daemon=True)
        self._reader.start()

    def _read_loop(self) -> None:
        try:
            self._stream.run_reader(self._dispatch)
        except ConnectionClosed as error:
            self._on_reader_finished(error)
        except Exception as error:
            if self.is_closed:
                self._on_reader_finished(ConnectionClosed())
                return
            self._log.warning('Read loop failed: %s', error)
            if isinstance(error, BaseError):
                self._on_reader_finished(error)
            else:
                self._on_reader_finished(ConnectionClosed(str(error)))

    def _on_reader_finished(self, error: BaseError) -> None:
        if not self.is_closed:
            self.report_failure(error)
        self.close()

    def _dispatch(self, element: Base) -> None:
        if isinstance(element, IqElement):
            if element.get('type') in ('result', 'error'):
                with self._waiters_lock:
                    future = self._waiters.pop(element.id, None)
                if future is not None:
                    future.set_result(element)
                    return

            elif element.find_tag('ping', namespace=Namespace.PING) is not None:
                self._answer_ping(element)
                return

        self.notify('stanza-received', element)

    def _answer_ping(self, iq: IqElement) -> None:
        if iq.get('type') != 'get':
            return
        self._log.info('Answer ping from %s', iq.get('from'))
        self._stream.send(iq.make_result())

    def report_failure(self, error: BaseError) -> None:
        self._log.log(getattr(error, 'log_level', logging.WARNING),
                      'Connection failure: %s', error)
        self._failed = True
        self.failures.put(error)
        self.notify('connection-failed', error)

    def close(self) -> None:
        with self._waiters_lock:
            if self.is_closed:
                return
            self._closed.set()
            waiters = self._waiters
            self._waiters = {}

        self._log.info('Close session')
        self._stream.close()

        for future in waiters.values():
            if not future.done():
                future.set_exception(ConnectionClosed())

        self.notify('disconnected')
