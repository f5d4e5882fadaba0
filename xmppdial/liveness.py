# This file is part of xmppdial.
#
# SPDX-License-Identifier: GPL-3.0-or-later

from __future__ import annotations

from typing import Optional
from typing import TYPE_CHECKING

import logging
import threading
from concurrent.futures import TimeoutError as FutureTimeoutError

from xmppdial.builder import PingRequest
from xmppdial.errors import BaseError
from xmppdial.errors import KeepaliveFailed
from xmppdial.errors import PingFailed
from xmppdial.util import LogAdapter
from xmppdial.util import generate_id

if TYPE_CHECKING:
    from xmppdial.session import Session

log = logging.getLogger('xmppdial.liveness')


class LivenessMonitor:
    '''
    Keepalive and ping threads of a bound session

    Failures are reported through Session.report_failure() and close the
    session, both threads exit once the session is closed.
    '''

    def __init__(self, session: Session) -> None:
        if session.jid is None:
            raise RuntimeError('Liveness checks need a bound session')

        self._session = session
        self._config = session.config
        self._log = LogAdapter(log, {'context': self._config.log_context or ''})
        self._threads: list[threading.Thread] = []

    @property
    def threads(self) -> list[threading.Thread]:
        return self._threads

    def start(self) -> None:
        self._log.info('Start keepalive (%ss) and ping (%ss)',
                       self._config.keepalive_interval,
                       self._config.ping_interval)

        for name, target in (('keepalive', self._keepalive_loop),
                             ('ping', self._ping_loop)):
            thread = threading.Thread(target=target,
                                      name='xmppdial-%s' % name,
                                      daemon=True)
            self._threads.append(thread)
            thread.start()

    def _fail(self, error: BaseError) -> None:
        self._session.report_failure(error)
        self._session.close()

    def _keepalive_loop(self) -> None:
        while not self._session.wait_closed(self._config.keepalive_interval):
            error = self.send_keepalive()
            if error is not None:
                self._fail(error)
                return

    def send_keepalive(self) -> Optional[KeepaliveFailed]:
        self._log.info('Send keepalive')
        try:
            self._session.transport.write(
                b' ', timeout=self._config.keepalive_timeout)
        except (OSError, BaseError) as error:
            if self._session.is_closed:
                return None
            return KeepaliveFailed('Keepalive write failed: %s' % error)
        return None

    def _ping_loop(self) -> None:
        while not self._session.wait_closed(self._config.ping_interval):
            error = self.ping()
            if error is not None:
                self._fail(error)
                return

    def ping(self) -> Optional[PingFailed]:
        '''
        Sends a ping from the bound JID to the server and waits for the
        reply, any reply counts as proof of life
        '''
        iq = PingRequest(self._session.bound_jid,
                         self._session.domain,
                         id=generate_id())

        self._log.info('Send ping')
        try:
            future = self._session.send_request(
                iq, timeout=self._config.ping_timeout)
            response = future.result(timeout=self._config.ping_timeout)

        except FutureTimeoutError:
            self._session.discard_request(iq.id)
            self._log.info('Ping timeout')
            return PingFailed('No ping reply within %ss'
                              % self._config.ping_timeout)

        except (OSError, BaseError) as error:
            if self._session.is_closed and not self._session.has_failed:
                self._log.info('Ping cancelled, session closed')
                return None
            return PingFailed('Ping failed: %s' % error)

        if response.is_error:
            self._log.info('Ping error reply: %s', response.get_error())
        else:
            self._log.info('Pong received')
        return None
