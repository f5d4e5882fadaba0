# This file is part of xmppdial.
#
# SPDX-License-Identifier: GPL-3.0-or-later

from __future__ import annotations

from typing import BinaryIO
from typing import Callable
from typing import Optional
from typing import Union

import logging
import select
import socket
import threading

from xmppdial.const import TCPState
from xmppdial.errors import ConnectionClosed
from xmppdial.util import LogAdapter
from xmppdial.util import Observable
from xmppdial.util import utf8_decode

log = logging.getLogger('xmppdial.transport')

READ_SIZE = 8192


class Transport(Observable):
    '''
    Byte stream shared by the handshake, the read loop and the liveness tasks

    The socket lives in a single slot so STARTTLS can swap it for the
    encrypted one. Writes are serialized, there must only ever be one reader.

    Signals
        data-sent
        data-received
        disconnected
    '''

    def __init__(self,
                 sock: socket.socket,
                 in_log: Optional[BinaryIO] = None,
                 out_log: Optional[BinaryIO] = None,
                 log_context: Optional[str] = None) -> None:

        self._log = LogAdapter(log, {'context': log_context or ''})
        Observable.__init__(self, self._log)

        self._sock = sock
        self._in_log = in_log
        self._out_log = out_log
        self._write_lock = threading.Lock()
        self._read_buffer = b''
        self._state = TCPState.CONNECTED

    @property
    def sock(self) -> socket.socket:
        return self._sock

    @property
    def state(self) -> TCPState:
        return self._state

    @property
    def is_closed(self) -> bool:
        return self._state != TCPState.CONNECTED

    def swap(self, upgrade: Callable[[socket.socket], socket.socket]) -> None:
        with self._write_lock:
            self._check_state()
            self._sock = upgrade(self._sock)
            self._read_buffer = b''
        self._log.info('Transport replaced')

    def set_timeout(self, timeout: Optional[float]) -> None:
        self._sock.settimeout(timeout)

    def read(self) -> Optional[str]:
        '''
        Blocks until data arrives, returns None when the peer closed
        the connection
        '''
        while True:
            try:
                data = self._sock.recv(READ_SIZE)
            except OSError:
                if self.is_closed:
                    return None
                raise

            if not data:
                self._log.info('Connection closed by remote')
                return None

            if self._in_log is not None:
                self._in_log.write(data)

            self._read_buffer += data
            decoded, self._read_buffer = utf8_decode(self._read_buffer)
            if not decoded:
                continue

            self._log_stanza(decoded, received=True)
            self.notify('data-received', decoded)
            return decoded

    def write(self,
              data: Union[str, bytes],
              timeout: Optional[float] = None,
              sensitive: bool = False) -> None:
        '''
        sensitive data is neither written to the out log nor to the logger
        '''

        if isinstance(data, str):
            data = data.encode()

        if timeout is None:
            acquired = self._write_lock.acquire()
        else:
            acquired = self._write_lock.acquire(timeout=timeout)

        if not acquired:
            raise TimeoutError('Timeout while waiting for pending write')

        try:
            self._check_state()
            if timeout is not None:
                self._wait_writable(timeout)
            self._sock.sendall(data)
            if self._out_log is not None and not sensitive:
                self._out_log.write(data)
        finally:
            self._write_lock.release()

        if sensitive:
            self._log_stanza('<sensitive data>', received=False)
        else:
            self._log_stanza(data.decode(), received=False)
        self.notify('data-sent', data)

    def _wait_writable(self, timeout: float) -> None:
        _, writable, _ = select.select([], [self._sock], [], timeout)
        if not writable:
            raise TimeoutError('Timeout while waiting for socket to be writable')

    def _check_state(self) -> None:
        if self.is_closed:
            raise ConnectionClosed('Transport is closed')

    def _log_stanza(self, data: str, received: bool = True) -> None:
        direction = 'RECEIVED' if received else 'SENT'
        message = '::::: DATA %s ::::\n\n%s\n'
        self._log.info(message, direction, data)

    def close(self) -> None:
        if self.is_closed:
            return

        self._state = TCPState.DISCONNECTING
        self._log.info('Close transport')
        try:
            self._sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass

        try:
            self._sock.close()
        finally:
            self._state = TCPState.DISCONNECTED
            self.notify('disconnected')
            self.remove_subscriptions()
