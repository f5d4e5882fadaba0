import queue
import threading
import time
import unittest
from unittest.mock import Mock
from unittest.mock import patch

from test.lib.client import TestConnection
from test.lib.client import full_flow
from test.lib.client import make_config

from xmppdial.dialer import connect
from xmppdial.errors import ConnectionClosed
from xmppdial.errors import KeepaliveFailed
from xmppdial.errors import PingFailed
from xmppdial.jid import JID
from xmppdial.liveness import LivenessMonitor
from xmppdial.session import Session


PING = 'urn:xmpp:ping'

PONG = '<iq xmlns="jabber:client" type="result" id="%s" from="example.com"/>'

PING_ERROR = '''<iq xmlns="jabber:client" type="error" id="%s" from="example.com">
  <error type="cancel">
    <service-unavailable xmlns="urn:ietf:params:xml:ns:xmpp-stanzas"/>
  </error>
</iq>'''


def wait_for_failure(session, error_class, timeout=5):
    deadline = time.monotonic() + timeout
    while True:
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            return None
        try:
            error = session.failures.get(timeout=remaining)
        except queue.Empty:
            return None
        if isinstance(error, error_class):
            return error


class Liveness(unittest.TestCase):

    def setUp(self):
        self.connection = TestConnection(full_flow())
        self.session = None

    def tearDown(self):
        if self.session is not None:
            self.session.close()
        self.connection.close()

    def _connect(self, **kwargs):
        self.session = connect(make_config(self.connection, **kwargs))
        return self.session

    def _ping_in_thread(self, monitor):
        result = []
        thread = threading.Thread(target=lambda: result.append(monitor.ping()),
                                  daemon=True)
        thread.start()
        return thread, result

    def test_started_after_bind(self):
        session = self._connect()

        self.assertIsNotNone(session.liveness)
        self.assertEqual(len(session.liveness.threads), 2)
        self.assertTrue(all(thread.is_alive()
                            for thread in session.liveness.threads))

    def test_requires_bound_session(self):
        config = make_config()
        session = Session(Mock(), config, JID.from_string('alice@example.com'))

        with self.assertRaises(RuntimeError):
            LivenessMonitor(session)

    def test_ping_from_bound_jid(self):
        session = self._connect()
        thread, result = self._ping_in_thread(session.liveness)

        self.assertTrue(self.connection.wait_for(PING))
        data = [data for data in self.connection.received if PING in data][-1]
        self.assertIn('from="alice@example.com/4db2a1"', data)
        self.assertIn('to="example.com"', data)

        self.connection.push(PONG % self.connection.last_id(PING))
        thread.join(5)
        self.assertEqual(result, [None])
        self.assertTrue(session.failures.empty())

    def test_ping_error_reply_is_alive(self):
        session = self._connect()
        thread, result = self._ping_in_thread(session.liveness)

        self.assertTrue(self.connection.wait_for(PING))
        self.connection.push(PING_ERROR % self.connection.last_id(PING))
        thread.join(5)
        self.assertEqual(result, [None])

    def test_ping_timeout(self):
        session = self._connect(ping_timeout=0.2)

        error = session.liveness.ping()
        self.assertIsInstance(error, PingFailed)

    def test_transport_closed_during_ping(self):
        session = self._connect(ping_timeout=30)
        thread, result = self._ping_in_thread(session.liveness)

        self.assertTrue(self.connection.wait_for(PING))
        session.transport.close()

        thread.join(5)
        self.assertFalse(thread.is_alive())
        self.assertEqual(len(result), 1)
        self.assertIsInstance(result[0], PingFailed)

    def test_ping_loop_reports_failure(self):
        session = self._connect(ping_interval=0.1, ping_timeout=30)

        self.assertTrue(self.connection.wait_for(PING))
        session.transport.close()

        self.assertIsInstance(wait_for_failure(session, PingFailed), PingFailed)
        self.assertTrue(session.wait_closed(5))

    def test_ping_loop_timeout(self):
        session = self._connect(ping_interval=0.1, ping_timeout=0.2)

        self.assertIsInstance(wait_for_failure(session, PingFailed), PingFailed)
        self.assertTrue(session.wait_closed(5))

    def test_keepalive(self):
        session = self._connect(keepalive_interval=0.1)

        self.assertTrue(self.connection.wait_for(' ', exact=True))
        self.assertTrue(session.failures.empty())
        self.assertFalse(session.is_closed)

    def test_keepalive_failure(self):
        session = self._connect(keepalive_interval=0.1)

        with patch.object(session.transport, 'write',
                          side_effect=OSError('write stalled')):
            error = wait_for_failure(session, KeepaliveFailed)

        self.assertIsInstance(error, KeepaliveFailed)
        self.assertTrue(session.wait_closed(5))

    def test_keepalive_after_close(self):
        session = self._connect()
        session.close()

        self.assertIsNone(session.liveness.send_keepalive())

    def test_ping_after_close(self):
        session = self._connect(ping_timeout=30)
        failures = []
        session.subscribe('connection-failed',
                          lambda _session, _signal, error: failures.append(error))
        thread, result = self._ping_in_thread(session.liveness)

        self.assertTrue(self.connection.wait_for(PING))
        session.close()

        thread.join(5)
        self.assertFalse(thread.is_alive())
        self.assertEqual(result, [None])
        self.assertFalse(session.has_failed)
        self.assertTrue(session.failures.empty())
        self.assertEqual(failures, [])

    def test_disconnected_signal(self):
        session = self._connect()
        events = []
        disconnected = threading.Event()

        def _on_disconnected(_session, signal_name):
            events.append(signal_name)
            disconnected.set()

        session.subscribe('disconnected', _on_disconnected)
        session.subscribe('connection-failed',
                          lambda _session, _signal, error: events.append(error))

        self.connection.shutdown()
        self.assertTrue(disconnected.wait(5))

        self.assertIsInstance(events[0], ConnectionClosed)
        self.assertEqual(events[-1], 'disconnected')


if __name__ == '__main__':
    unittest.main()
