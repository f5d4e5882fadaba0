import unittest

from lxml import etree

from xmppdial.builder import E
from xmppdial.builder import Iq
from xmppdial.builder import PingRequest
from xmppdial.builder import StreamStart
from xmppdial.builder import UnregisterRequest
from xmppdial.builder import parse
from xmppdial.const import Stage
from xmppdial.elements import Base
from xmppdial.elements import Iq as IqElement
from xmppdial.errors import ConnectionClosed
from xmppdial.errors import DecodeError
from xmppdial.errors import RemoteStreamError
from xmppdial.errors import StanzaMalformed
from xmppdial.errors import StepTimeout
from xmppdial.errors import StreamErrorReceived
from xmppdial.features import Features
from xmppdial.stream_parser import TCPStreamParser
from xmppdial.util import negotiation_step
from xmppdial.util import validate_stream_header


build_lookup = etree.ElementDefaultClassLookup(element=Base)
build_parser = etree.XMLParser()
build_parser.set_element_class_lookup(build_lookup)

STREAM_HEADER = ('<stream:stream xmlns="jabber:client" '
                 'xmlns:stream="http://etherx.jabber.org/streams" '
                 'id="s1" version="1.0" from="example.com">')


class ElementTest(unittest.TestCase):

    def test_e_builder(self):
        parsed = etree.fromstring('<a xmlns="j:a"><b/><c xmlns="j:c"/></a>', build_parser)
        build = E('a', namespace='j:a')
        build.add_tag('b')
        build.add_tag('c', namespace='j:c')

        self.assertEqual(parsed.tag, build.tag)
        self.assertEqual(parsed.nsmap, build.nsmap)

        for x in range(2):
            self.assertEqual(parsed[x].tag, build[x].tag)
            self.assertEqual(parsed[x].nsmap, build[x].nsmap)

    def test_find_tag(self):
        element = etree.fromstring('<a xmlns="j:a"><b/><c xmlns="j:c"/></a>', build_parser)

        self.assertIsNotNone(element.find_tag('b'))
        self.assertIsNotNone(element.find_tag('b', namespace='j:a'))

        self.assertIsNone(element.find_tag('c'))
        self.assertIsNone(element.find_tag('c', namespace='j:a'))

    def test_add_tag_text(self):
        element = E('a', namespace='j:a')
        element.add_tag_text('b', 'test')
        self.assertEqual('<a xmlns="j:a"><b>test</b></a>', element.tostring())

        element = E('a', namespace='j:a')
        element.add_tag_text('b', '<&>', namespace='j:b')
        self.assertEqual('<a xmlns="j:a"><b xmlns="j:b">&lt;&amp;&gt;</b></a>',
                         element.tostring())

    def test_iq_builder(self):
        iq = Iq(type='set', id='1')
        self.assertIsInstance(iq, IqElement)
        self.assertIsNone(iq.get('to'))
        self.assertEqual(iq.tostring(),
                         '<iq xmlns="jabber:client" type="set" id="1"/>')

        with self.assertRaises(ValueError):
            Iq(type='subscribe')

    def test_unregister_request(self):
        iq = Iq(type='set', id='1')
        iq.append(UnregisterRequest())
        self.assertEqual(iq.tostring(),
                         '<iq xmlns="jabber:client" type="set" id="1">'
                         '<query xmlns="jabber:iq:register"><remove/></query>'
                         '</iq>')

    def test_ping_request(self):
        iq = PingRequest('alice@example.com/res', 'example.com', id='p1')
        self.assertEqual(iq.get('from'), 'alice@example.com/res')
        self.assertEqual(iq.get('to'), 'example.com')
        self.assertIsNotNone(iq.find_tag('ping', namespace='urn:xmpp:ping'))

    def test_make_result(self):
        iq = parse('<iq xmlns="jabber:client" type="get" id="x" from="example.com">'
                   '<ping xmlns="urn:xmpp:ping"/></iq>')
        result = iq.make_result()

        self.assertTrue(result.is_result)
        self.assertEqual(result.id, 'x')
        self.assertEqual(result.get('to'), 'example.com')
        self.assertEqual(len(result), 0)

    def test_stream_start(self):
        data = StreamStart('example.com', 'en').tostring()
        self.assertTrue(data.startswith('<?xml version="1.0"?><stream:stream'))
        self.assertTrue(data.endswith('>'))
        self.assertFalse(data.endswith('/>'))
        self.assertIn('to="example.com"', data)
        self.assertIn('version="1.0"', data)


class FeaturesTest(unittest.TestCase):

    def _features(self, children):
        parser = TCPStreamParser('test')
        elements = []
        parser.subscribe('element',
                         lambda _parser, _signal, element: elements.append(element))
        parser.feed(STREAM_HEADER + '<stream:features>%s</stream:features>'
                    % children)
        return elements[0]

    def test_features_class(self):
        features = self._features('')
        self.assertIsInstance(features, Features)
        self.assertEqual(features.has_starttls(), (False, False))
        self.assertFalse(features.session_required())
        self.assertFalse(features.has_register())
        self.assertEqual(features.get_mechs(), set())

    def test_starttls(self):
        features = self._features(
            '<starttls xmlns="urn:ietf:params:xml:ns:xmpp-tls"><required/></starttls>')
        self.assertEqual(features.has_starttls(), (True, True))

        features = self._features(
            '<starttls xmlns="urn:ietf:params:xml:ns:xmpp-tls"/>')
        self.assertEqual(features.has_starttls(), (True, False))

    def test_mechanisms(self):
        features = self._features(
            '<mechanisms xmlns="urn:ietf:params:xml:ns:xmpp-sasl">'
            '<mechanism>PLAIN</mechanism>'
            '<mechanism>SCRAM-SHA-1</mechanism>'
            '</mechanisms>')
        self.assertTrue(features.has_sasl())
        self.assertEqual(features.get_mechs(), {'PLAIN', 'SCRAM-SHA-1'})

    def test_session(self):
        features = self._features(
            '<session xmlns="urn:ietf:params:xml:ns:xmpp-session"/>')
        self.assertTrue(features.session_required())

        features = self._features(
            '<session xmlns="urn:ietf:params:xml:ns:xmpp-session"><optional/></session>')
        self.assertFalse(features.session_required())

    def test_register_and_bind(self):
        features = self._features(
            '<register xmlns="http://jabber.org/features/iq-register"/>'
            '<bind xmlns="urn:ietf:params:xml:ns:xmpp-bind"/>')
        self.assertTrue(features.has_register())
        self.assertTrue(features.has_bind())


class StreamParserTest(unittest.TestCase):

    def test_stream_events(self):
        parser = TCPStreamParser('test')
        events = []
        for signal in ('stream-start', 'element', 'stream-end'):
            parser.subscribe(signal,
                             lambda _parser, signal, element: events.append(
                                 (signal, element.localname)))

        parser.feed(STREAM_HEADER + '<stream:features/>')
        parser.feed('<message><body>hi</body></message>')
        parser.feed('</stream:stream>')

        self.assertEqual(events, [('stream-start', 'stream'),
                                  ('element', 'features'),
                                  ('element', 'message'),
                                  ('stream-end', 'stream')])
        self.assertTrue(parser.is_destroyed)

    def test_split_data(self):
        parser = TCPStreamParser('test')
        elements = []
        parser.subscribe('element',
                         lambda _parser, _signal, element: elements.append(element))

        parser.feed(STREAM_HEADER + '<iq type="result" i')
        self.assertEqual(elements, [])
        parser.feed('d="1"/>')
        self.assertIsInstance(elements[0], IqElement)
        self.assertEqual(elements[0].id, '1')

    def test_stream_header(self):
        parser = TCPStreamParser('test')
        headers = []
        parser.subscribe('stream-start',
                         lambda _parser, _signal, element: headers.append(element))
        parser.feed(STREAM_HEADER)

        self.assertEqual(validate_stream_header(headers[0], 'example.com'), 's1')
        with self.assertRaises(StanzaMalformed):
            validate_stream_header(headers[0], 'other.com')


class NegotiationStepTest(unittest.TestCase):

    def test_network_error_unchanged(self):
        error = ConnectionResetError(104, 'Connection reset by peer')
        with self.assertRaises(ConnectionResetError) as context:
            with negotiation_step(Stage.BIND_RESOURCE):
                raise error
        self.assertIs(context.exception, error)

    def test_decode_error_has_stage(self):
        for error in (StanzaMalformed('bad'),
                      ConnectionClosed(),
                      UnicodeDecodeError('utf-8', b'\xff', 0, 1, 'invalid start byte')):
            with self.assertRaises(DecodeError) as context:
                with negotiation_step(Stage.AUTHENTICATE):
                    raise error

            self.assertEqual(context.exception.stage, Stage.AUTHENTICATE)
            self.assertIs(context.exception.__cause__, error)

    def test_timeout(self):
        with self.assertRaises(StepTimeout) as context:
            with negotiation_step(Stage.ENCRYPT):
                raise TimeoutError('timed out')
        self.assertEqual(context.exception.stage, Stage.ENCRYPT)

    def test_stream_error(self):
        with self.assertRaises(StreamErrorReceived) as context:
            with negotiation_step(Stage.STREAM_OPEN):
                raise RemoteStreamError('see-other-host', 'moved')

        self.assertEqual(context.exception.condition, 'see-other-host')
        self.assertEqual(context.exception.stage, Stage.STREAM_OPEN)


if __name__ == '__main__':
    unittest.main()
