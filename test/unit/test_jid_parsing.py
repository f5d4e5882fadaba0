import unittest

from xmppdial.errors import DomainpartByteLimit
from xmppdial.errors import DomainpartNotAllowedChar
from xmppdial.errors import InvalidIdentity
from xmppdial.errors import InvalidJid
from xmppdial.errors import LocalpartByteLimit
from xmppdial.errors import LocalpartNotAllowedChar
from xmppdial.errors import ResourcepartByteLimit
from xmppdial.errors import ResourcepartNotAllowedChar
from xmppdial.jid import JID
from xmppdial.jid import parse_identity
from xmppdial.jid import validate_resourcepart


class JIDParsing(unittest.TestCase):

    def test_valid_jids(self):
        tests = [
            'juliet@example.com',
            'juliet@example.com/foo',
            'juliet@example.com/foo bar',
            'juliet@example.com/foo@bar',
            'fussball@example.com',
            'fu\U000000DFball@example.com',
            '\U000003C0@example.com',
            '\U000003A3@example.com/foo',
            'king@example.com/\U0000265A',
            'example.com',
            'example.com/foobar',
            'a.example.com/b@example.net',
        ]

        for jid in tests:
            JID.from_string(jid)

    def test_invalid_jids(self):
        tests = [
            ('"juliet"@example.com', LocalpartNotAllowedChar),
            ('foo bar@example.com', LocalpartNotAllowedChar),
            ('@example.com', LocalpartByteLimit),
            ('user@example.com/', ResourcepartByteLimit),
            ('user@example.com/\U00000001', ResourcepartNotAllowedChar),
            ('user@host@example.com', DomainpartNotAllowedChar),
            ('juliet@', DomainpartByteLimit),
            ('/foobar', DomainpartByteLimit),
        ]

        for jid, exception in tests:
            with self.assertRaises(exception):
                JID.from_string(jid)

    def test_resources(self):
        for res in ('res\U0001F454', 'phone'):
            validate_resourcepart(res)

        with self.assertRaises(ResourcepartNotAllowedChar):
            validate_resourcepart('res\U00000007')

    def test_ip_literals(self):
        tests = [
            'juliet@[2002:4559:1FE2::4559:1FE2]/res',
            'juliet@123.123.123.123/res',
        ]

        for jid in tests:
            JID.from_string(jid)

    def test_jid_equality(self):
        tests = [
            'juliet@example.com',
            'juliet@example.com/foo',
            'example.com',
        ]

        for jid in tests:
            self.assertEqual(JID.from_string(jid), JID.from_string(jid))

        self.assertNotEqual(JID.from_string('juliet@example.com'), 'juliet@example.com')

    def test_bare(self):
        jid = JID.from_string('juliet@example.com/balcony')
        self.assertTrue(jid.is_full)
        self.assertEqual(jid.bare, 'juliet@example.com')


class IdentityParsing(unittest.TestCase):

    def test_valid_identity(self):
        identity = parse_identity('alice@example.com')
        self.assertEqual(identity.localpart, 'alice')
        self.assertEqual(identity.domain, 'example.com')
        self.assertIsNone(identity.resource)

    def test_invalid_identity(self):
        tests = [
            'example.com',
            'alice@bob@example.com',
            'alice@example.com/phone',
            '@example.com',
            'alice@',
            '',
        ]

        for identity in tests:
            with self.assertRaises(InvalidIdentity) as cm:
                parse_identity(identity)

            self.assertIsInstance(cm.exception, InvalidJid)
            self.assertEqual(cm.exception.identity, identity)


if __name__ == '__main__':
    unittest.main()
