import base64
import hashlib
import unittest

from xmppdial.bits_of_binary import parse_all_bob_data
from xmppdial.bits_of_binary import parse_bob_data
from xmppdial.builder import parse


DATA = b'captcha image'
CID = 'sha1+%s@bob.xmpp.org' % hashlib.sha1(DATA).hexdigest()


def data_node(cid=CID, data=DATA, **attrs):
    attrs = ''.join(' %s="%s"' % item for item in attrs.items())
    return parse('<data xmlns="urn:xmpp:bob" cid="%s" type="image/png"%s>%s</data>'
                 % (cid, attrs, base64.b64encode(data).decode()))


class BitsOfBinary(unittest.TestCase):

    def test_valid(self):
        bob = parse_bob_data(data_node(**{'max-age': '86400'}))

        self.assertEqual(bob.algo, 'sha1')
        self.assertEqual(bob.cid, CID)
        self.assertEqual(bob.type, 'image/png')
        self.assertEqual(bob.max_age, 86400)
        self.assertEqual(bob.data, DATA)

    def test_hash_mismatch(self):
        self.assertIsNone(parse_bob_data(data_node(data=b'other image')))

    def test_invalid_cid(self):
        self.assertIsNone(parse_bob_data(data_node(cid='nohash@bob.xmpp.org')))
        self.assertIsNone(parse_bob_data(data_node(cid='md99+abc@bob.xmpp.org')))

    def test_invalid_max_age(self):
        self.assertIsNone(parse_bob_data(data_node(**{'max-age': 'soon'})))

    def test_parse_all(self):
        query = parse('<query xmlns="jabber:iq:register">%s%s</query>'
                      % (data_node().tostring(),
                         data_node(data=b'broken').tostring()))

        result = parse_all_bob_data(query)
        self.assertEqual(len(result), 1)
        self.assertEqual(result[0].data, DATA)


if __name__ == '__main__':
    unittest.main()
