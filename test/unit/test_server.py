import unittest
from unittest import mock
from twisted.internet import address
from carapace import stun
from carapace.stun import validator, Message, Address
from carapace.stun.errors import EncodeError
from carapace.stun import server
from carapace.stun.server import (handle_datagram, binding_success,
                                  binding_error, StunUdpServer)


ZERO_ID = b'\x00' * 12
BINDING_REQUEST = bytes.fromhex('000100002112a442') + ZERO_ID


def request(msg_type, transaction_id=ZERO_ID):
    return msg_type.to_bytes(2, 'big') + bytes.fromhex('00002112a442') + transaction_id


class ClassifyTest(unittest.TestCase):
    def classify(self, method, klass):
        return validator.classify(Message.encode(method, klass, ZERO_ID))

    def test_binding_request(self):
        self.assertEqual(self.classify(stun.METHOD_BINDING, stun.CLASS_REQUEST),
                         validator.BINDING_REQUEST)

    def test_unsupported_request(self):
        self.assertEqual(self.classify(stun.METHOD_SHARED_SECRET, stun.CLASS_REQUEST),
                         validator.UNSUPPORTED_REQUEST)
        self.assertEqual(self.classify(0x003, stun.CLASS_REQUEST),
                         validator.UNSUPPORTED_REQUEST)

    def test_ignored(self):
        for klass in (stun.CLASS_INDICATION, stun.CLASS_RESPONSE_SUCCESS,
                      stun.CLASS_RESPONSE_ERROR):
            self.assertEqual(self.classify(stun.METHOD_BINDING, klass), validator.IGNORED)
        self.assertEqual(self.classify(0x003, stun.CLASS_RESPONSE_ERROR), validator.IGNORED)


class ResponseBuilderTest(unittest.TestCase):
    def setUp(self):
        self.request = Message.decode(request(0x0001, bytes(range(12))))

    def test_binding_success(self):
        response = binding_success(self.request, ('192.0.2.1', 54321))
        self.assertEqual(response.msg_class, stun.CLASS_RESPONSE_SUCCESS)
        self.assertEqual(response.msg_method, stun.METHOD_BINDING)
        self.assertEqual(response.transaction_id, bytes(range(12)))
        self.assertEqual(len(response.attributes), 1)
        mapped = response.get_attr(stun.ATTR_XOR_MAPPED_ADDRESS)
        self.assertEqual((mapped.family, mapped.port, mapped.address),
                         (Address.FAMILY_IPv4, 54321, '192.0.2.1'))

    def test_binding_success_ipv6(self):
        transaction_id = bytes.fromhex('b7e7a701bc34d686fa87dfae')
        msg = Message.decode(request(0x0001, transaction_id))
        addr = ('2001:db8:1234:5678:11:2233:4455:6677', 32853, 0, 0)
        response = binding_success(msg, addr)
        self.assertEqual(bytes(response[20:]), bytes.fromhex(
            '002000140002a1470113a9faa5d3f179bc25f4b5bed2b9d9'))

    def test_binding_success_ipv4_mapped(self):
        response = binding_success(self.request, ('::ffff:192.0.2.1', 54321, 0, 0))
        mapped = response.get_attr(stun.ATTR_XOR_MAPPED_ADDRESS)
        self.assertEqual((mapped.family, mapped.address),
                         (Address.FAMILY_IPv4, '192.0.2.1'))

    def test_binding_success_scoped_ipv6(self):
        response = binding_success(self.request, ('fe80::1%eth0', 5000, 0, 2))
        mapped = Message.decode(bytes(response)).get_attr(stun.ATTR_XOR_MAPPED_ADDRESS)
        self.assertEqual((mapped.family, mapped.port, mapped.address),
                         (Address.FAMILY_IPv6, 5000, 'fe80::1'))

    def test_binding_success_bad_host(self):
        with self.assertRaises(EncodeError):
            binding_success(self.request, ('not-an-ip', 5000))

    def test_binding_error(self):
        response = binding_error(self.request)
        self.assertEqual(response.msg_class, stun.CLASS_RESPONSE_ERROR)
        self.assertEqual(response.msg_method, stun.METHOD_BINDING)
        self.assertEqual(response.transaction_id, bytes(range(12)))
        error_code = response.get_attr(stun.ATTR_ERROR_CODE)
        self.assertEqual((error_code.err_class, error_code.err_number, error_code.reason),
                         (4, 0, "Bad Request"))
        self.assertEqual(len(response.attributes), 1)

    def test_binding_error_invalid_code(self):
        with self.assertRaises(EncodeError):
            binding_error(self.request, (7, 0, "Nope"))


class HandleDatagramTest(unittest.TestCase):
    def test_binding_request(self):
        response = handle_datagram(BINDING_REQUEST, ('192.0.2.1', 54321))
        self.assertEqual(response, bytes.fromhex(
            '0101000c2112a442' '000000000000000000000000'
            '00200008' '0001f523' 'e112a643'))

    def test_binding_request_with_attributes(self):
        software = bytes.fromhex('8022000b7465737420766563746f7220')
        data = request(0x0001)[:2] + b'\x00\x10' + request(0x0001)[4:] + software
        response = Message.decode(handle_datagram(data, ('192.0.2.1', 54321)))
        self.assertEqual(response.msg_class, stun.CLASS_RESPONSE_SUCCESS)
        self.assertEqual(len(response.attributes), 1)

    def test_unsupported_method(self):
        transaction_id = b'unsupported!'
        response = handle_datagram(request(0x0002, transaction_id), ('192.0.2.1', 54321))
        self.assertEqual(response, bytes.fromhex(
            '011100142112a442') + transaction_id + bytes.fromhex(
            '0009000f00000400' '426164205265717565737400'))
        error_code = Message.decode(response).get_attr(stun.ATTR_ERROR_CODE)
        self.assertEqual((error_code.err_class, error_code.err_number), (4, 0))

    def test_garbage_dropped(self):
        addr = ('192.0.2.1', 54321)
        self.assertIsNone(handle_datagram(b'', addr))
        self.assertIsNone(handle_datagram(BINDING_REQUEST[:19], addr))
        self.assertIsNone(handle_datagram(b'\xff' * 20, addr))
        self.assertIsNone(handle_datagram(BINDING_REQUEST[:4] + b'\x00' * 16, addr))

    def test_bad_attribute_dropped(self):
        bad_family = bytes.fromhex('0001000c2112a442') + ZERO_ID + \
            bytes.fromhex('000100080003d43100000000')
        self.assertIsNone(handle_datagram(bad_family, ('192.0.2.1', 54321)))

    def test_responses_and_indications_ignored(self):
        addr = ('192.0.2.1', 54321)
        for msg_type in (stun.MSG_STUN_BINDING_RESPONSE_SUCCESS,
                         stun.MSG_STUN_BINDING_RESPONSE_ERROR,
                         stun.msg_type(stun.METHOD_BINDING, stun.CLASS_INDICATION)):
            self.assertIsNone(handle_datagram(request(msg_type), addr))


class DebugDumpTest(unittest.TestCase):
    addr = ('192.0.2.1', 54321)

    def test_no_dumps_above_debug(self):
        with mock.patch.object(server.logger, 'isEnabledFor', return_value=False), \
                mock.patch.object(server.logger, 'debug') as debug, \
                mock.patch.object(Message, 'format') as format_:
            self.assertIsNotNone(handle_datagram(BINDING_REQUEST, self.addr))
            self.assertIsNone(handle_datagram(b'\xff' * 64, self.addr))
        self.assertFalse(format_.called)
        self.assertFalse(debug.called)

    def test_dumps_at_debug(self):
        with mock.patch.object(server.logger, 'isEnabledFor', return_value=True), \
                mock.patch.object(server.logger, 'debug') as debug, \
                mock.patch.object(Message, 'format', return_value='dump') as format_:
            handle_datagram(BINDING_REQUEST, self.addr)
            self.assertEqual(format_.call_count, 2)
            handle_datagram(b'\xff' * 4, self.addr)
        debug.assert_called_with('ffffffff')


class FakeUdpTransport(object):
    def __init__(self):
        self.written = []

    def write(self, datagram, addr):
        self.written.append((datagram, addr))


class FakePort(object):
    def __init__(self, interface, port):
        self.interface = interface
        self.port = port or 40000
        self.listening = True

    def getHost(self):
        return address.IPv4Address('UDP', self.interface, self.port)

    def stopListening(self):
        self.listening = False


class FakeReactor(object):
    def __init__(self):
        self.ports = []

    def listenUDP(self, port, protocol, interface=''):
        fake = FakePort(interface, port)
        self.ports.append((fake, protocol))
        protocol.makeConnection(FakeUdpTransport())
        return fake


class StunUdpServerTest(unittest.TestCase):
    def setUp(self):
        self.reactor = FakeReactor()
        self.server = StunUdpServer(self.reactor, '127.0.0.1', 0)

    def test_start(self):
        port = self.server.start()
        self.assertEqual(port, 40000)
        fake, protocol = self.reactor.ports[0]
        self.assertIs(protocol, self.server)
        self.assertEqual(fake.interface, '127.0.0.1')

    def test_default_port(self):
        server = StunUdpServer(self.reactor)
        self.assertEqual(server.start(), stun.DEFAULT_PORT)
        self.assertEqual(self.reactor.ports[0][0].interface, '0.0.0.0')

    def test_stop(self):
        self.server.start()
        results = []
        self.server.stop().addCallback(results.append)
        self.assertEqual(results, [None])
        self.assertFalse(self.reactor.ports[0][0].listening)
        # Stopping twice is harmless
        self.server.stop().addCallback(results.append)
        self.assertEqual(results, [None, None])

    def test_datagram_answered(self):
        self.server.start()
        addr = ('192.0.2.1', 54321)
        self.server.datagramReceived(BINDING_REQUEST, addr)
        self.assertEqual(self.server.transport.written,
                         [(handle_datagram(BINDING_REQUEST, addr), addr)])

    def test_garbage_not_answered(self):
        self.server.start()
        self.server.datagramReceived(b'GET / HTTP/1.0\r\n\r\n', ('192.0.2.1', 54321))
        self.server.datagramReceived(request(stun.MSG_STUN_BINDING_RESPONSE_SUCCESS),
                                     ('192.0.2.1', 54321))
        self.assertEqual(self.server.transport.written, [])


if __name__ == "__main__":
    unittest.main()
