import logging
from twisted.internet import defer
from twisted.internet.protocol import DatagramProtocol
from carapace import stun
from carapace.stun import validator
from carapace.stun.agent import Message, Address
from carapace.stun.attributes import ErrorCode, XorMappedAddress
from carapace.stun.errors import ParseError


logger = logging.getLogger(__name__)


def binding_success(request, addr):
    """Build the Binding success response for a request received from addr
    :param addr: sender transport address as reported by the socket, (host, port, ...)
    :see: http://tools.ietf.org/html/rfc5389#section-10.1.1
    """
    host, port = addr[:2]
    family, host = Address.family_of(host)
    response = request.create_response(stun.CLASS_RESPONSE_SUCCESS)
    response.add_attr(XorMappedAddress, family, port, host)
    return response


def binding_error(request, error=stun.ERR_BAD_REQUEST):
    """Build an error response carrying a single ERROR-CODE
    :param error: (class, number, reason) tuple
    """
    response = Message.encode(stun.METHOD_BINDING,
                              stun.CLASS_RESPONSE_ERROR,
                              transaction_id=request.transaction_id)
    response.add_attr(ErrorCode, *error)
    return response


def handle_datagram(datagram, addr):
    """Answer one datagram
    :return: the response bytes to send back to addr, or None to stay silent
    """
    debug = logger.isEnabledFor(logging.DEBUG)
    try:
        msg = Message.decode(datagram)
    except ParseError as e:
        # Never answer garbage, that would make us a reflector
        if debug:
            logger.debug("Dropped datagram from %s:%d: %s", addr[0], addr[1], e)
            logger.debug(bytes(datagram).hex())
        return None

    verdict = validator.classify(msg)
    if verdict == validator.IGNORED:
        logger.info("Ignored STUN message (method=%#05x, class=%#04x) from %s:%d",
                    msg.msg_method, msg.msg_class, addr[0], addr[1])
        if debug:
            logger.debug(msg.format())
        return None

    logger.info("Received STUN request from %s:%d", addr[0], addr[1])
    if debug:
        logger.debug(msg.format())
    if verdict == validator.BINDING_REQUEST:
        response = binding_success(msg, addr)
    else:
        response = binding_error(msg, stun.ERR_BAD_REQUEST)
    logger.info("Sending response to %s:%d", addr[0], addr[1])
    if debug:
        logger.debug(response.format())
    return bytes(response)


class StunUdpServer(DatagramProtocol):
    """Twisted front end for :func:`handle_datagram`

    Replies are written from the reactor thread only; the reactor
    serialises writes on the shared socket. Code running in other
    threads must go through reactor.callFromThread to send.
    """
    def __init__(self, reactor, interface='0.0.0.0', port=stun.DEFAULT_PORT):
        """
        :param interface: address to bind to, '::' for IPv6
        :param port: UDP port to bind to, 0 for any free port
        """
        self.reactor = reactor
        self.interface = interface
        self.port = port
        self._port = None

    def start(self):
        self._port = self.reactor.listenUDP(self.port, self, self.interface)
        host = self._port.getHost()
        logger.info("%s Listening on %s:%d", self, host.host, host.port)
        return host.port

    def stop(self):
        """Release the socket
        :return: Deferred firing once the port is closed
        """
        port, self._port = self._port, None
        if port is None:
            return defer.succeed(None)
        logger.info("%s Stopping", self)
        return defer.maybeDeferred(port.stopListening)

    def datagramReceived(self, datagram, addr):
        response = handle_datagram(datagram, addr)
        if response is not None:
            self.transport.write(response, addr)

    def __str__(self):
        return "StunUdpServer({}:{})".format(self.interface, self.port)
