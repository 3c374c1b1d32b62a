import os
import socket
import struct
import ipaddress
from carapace import stun
from carapace.stun import errors
from carapace.stun.errors import ParseError, EncodeError


class Message(bytearray):
    """STUN message structure
    :see: http://tools.ietf.org/html/rfc5389#section-6
    """

    _struct = struct.Struct('>2HL12s')
    _ATTR_TYPE_CLS = {}

    # Padding bytes carry no meaning, always write zeros
    _padding = bytes

    def __init__(self, data, msg_method, msg_class, magic_cookie, transaction_id):
        bytearray.__init__(self, data)
        self.msg_method = msg_method
        self.msg_class = msg_class
        self.magic_cookie = magic_cookie
        self.transaction_id = transaction_id
        self._attributes = []

    @classmethod
    def encode(cls, msg_method, msg_class, transaction_id=None):
        """Create a message holding only its header, attributes are
        appended with :meth:`add_attr`
        """
        if transaction_id is None:
            transaction_id = os.urandom(12)
        transaction_id = bytes(transaction_id)
        if len(transaction_id) != 12:
            raise EncodeError("Transaction ID must be 12 bytes, got {}".format(
                len(transaction_id)))
        msg_type = stun.msg_type(msg_method, msg_class)
        header = cls._struct.pack(msg_type, 0, stun.MAGIC_COOKIE, transaction_id)
        return cls(header, msg_method, msg_class, stun.MAGIC_COOKIE, transaction_id)

    def add_attr(self, attr_cls, *args, **kwargs):
        attr = attr_cls.encode(self, *args, **kwargs)
        self.extend(Attribute.struct.pack(attr.type, len(attr)))
        self.extend(attr)
        self.extend(self._padding(attr.padding))
        self._attributes.append(attr)
        #update length
        self.length = len(self) - self._struct.size
        return attr

    def get_attr(self, *attr_types):
        for attr in self._attributes:
            if attr.type in attr_types:
                return attr

    @property
    def attributes(self):
        return list(self._attributes)

    @classmethod
    def decode(cls, data):
        """
        :raises ParseError: if data is not a well formed STUN message
        :see: http://tools.ietf.org/html/rfc5389#section-7.3.1
        """
        data = memoryview(data).cast('B')
        if len(data) < cls._struct.size:
            raise ParseError(errors.TOO_SHORT,
                             "{} bytes is shorter than the STUN header".format(len(data)))
        if data[0] >> 6 != stun.MSG_STUN:
            raise ParseError(errors.NOT_STUN, "Stun message MUST start with 0b00")
        msg_type, msg_length, magic_cookie, transaction_id = cls._struct.unpack_from(data)
        if magic_cookie != stun.MAGIC_COOKIE:
            raise ParseError(errors.BAD_MAGIC_COOKIE,
                             "Incorrect magic cookie ({:#010x})".format(magic_cookie))
        if msg_length % 4:
            raise ParseError(errors.LENGTH_MISMATCH,
                             "Message not aligned to 4 byte boundary")
        if msg_length != len(data) - cls._struct.size:
            raise ParseError(errors.LENGTH_MISMATCH,
                             "Declared length {} but {} bytes follow the header".format(
                                 msg_length, len(data) - cls._struct.size))
        msg_method, msg_class = stun.split_msg_type(msg_type & 0x3fff)
        msg = cls(data, msg_method, msg_class, magic_cookie, transaction_id)
        offset = cls._struct.size
        while offset < len(data):
            if len(data) - offset < Attribute.struct.size:
                raise ParseError(errors.TRUNCATED_ATTRIBUTE,
                                 "No room for attribute header at offset {}".format(offset))
            attr_type, attr_length = Attribute.struct.unpack_from(data, offset)
            offset += Attribute.struct.size
            if offset + attr_length > len(data):
                raise ParseError(errors.TRUNCATED_ATTRIBUTE,
                                 "Attribute {} claims {} bytes, {} left".format(
                                     cls.attr_name(attr_type), attr_length, len(data) - offset))
            attr = cls.get_attr_cls(attr_type).decode(data, offset, attr_length)
            msg._attributes.append(attr)
            offset += len(attr)
            offset += attr.padding
        return msg

    @classmethod
    def get_attr_cls(cls, attr_type):
        attr_cls = cls._ATTR_TYPE_CLS.get(attr_type)
        if not attr_cls:
            # Fresh class per lookup, decoding never touches shared state
            attr_cls = type('Unknown', (Unknown,), {'type': attr_type})
        return attr_cls

    @classmethod
    def add_attr_cls(cls, attr_cls):
        """Decorator to add a Stun Attribute as an recognized attribute type
        """
        assert not cls._ATTR_TYPE_CLS.get(attr_cls.type, False), \
            "Duplicate definition for {:#06x}".format(attr_cls.type)
        cls._ATTR_TYPE_CLS[attr_cls.type] = attr_cls
        return attr_cls

    @property
    def length(self):
        return len(self) - self._struct.size

    @length.setter
    def length(self, value):
        struct.pack_into('>H', self, 2, value)

    @classmethod
    def attr_name(cls, attr_type):
        """Get the readable name of an attribute type, if known
        """
        attr_cls = cls._ATTR_TYPE_CLS.get(attr_type)
        return attr_cls.__name__ if attr_cls else "{:#06x}".format(attr_type)

    def create_response(self, msg_class):
        return self.encode(self.msg_method, msg_class, self.transaction_id)

    def __repr__(self):
        return ("{}(method={:#05x}, class={:#04x}, length={}, "
                "magic_cookie={:#010x}, transaction_id={}, attributes={})".format(
                    type(self).__name__, self.msg_method, self.msg_class,
                    self.length, self.magic_cookie, self.transaction_id.hex(),
                    self._attributes))

    def format(self):
        string = '\n'.join([
            "{0.__class__.__name__}",
            "    method:         {0.msg_method:#05x}",
            "    class:          {0.msg_class:#04x}",
            "    length:         {0.length}",
            "    magic-cookie:   {0.magic_cookie:#010x}",
            "    transaction-id: {1}",
            "    attributes:", ""
            ]).format(self, self.transaction_id.hex())
        string += '\n'.join(["    \t" + repr(attr) for attr in self._attributes])
        return string


class Attribute(bytes):
    """STUN message attribute structure
    :see: http://tools.ietf.org/html/rfc5389#section-15
    """
    struct = struct.Struct('>2H')

    def __new__(cls, data, *args, **kwargs):
        return bytes.__new__(cls, data)

    @classmethod
    def decode(cls, data, offset, length):
        return cls(data[offset:offset + length])

    @classmethod
    def encode(cls, msg, data):
        return cls(data)

    @property
    def padding(self):
        """Calculate number of padding bytes required to align to 4 byte boundary
        """
        return (4 - (len(self) % 4)) % 4

    @property
    def required(self):
        """Establish wether a attribute is in the comprehension-required range
        """
        #Comprehension-required attributes are in range 0x0000-0x7fff
        return self.type < 0x8000


class Unknown(Attribute):
    """Base class for dynamically generated unknown STUN attributes
    """
    def __repr__(self):
        return "UNKNOWN(type={:#06x}, length={}, value={})".format(
            self.type, len(self), self.hex())


class Address(Attribute):
    """Base class for all the addess STUN attributes
    :cvar _xored: Wether or not the port and address field are xored
    """
    struct = struct.Struct('>xBH')

    FAMILY_IPv4 = 0x01
    FAMILY_IPv6 = 0x02
    # Convert STUN FAMILY to AF_INET
    ftoaf = {FAMILY_IPv4: socket.AF_INET,
             FAMILY_IPv6: socket.AF_INET6}.get
    _sizes = {FAMILY_IPv4: 4, FAMILY_IPv6: 16}

    _xored = False

    def __init__(self, data, family, port, address):
        self.family = family
        self.port = port
        self.address = address

    @staticmethod
    def _keystream(transaction_id):
        # magic cookie followed by the transaction id, IPv4 uses the first 4 bytes
        return struct.pack('>L12s', stun.MAGIC_COOKIE, transaction_id)

    @classmethod
    def _xor(cls, port, packed_ip, transaction_id):
        magic = cls._keystream(transaction_id)
        port = port ^ stun.MAGIC_COOKIE >> 16
        packed_ip = bytes(a ^ b for a, b in zip(packed_ip, magic))
        return port, packed_ip

    @classmethod
    def decode(cls, data, offset, length):
        if length < cls.struct.size:
            raise ParseError(errors.MALFORMED_ATTRIBUTE,
                             "{} value too short ({} bytes)".format(cls.__name__, length))
        family, port = cls.struct.unpack_from(data, offset)
        size = cls._sizes.get(family)
        if size is None:
            raise ParseError(errors.UNSUPPORTED_ADDRESS_FAMILY,
                             "{} family {:#04x}".format(cls.__name__, family))
        if length != cls.struct.size + size:
            raise ParseError(errors.MALFORMED_ATTRIBUTE,
                             "{} of family {:#04x} must be {} bytes, got {}".format(
                                 cls.__name__, family, cls.struct.size + size, length))
        packed_ip = bytes(data[offset + cls.struct.size:offset + length])
        if cls._xored:
            # xport and xaddress are xored with the concatination of
            # the magic cookie and the transaction id (data[4:20])
            transaction_id = bytes(data[8:20])
            port, packed_ip = cls._xor(port, packed_ip, transaction_id)
        address = socket.inet_ntop(Address.ftoaf(family), packed_ip)
        return cls(data[offset:offset + length], family, port, address)

    @classmethod
    def encode(cls, msg, family, port, address):
        af = Address.ftoaf(family)
        if af is None:
            raise EncodeError("Unsupported address family {!r}".format(family))
        try:
            packed_ip = socket.inet_pton(af, address)
        except (OSError, TypeError) as e:
            raise EncodeError("Can not pack {!r} as family {:#04x}: {}".format(
                address, family, e))
        xport = port
        if cls._xored:
            xport, packed_ip = cls._xor(port, packed_ip, msg.transaction_id)
        data = cls.struct.pack(family, xport) + packed_ip
        return cls(data, family, port, address)

    @classmethod
    def family_of(cls, host):
        """Get the STUN family and the canonical address for a host string
        IPv4-mapped IPv6 addresses are reported as IPv4
        """
        try:
            ip = ipaddress.ip_address(host.split('%', 1)[0])
        except ValueError as e:
            raise EncodeError(str(e))
        if ip.version == 6 and ip.ipv4_mapped:
            ip = ip.ipv4_mapped
        family = cls.FAMILY_IPv4 if ip.version == 4 else cls.FAMILY_IPv6
        return family, str(ip)

    def __repr__(self):
        return "{}(family={:#04x}, port={}, address={!r})".format(
            type(self).__name__, self.family, self.port, self.address)


# Decorator shortcut for adding known attribute classes
attribute = Message.add_attr_cls
