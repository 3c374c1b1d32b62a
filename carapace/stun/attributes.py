from carapace.stun.agent import attribute, Address, Attribute
from carapace.stun import errors
from carapace.stun.errors import ParseError, EncodeError
from carapace import stun
import struct


@attribute
class MappedAddress(Address):
    """
    :see: http://tools.ietf.org/html/rfc5389#section-15.1
    """
    type = stun.ATTR_MAPPED_ADDRESS
    _xored = False


@attribute
class ErrorCode(Attribute):
    """
    :see: http://tools.ietf.org/html/rfc5389#section-15.6
    """
    type = stun.ATTR_ERROR_CODE
    _struct = struct.Struct('>2x2B')

    def __init__(self, data, err_class, err_number, reason):
        self.err_class = err_class
        self.err_number = err_number
        self.code = err_class * 100 + err_number
        self.reason = reason

    @classmethod
    def decode(cls, data, offset, length):
        if length < cls._struct.size:
            raise ParseError(errors.MALFORMED_ATTRIBUTE,
                             "ERROR-CODE value too short ({} bytes)".format(length))
        err_class, err_number = cls._struct.unpack_from(data, offset)
        err_class &= 0b111
        value = data[offset:offset + length]
        try:
            reason = bytes(value[cls._struct.size:]).decode('utf8')
        except UnicodeDecodeError as e:
            raise ParseError(errors.MALFORMED_ATTRIBUTE,
                             "ERROR-CODE reason is not UTF-8: {}".format(e))
        return cls(value, err_class, err_number, reason)

    @classmethod
    def encode(cls, msg, err_class, err_number, reason):
        if not 3 <= err_class <= 6 or not 0 <= err_number <= 99:
            raise EncodeError("Invalid error code {}{:02d}".format(err_class, err_number))
        value = cls._struct.pack(err_class, err_number)
        return cls(value + reason.encode('utf8'), err_class, err_number, reason)

    def __repr__(self):
        return "ERROR-CODE(code={}, reason={!r})".format(self.code, self.reason)


@attribute
class XorMappedAddress(Address):
    """
    :see: http://tools.ietf.org/html/rfc5389#section-15.2
    """
    type = stun.ATTR_XOR_MAPPED_ADDRESS
    _xored = True
