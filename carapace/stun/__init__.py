"""Implementation of the RFC 5389 Session Traversal Utilities for NAT (STUN)
Binding service
:see: http://tools.ietf.org/html/rfc5389
"""

# STUN Methods Registry
METHOD_BINDING =        0x001
METHOD_SHARED_SECRET =  0x002 # (Reserved)

CLASS_REQUEST =             0b00
CLASS_INDICATION =          0b01
CLASS_RESPONSE_SUCCESS =    0b10
CLASS_RESPONSE_ERROR =      0b11


# STUN Message Types
MSG_STUN = 0b00

def msg_type(method, klass):
    """Interleave method and class bits into a 14 bit message type
    """
    return (MSG_STUN << 14 |
            method & 0x000f |
            (method & 0x0070) << 1 |
            (method & 0x0f80) << 2 |
            (klass & 0b01) << 4 |
            (klass & 0b10) << 7)

def split_msg_type(value):
    """Split a message type into its (method, class) pair
    """
    method = (value & 0x000f |
              (value & 0x00e0) >> 1 |
              (value & 0x3e00) >> 2)
    klass = (value & 0x0010) >> 4 | (value & 0x0100) >> 7
    return method, klass

MSG_STUN_BINDING_REQUEST          = msg_type(METHOD_BINDING, CLASS_REQUEST)
MSG_STUN_BINDING_RESPONSE_SUCCESS = msg_type(METHOD_BINDING, CLASS_RESPONSE_SUCCESS)
MSG_STUN_BINDING_RESPONSE_ERROR   = msg_type(METHOD_BINDING, CLASS_RESPONSE_ERROR)

MAGIC_COOKIE = 0x2112A442

HEADER_SIZE = 20
DEFAULT_PORT = 3478

# STUN Attribute Registry
# Comprehension-required range (0x0000-0x7FFF):
ATTR_MAPPED_ADDRESS =      0x0001
ATTR_USERNAME =            0x0006
ATTR_MESSAGE_INTEGRITY =   0x0008
ATTR_ERROR_CODE =          0x0009
ATTR_UNKNOWN_ATTRIBUTES =  0x000A
ATTR_REALM =               0x0014
ATTR_NONCE =               0x0015
ATTR_XOR_MAPPED_ADDRESS =  0x0020
# Comprehension-optional range (0x8000-0xFFFF):
ATTR_SOFTWARE =            0x8022
ATTR_ALTERNATE_SERVER =    0x8023
ATTR_FINGERPRINT =         0x8028

# Error codes (class, number) and recommended reason phrases:
ERR_TRY_ALTERNATE =     3, 0, "Try Alternate"
ERR_BAD_REQUEST =       4, 0, "Bad Request"
ERR_UNAUTHORIZED =      4, 1, "Unauthorized"
ERR_UNKNOWN_ATTRIBUTE = 4,20, "Unknown Attribute"
ERR_STALE_NONCE =       4,38, "Stale Nonce"
ERR_SERVER_ERROR =      5, 0, "Server Error"


# Known attribute types register themselves with Message on import
from carapace.stun.agent import Message, Attribute, Unknown, Address
from carapace.stun.attributes import MappedAddress, XorMappedAddress, ErrorCode
