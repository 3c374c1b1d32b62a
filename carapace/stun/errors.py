"""Errors raised while decoding and encoding STUN messages
"""

TOO_SHORT =                  'too-short'
NOT_STUN =                   'not-stun'
BAD_MAGIC_COOKIE =           'bad-magic-cookie'
LENGTH_MISMATCH =            'length-mismatch'
TRUNCATED_ATTRIBUTE =        'truncated-attribute'
UNSUPPORTED_ADDRESS_FAMILY = 'unsupported-address-family'
MALFORMED_ATTRIBUTE =        'malformed-attribute'


class ParseError(Exception):
    """A datagram could not be decoded as a STUN message

    :ivar kind: which check rejected the datagram
    """
    def __init__(self, kind, reason):
        Exception.__init__(self, kind, reason)
        self.kind = kind
        self.reason = reason

    def __str__(self):
        return "{}: {}".format(self.kind, self.reason)


class EncodeError(Exception):
    """A value the server built itself could not be encoded.
    Never recoverable; it means the response builder is broken.
    """
