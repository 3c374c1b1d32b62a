"""Decide what a decoded STUN message asks the server to do
:see: http://tools.ietf.org/html/rfc5389#section-7.3
"""
from carapace import stun

BINDING_REQUEST =       'binding-request'
UNSUPPORTED_REQUEST =   'unsupported-request'
IGNORED =               'ignored'


def classify(msg):
    """Classify a decoded message

    Requests for the Binding method are answered with a success response,
    requests for any other method with a 400 error. Indications and
    responses have no business arriving at a server and are dropped.
    """
    if msg.msg_class != stun.CLASS_REQUEST:
        return IGNORED
    if msg.msg_method == stun.METHOD_BINDING:
        return BINDING_REQUEST
    return UNSUPPORTED_REQUEST
