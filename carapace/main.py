"""Usage: carapace-stun [--interface ADDR] [--port PORT] [-v]
"""
import sys
import logging
from twisted.python import usage
from twisted.logger import globalLogBeginner, STDLibLogObserver
from carapace import __version__, stun
from carapace.stun.server import StunUdpServer


logger = logging.getLogger(__name__)


class Options(usage.Options):
    synopsis = "carapace-stun [options]"
    longdesc = "Answer STUN Binding requests with the sender's reflexive address."

    optParameters = [
        ['interface', 'i', '0.0.0.0', "Address to listen on, '::' for IPv6"],
        ['port', 'p', stun.DEFAULT_PORT, "UDP port to listen on", int],
        ]

    def __init__(self):
        usage.Options.__init__(self)
        self['verbosity'] = 0

    def opt_verbose(self):
        """Log more, may be given twice"""
        self['verbosity'] += 1

    opt_v = opt_verbose

    def opt_version(self):
        """Print the version and exit"""
        print("carapace {}".format(__version__))
        sys.exit(0)

    def postOptions(self):
        if not 0 <= self['port'] <= 0xffff:
            raise usage.UsageError("Port out of range: {}".format(self['port']))


def setup_logging(verbosity):
    level = logging.DEBUG if verbosity else logging.INFO
    logging.basicConfig(
        level=level,
        format='%(asctime)s %(levelname)-7s %(name)s: %(message)s')
    globalLogBeginner.beginLoggingTo([STDLibLogObserver()],
                                     redirectStandardIO=False)


def runserver(reactor, interface, port):
    server = StunUdpServer(reactor, interface, port)
    server.start()
    reactor.addSystemEventTrigger('before', 'shutdown', server.stop)
    reactor.run()


def main(argv=None):
    options = Options()
    try:
        options.parseOptions(sys.argv[1:] if argv is None else argv)
    except usage.UsageError as e:
        print(options, file=sys.stderr)
        print("{}: {}".format(sys.argv[0], e), file=sys.stderr)
        return 2

    setup_logging(options['verbosity'])
    from twisted.internet import reactor
    runserver(reactor, options['interface'], options['port'])
    return 0


if __name__ == '__main__':
    sys.exit(main())
