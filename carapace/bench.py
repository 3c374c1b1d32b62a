"""Time the Binding request hot path

Usage: carapace-bench [iterations]
"""
import sys
import time
from carapace import stun
from carapace.stun import Message
from carapace.stun.server import binding_success, handle_datagram


TRANSACTION_ID = b'BENCHMARK123'
CLIENT_ADDR = ('192.168.1.100', 12345)
BINDING_REQUEST = bytes(Message.encode(stun.METHOD_BINDING, stun.CLASS_REQUEST,
                                       transaction_id=TRANSACTION_ID))


def _timed(func, iterations):
    start = time.perf_counter()
    for _ in range(iterations):
        func()
    elapsed = time.perf_counter() - start
    return elapsed / iterations


def bench_parsing(iterations):
    return _timed(lambda: Message.decode(BINDING_REQUEST), iterations)


def bench_response(iterations):
    request = Message.decode(BINDING_REQUEST)
    return _timed(lambda: bytes(binding_success(request, CLIENT_ADDR)), iterations)


def bench_full_cycle(iterations):
    return _timed(lambda: handle_datagram(BINDING_REQUEST, CLIENT_ADDR), iterations)


BENCHMARKS = [
    ('parsing', bench_parsing),
    ('response', bench_response),
    ('full-cycle', bench_full_cycle),
    ]


def run(iterations=100000):
    """Run every benchmark
    :return: list of (name, seconds per operation)
    """
    return [(name, bench(iterations)) for name, bench in BENCHMARKS]


def main(argv=None):
    argv = sys.argv[1:] if argv is None else argv
    try:
        iterations = int(argv[0]) if argv else 100000
    except ValueError:
        print(__doc__.strip(), file=sys.stderr)
        return 2
    if iterations < 1:
        print("iterations must be positive", file=sys.stderr)
        return 2

    for name, seconds in run(iterations):
        print("{:<12} {:>10.3f} us/op {:>12.0f} op/s".format(
            name, seconds * 1e6, 1 / seconds if seconds else float('inf')))
    return 0


if __name__ == '__main__':
    sys.exit(main())
