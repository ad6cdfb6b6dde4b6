#! /usr/bin/env python3
import argparse
import itertools
import json
import logging
import sys
from .cache import ConfigurationError
from .hierarchy import CacheSimulator, OPERATIONS

logger = logging.getLogger(__name__)

CONFIG_KEYS = ("size", "blockSize", "associativity", "l2Size", "l2Associativity")


class TraceError(ValueError):
    """A trace line that is not `<operation> <hex address>`."""

    def __init__(self, lineNumber, line, reason):
        super().__init__("line %d: %s: %r" % (lineNumber, reason, line))
        self.lineNumber = lineNumber
        self.line = line


def parseLine(line, lineNumber=0):
    """Split a trace line into `(operation, address)`."""
    tokens = line.split()
    if len(tokens) != 2:
        raise TraceError(lineNumber, line.rstrip("\n"), "expected 2 tokens, got %d" % len(tokens))
    operation, addressStr = tokens
    operation = operation.lower()
    if operation not in OPERATIONS:
        raise TraceError(lineNumber, line.rstrip("\n"), "unknown operation %r" % tokens[0])
    try:
        address = int(addressStr, 16)
    except ValueError:
        raise TraceError(lineNumber, line.rstrip("\n"), "bad address %r" % addressStr) from None
    if address < 0:
        raise TraceError(lineNumber, line.rstrip("\n"), "negative address %r" % addressStr)
    return operation, address


def readTrace(lines, strict=False):
    """Yield `(operation, address)` pairs from an iterable of trace lines.

    Blank lines are ignored. Malformed lines are logged and skipped unless
    `strict` is set, in which case the TraceError propagates.
    """
    for i, line in enumerate(lines, 1):
        if not line.strip():
            continue
        try:
            yield parseLine(line, i)
        except TraceError as e:
            if strict:
                raise
            logger.warning("skipping %s", e)


def loadConfig(path):
    with open(path) as f:
        config = json.load(f)
    if not isinstance(config, dict):
        raise ConfigurationError("%s: expected a JSON object, got %s" % (path, type(config).__name__))
    unknown = set(config) - set(CONFIG_KEYS)
    if unknown:
        raise ConfigurationError("%s: unknown keys %s" % (path, ", ".join(sorted(unknown))))
    return config


def report(simulator):
    print("N:", simulator.accesses)
    for i, (label, cache) in enumerate(simulator.caches()):
        if i:
            print()
        print("%s:" % label)
        cache.printStats()
        total = cache.hits + cache.misses
        if total:
            print("Hit rate: %0.3f%%" % (cache.hits / total * 100))


def parseArgs(argv=None):
    parser = argparse.ArgumentParser(
        prog="cachehier-trace",
        description="Replay a memory trace through split L1 caches and a shared L2.")
    parser.add_argument("trace", nargs="?", help="trace file, stdin when omitted")
    parser.add_argument("--config", help="JSON file with any of: %s" % ", ".join(CONFIG_KEYS))
    parser.add_argument("--size", dest="size", type=int, help="L1 size in bytes (default 1024)")
    parser.add_argument("--block-size", dest="blockSize", type=int, help="block size in bytes (default 16)")
    parser.add_argument("--associativity", dest="associativity", type=int,
                        help="L1 ways per set, -1 for fully associative (default 2)")
    parser.add_argument("--l2-size", dest="l2Size", type=int, help="L2 size in bytes (default 16384)")
    parser.add_argument("--l2-associativity", dest="l2Associativity", type=int, help="L2 ways per set (default 8)")
    parser.add_argument("-n", "--lines", type=int, default=-1, help="stop after N counted accesses, -1 for all")
    parser.add_argument("--skip", type=int, default=0, help="discard the first N accesses")
    parser.add_argument("--warmup", type=int, default=0, help="process N accesses without counting them")
    parser.add_argument("--strict", action="store_true", help="abort on the first malformed line")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser.parse_args(argv)


def buildSimulator(args):
    params = {"size": 1024, "blockSize": 16, "associativity": 2, "l2Size": 16384, "l2Associativity": 8}
    if args.config:
        params.update(loadConfig(args.config))
    for key in CONFIG_KEYS:
        if getattr(args, key) is not None:
            params[key] = getattr(args, key)
    return CacheSimulator(params["size"], params["blockSize"], params["associativity"],
                          params["l2Size"], params["l2Associativity"])


def run(args, lines):
    simulator = buildSimulator(args)
    entries = itertools.islice(readTrace(lines, args.strict), args.skip, None)
    counted = 0
    for i, (operation, address) in enumerate(entries):
        if counted == args.lines:
            break
        count = i >= args.warmup
        simulator.process(operation, address, count)
        if count:
            counted += 1
    return simulator


def main(argv=None):
    args = parseArgs(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format="%(levelname)s %(name)s: %(message)s")
    try:
        if args.trace:
            with open(args.trace, errors="replace") as f:
                simulator = run(args, f)
        else:
            simulator = run(args, sys.stdin)
    except (ValueError, OSError) as e:
        logger.error("%s", e)
        return 1
    report(simulator)
    return 0


if __name__ == '__main__':
    sys.exit(main())
