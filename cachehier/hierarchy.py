#! /usr/bin/env python
import logging
from .cache import Cache

logger = logging.getLogger(__name__)

FETCH = "fetch"
READ = "read"
WRITE = "write"
OPERATIONS = (FETCH, READ, WRITE)


class CacheSimulator:


    def __init__(self, cacheSize=1024, blockSize=16, associativity=2, l2Size=16384, l2Associativity=8):
        """Split L1 instruction/data caches in front of a shared L2.

        Parameters
        ----------

        cacheSize (int):
            Size in bytes of each L1 cache.
        blockSize (int):
            Bytes per block, shared by every level.
        associativity (int):
            Ways per set of each L1 cache, -1 for fully associative.
        l2Size (int):
            Size in bytes of the shared L2. (Default 0x4000 (16 kB))
        l2Associativity (int):
            Ways per set of the shared L2.
        """
        self.L1_ICache = Cache(cacheSize, blockSize, associativity, name="L1 I-Cache")
        self.L1_DCache = Cache(cacheSize, blockSize, associativity, name="L1 D-Cache")
        self.L2_Cache = Cache(l2Size, blockSize, l2Associativity, name="L2 Cache")
        self.accesses = 0

    def process(self, operation, address, count=True):
        """Route one access through the hierarchy and return the L1 result.

        Fetches go to the I-cache, reads and writes to the D-cache. The L2 is
        only consulted when the L1 that serviced the access missed.
        """
        isFetch = operation == FETCH
        isWrite = operation == WRITE
        isDataCache = not isFetch
        l1 = self.L1_DCache if isDataCache else self.L1_ICache

        hit = l1.access(address, isWrite, isDataCache, True, count)
        if not hit:
            logger.debug("%s miss on %s %#x, forwarding to L2", l1.name, operation, address)
            self.L2_Cache.access(address, isWrite, isDataCache, False, count)
        if count:
            self.accesses += 1
        return hit

    def simulate(self, entries, count=True):
        """Process every `(operation, address)` pair in `entries` in order."""
        for operation, address in entries:
            self.process(operation, address, count)
        logger.info("simulated %d counted accesses", self.accesses)

    def caches(self):
        yield "L1 I-Cache", self.L1_ICache
        yield "L1 D-Cache", self.L1_DCache
        yield "L2 Cache", self.L2_Cache

    def printStats(self):
        for i, (label, cache) in enumerate(self.caches()):
            if i:
                print()
            print("%s:" % label)
            cache.printStats()
