#! /usr/bin/env python
import logging

logger = logging.getLogger(__name__)

ADDRESS_BITS = 64


class ConfigurationError(ValueError):
    """Raised when a cache is built with geometry the bit arithmetic cannot handle."""


def isPowerOfTwo(n):
    if not isinstance(n, int) or isinstance(n, bool):
        return False
    return n > 0 and n & (n - 1) == 0


class CacheLine:


    def __init__(self):
        self.tag = 0
        self.valid = False
        self.dirty = False
        self.lastUsed = 0

    def __repr__(self):
        return "CacheLine(tag=%#x, valid=%s, dirty=%s, lastUsed=%d)" % (
            self.tag, self.valid, self.dirty, self.lastUsed)


class Cache:


    def __init__(self, size=1024, blockSize=16, associativity=2, name="Cache"):
        """Set associative write-back cache with LRU replacement.

        Parameters
        ----------

        size (int):
            Cache size in bytes. (Default 1024)
        blockSize (int):
            Number of bytes per block, determines the number of offset bits.
        associativity (int):
            Number of ways per set, 1 for direct mapped, -1 for fully associative.
        name (str):
            Label used in log messages.
        """
        self.size = size
        self.blockSize = blockSize
        self.associativity = associativity
        self.name = name

        if not isPowerOfTwo(self.size):
            raise ConfigurationError("%s: size %r is not a power of two" % (name, size))
        if not isPowerOfTwo(self.blockSize) or self.blockSize > self.size:
            raise ConfigurationError("%s: block size %r is not a power of two no larger than the cache" % (name, blockSize))

        self.nBlocks = self.size // self.blockSize

        if not isinstance(self.associativity, int) or isinstance(self.associativity, bool):
            raise ConfigurationError("%s: associativity %r is not an integer" % (name, associativity))
        if self.associativity == -1:
            self.associativity = self.nBlocks
        if self.associativity < 1 or self.nBlocks % self.associativity:
            raise ConfigurationError("%s: associativity %r does not divide %d blocks" % (name, associativity, self.nBlocks))

        self.nSets = self.nBlocks if self.associativity == 1 else self.nBlocks // self.associativity
        if not isPowerOfTwo(self.nSets):
            raise ConfigurationError("%s: %d sets is not a power of two" % (name, self.nSets))

        self.offsetBits = self.blockSize.bit_length() - 1
        self.indexBits = self.nSets.bit_length() - 1
        self.tagBits = ADDRESS_BITS - self.offsetBits - self.indexBits

        self.lines = [[CacheLine() for i in range(self.associativity)] for j in range(self.nSets)]

        # Python ints never wrap, so stamps stay ordered for the life of the cache
        self.counter = 0

        self.hits = 0
        self.misses = 0
        self.writeBacks = 0

        logger.info("%s: %d bytes, %d byte blocks, %d sets x %d ways",
                    self.name, self.size, self.blockSize, self.nSets, self.associativity)

    def tag(self, address):
        return address >> (self.offsetBits + self.indexBits)

    def index(self, address):
        return (address >> self.offsetBits) & (self.nSets - 1)

    def blockOffset(self, address):
        return address & (self.blockSize - 1)

    def blockAddress(self, tag, setIndex):
        """First byte address of the block identified by `tag` in set `setIndex`."""
        return ((tag << self.indexBits) | setIndex) << self.offsetBits

    def access(self, address, isWrite=False, isDataCache=True, isL1=True, count=True):
        """Access a given address.

        Parameters
        ----------
        address (int):
            The address which is accessed.
        isWrite (bool):
            True if the access is a write, False for a read (default read).
            A write marks the line dirty.
        isDataCache (bool):
            Routing hint from the hierarchy, the cache itself does not use it.
        isL1 (bool):
            Routing hint from the hierarchy, the cache itself does not use it.
        count (bool):
            Whether hit/miss/write-back counters should be updated (default is True).

        Returns
        -------
        True on a hit, False on a miss.
        """
        tag = self.tag(address)
        setIndex = self.index(address)
        ways = self.lines[setIndex]

        for way, line in enumerate(ways):
            if line.valid and line.tag == tag:
                if count:
                    self.hits += 1
                if isWrite:
                    line.dirty = True
                self.updateLRU(setIndex, way)
                logger.debug("%s hit  %#x set %d way %d", self.name, address, setIndex, way)
                return True

        if count:
            self.misses += 1

        way = self.selectVictim(setIndex)
        line = ways[way]
        if line.valid and line.dirty:
            self.writeBack(setIndex, way, count)

        line.tag = tag
        line.valid = True
        line.dirty = isWrite
        self.updateLRU(setIndex, way)
        logger.debug("%s miss %#x set %d way %d", self.name, address, setIndex, way)
        return False

    def selectVictim(self, setIndex):
        """Pick the way to replace: the first invalid line, else the least recently used one."""
        ways = self.lines[setIndex]
        victim = 0
        for way in range(1, self.associativity):
            if not ways[victim].valid:
                break
            if not ways[way].valid or ways[way].lastUsed < ways[victim].lastUsed:
                victim = way
        return victim

    def updateLRU(self, setIndex, way):
        self.counter += 1
        self.lines[setIndex][way].lastUsed = self.counter

    def writeBack(self, setIndex, way, count=True):
        # Only the event is modeled, no data moves to the next level
        line = self.lines[setIndex][way]
        if count:
            self.writeBacks += 1
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("%s write-back %#x from set %d way %d",
                         self.name, self.blockAddress(line.tag, setIndex), setIndex, way)

    def contains(self, address):
        """Check for a hit without touching counters or LRU state."""
        tag = self.tag(address)
        return any(line.valid and line.tag == tag for line in self.lines[self.index(address)])

    def validLines(self):
        return sum(line.valid for ways in self.lines for line in ways)

    def stats(self):
        return {"hits": self.hits, "misses": self.misses, "writeBacks": self.writeBacks}

    def printStats(self):
        print("Hits: %d" % self.hits)
        print("Misses: %d" % self.misses)
        print("Write-backs: %d" % self.writeBacks)
