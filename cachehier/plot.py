#! /usr/bin/env python3
"""Bar charts of `cachehier-trace` reports.

Pipe one or more reports on stdin, optionally naming each run:

    cachehier-trace a.trace > runs.txt; cachehier-trace b.trace >> runs.txt
    cachehier-plot base wide < runs.txt
"""
import sys

import numpy as np
from matplotlib import pyplot as plt
from matplotlib.gridspec import GridSpec

LEVELS = ("L1 I-Cache", "L1 D-Cache", "L2 Cache")
FIELDS = {"Hits:": "hits", "Misses:": "misses", "Write-backs:": "writeBacks"}


def parseReport(lines):
    """Parse report text into a list of runs, each `{level: {"hits", "misses", "writeBacks"}}`."""
    runs = []
    level = None
    for line in lines:
        spl = line.split()
        if not spl:
            continue
        if spl[0] == 'N:':
            runs.append({})
            level = None
        elif line.strip()[:-1] in LEVELS and line.strip().endswith(':'):
            if not runs:
                runs.append({})
            level = line.strip()[:-1]
            runs[-1][level] = {"hits": 0, "misses": 0, "writeBacks": 0}
        elif spl[0] in FIELDS and level is not None:
            runs[-1][level][FIELDS[spl[0]]] = int(spl[1])
    return runs


def plotRuns(runs, labels=()):
    labels = list(labels) + ["run %d" % i for i in range(len(labels), len(runs))]
    bar_width = 0.25
    index = np.arange(len(runs))
    gs = GridSpec(len(LEVELS), 1)

    for row, level in enumerate(LEVELS):
        counts = np.asarray([[run.get(level, {}).get(key, 0) for key in ("hits", "misses", "writeBacks")]
                             for run in runs])
        ax = plt.subplot(gs[row, 0])
        ax.bar(index, counts[:, 0], width=bar_width, color='C0', label='Hits')
        ax.bar(index + bar_width, counts[:, 1], width=bar_width, color='C3', label='Misses')
        ax.bar(index + 2*bar_width, counts[:, 2], width=bar_width, color='C7', label='Write-backs')
        ax.set_ylabel(level)
        ax.set_xticks((), ())
        if row == 0:
            ax.legend()
    ax.set_xticks(index + bar_width)
    ax.set_xticklabels(labels[:len(runs)])
    return plt.gcf()


def main():
    runs = parseReport(sys.stdin)
    if not runs:
        print("no report on stdin", file=sys.stderr)
        return 1
    plotRuns(runs, sys.argv[1:])
    plt.show()
    return 0


if __name__ == '__main__':
    sys.exit(main())
