#!/usr/bin/env python3
"""
RaffleCast Simulation Mode

Quick launcher for rehearsing a drawing without real participant data.
Equivalent to: rafflecast --simulate --debug
"""

import sys

from rafflecast.run import main

if __name__ == "__main__":
    sys.exit(main(sys.argv[1:] + ["--simulate", "--debug"]))
