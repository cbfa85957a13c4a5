#!/usr/bin/env python3
"""
python3 -m imsync: start the layout listener with the same flags as ``imsync``
"""

import sys

from imsync.cli import main

if __name__ == '__main__':
    sys.exit(main())
