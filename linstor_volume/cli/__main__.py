#!/usr/bin/env python3
"""
Entry point for linstor-volume CLI tool.
"""

import sys

from linstor_volume.cli.cli import main

if __name__ == "__main__":
    sys.exit(main())
