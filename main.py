#!/usr/bin/env python3
"""
LumenForge - A Python Ray Tracing Renderer

Main entry point, equivalent to the `lumenforge` console script.
"""

import sys

from lumenforge.cli import main


if __name__ == '__main__':
    sys.exit(main())
