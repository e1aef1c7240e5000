#!/usr/bin/env python3
"""tlsdetect — TLS Interception Detector entry point."""

import sys
from tlsdetect.cli import main

if __name__ == "__main__":
    sys.exit(main())
