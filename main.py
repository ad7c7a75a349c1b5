#!/usr/bin/env python3
"""
FaceAuth - Main Entry Point

Run this file to start the interactive face login console.
"""

import sys

from faceauth.main import main

if __name__ == '__main__':
    sys.exit(main())
