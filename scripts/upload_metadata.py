#!/usr/bin/env python3
"""Thin wrapper: upload basic metadata to Irys."""
import subprocess
import sys

sys.exit(subprocess.call([sys.executable, "-m", "scivault.upload_metadata", *sys.argv[1:]]))
