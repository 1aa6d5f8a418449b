#!/usr/bin/env python3
"""Thin wrapper: run every stage over a page range."""
import subprocess
import sys

sys.exit(subprocess.call([sys.executable, "-m", "scivault", *sys.argv[1:]]))
