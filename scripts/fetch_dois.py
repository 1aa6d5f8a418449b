#!/usr/bin/env python3
"""Thin wrapper: fetch DOI lists for a page range."""
import subprocess
import sys

sys.exit(subprocess.call([sys.executable, "-m", "scivault.fetch_dois", *sys.argv[1:]]))
