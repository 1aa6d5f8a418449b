#!/usr/bin/env python3
"""Thin wrapper: generate basic metadata from OpenAlex."""
import subprocess
import sys

sys.exit(subprocess.call([sys.executable, "-m", "scivault.enrich", *sys.argv[1:]]))
