#!/usr/bin/env python3
"""Thin wrapper: download PDFs for a page range."""
import subprocess
import sys

sys.exit(subprocess.call([sys.executable, "-m", "scivault.fetch_pdfs", *sys.argv[1:]]))
