#!/usr/bin/env python3
"""Thin wrapper: upload PDFs to Irys."""
import subprocess
import sys

sys.exit(subprocess.call([sys.executable, "-m", "scivault.upload_pdfs", *sys.argv[1:]]))
