#!/usr/bin/env python3
"""
Main entry point for rawhttp.

This wrapper script allows running the CLI directly with python main.py
without installing the package.
"""

import os
import sys

# Add this directory to sys.path to allow importing rawhttp
sys.path.insert(0, os.path.abspath(os.path.dirname(__file__)))

from rawhttp.cli.main import main

if __name__ == "__main__":
    main()
