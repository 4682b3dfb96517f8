#!/usr/bin/env python3
"""
Convenient entry point for the Ticket Desk console.

Usage:
    python run_console.py [--api URL] [--ws URL] [--debug]
"""
import sys
from pathlib import Path

# Add project root to Python path
root_dir = Path(__file__).parent
sys.path.insert(0, str(root_dir))

from ticket_desk.console.main import main

if __name__ == "__main__":
    main()
