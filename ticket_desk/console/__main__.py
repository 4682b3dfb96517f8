"""
Entry point for running the console as a module.

Usage: python -m ticket_desk.console
"""
from .main import main

if __name__ == "__main__":
    main()
