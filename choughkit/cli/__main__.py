"""
Entry point for running choughkit CLI as a module.

Usage: python -m choughkit.cli [command] [options]
"""

from .parser import main

if __name__ == "__main__":
    main()
