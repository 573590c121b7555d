"""
Entry point for running choughkit CLI as a module.

Usage: python -m choughkit [command] [options]
"""

from choughkit.cli.parser import main

if __name__ == "__main__":
    main()
