"""
Entry point for running the CLI as a module.

Usage:
    python -m zkmedshard_api serve
"""

from zkmedshard_api.cli import main

if __name__ == "__main__":
    main()
