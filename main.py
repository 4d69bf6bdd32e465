"""Main entry point for patchfleet.

Loads environment variables and runs the CLI: parse the diff, pick
repositories, patch each one and print its pull request URL.
"""
import sys

from patchfleet.cli import main

if __name__ == "__main__":
    sys.exit(main())
