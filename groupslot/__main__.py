"""
Convenience entry point for running groupslot as a module.

Usage: python -m groupslot [command] [options]
"""

from .cli.app import app

if __name__ == "__main__":
    app()
