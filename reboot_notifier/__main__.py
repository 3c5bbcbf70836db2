"""
Run the notifier CLI directly.

Usage:
    python -m reboot_notifier run
"""

from .main import cli

if __name__ == "__main__":
    cli()
