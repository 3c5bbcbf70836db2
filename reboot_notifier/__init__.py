"""
SecOps Reboot Notifier — Countdown to a mandatory reboot with limited deferrals.
"""

__version__ = "1.0.0"
