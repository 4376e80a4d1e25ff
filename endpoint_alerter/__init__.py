"""
Endpoint Alerter - HTTP probes that notify once per state change.
"""

__version__ = "0.1.0"
