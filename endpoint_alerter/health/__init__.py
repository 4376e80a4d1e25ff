"""
Health module - Endpoint probes with deduplicated alerting.

This module runs declarative HTTP probes, remembers each probe's last
status and sends a notification only when that status changes.
"""

from endpoint_alerter.health.config import load_config, load_settings
from endpoint_alerter.health.runner import run_probes

__all__ = ["load_config", "load_settings", "run_probes"]
