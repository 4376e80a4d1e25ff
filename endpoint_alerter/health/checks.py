"""
Health checks - Executes probe definitions and reduces them to outcomes.

Each probe is a single HTTP request. Transport errors and status code
mismatches both become FAIL outcomes; nothing here retries.
"""

import hashlib
import logging
from typing import Dict, List, Optional, Tuple

import requests  # type: ignore

from endpoint_alerter.health.config import Settings
from endpoint_alerter.health.models import (
    Outcome,
    ProbeDefinition,
    ProbeParameter,
    Status,
)

logger = logging.getLogger(__name__)

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"
SUPPORTED_METHODS = ("GET", "POST")


def fingerprint(identity: str) -> bytes:
    """
    Calculate the store key for a probe identity.

    Args:
        identity: Probe identity, e.g. "GET https://example.com/health"

    Returns:
        32-byte SHA-256 digest
    """
    return hashlib.sha256(identity.encode("utf-8")).digest()


def resolve_parameters(
    parameters: Tuple[ProbeParameter, ...], settings: Settings
) -> List[Tuple[str, str]]:
    """
    Resolve probe parameters into (key, value) pairs.

    Parameters flagged env_var take the value of the environment variable
    they name; unset variables resolve to an empty string.

    Args:
        parameters: Parameters as configured
        settings: Settings holding the environment snapshot

    Returns:
        List of (key, value) pairs in configured order
    """
    resolved = []
    for param in parameters:
        value = settings.resolve_env(param.value) if param.env_var else param.value
        resolved.append((param.key, value))
    return resolved


def check_status(received: int, expected: int) -> bool:
    return received == expected


def execute_probe(probe: ProbeDefinition, settings: Settings) -> Optional[Outcome]:
    """
    Execute a probe and build its outcome.

    Args:
        probe: Probe definition
        settings: Runtime settings (credentials, timeout, environment)

    Returns:
        Outcome, or None if the probe's method is not supported
    """
    if probe.method not in SUPPORTED_METHODS:
        logger.warning(
            "Skipping %s: unsupported method %r", probe.url, probe.method
        )
        return None

    try:
        status_code = _send(probe, settings)
    except (requests.exceptions.RequestException, ValueError) as e:
        # Bad host labels and non-latin-1 credentials raise ValueError
        logger.info("%s failed at transport level: %s", probe.identity, e)
        return Outcome(Status.FAIL, str(e))

    if not check_status(status_code, probe.expected_status):
        return Outcome(
            Status.FAIL,
            f"{probe.identity} returned {status_code}, "
            f"expected {probe.expected_status}",
        )

    return Outcome(Status.PASS, f"{probe.identity} is now passing")


def _send(probe: ProbeDefinition, settings: Settings) -> int:
    """
    Issue the probe's HTTP request.

    Args:
        probe: Probe definition with a supported method
        settings: Runtime settings

    Returns:
        HTTP status code of the response

    Raises:
        requests.exceptions.RequestException: On DNS/connect/TLS/timeout errors
        ValueError: On unparseable hosts or unencodable credentials
    """
    params = resolve_parameters(probe.parameters, settings)
    auth = settings.basic_auth if probe.basic_auth else None

    if probe.method == "GET":
        response = requests.get(
            probe.url, params=params, auth=auth, timeout=settings.timeout
        )
    else:
        # Repeated keys keep their first position and their last value
        form: Dict[str, str] = {}
        for key, value in params:
            form[key] = value
        response = requests.post(
            probe.url,
            data=form,
            headers={"Content-Type": FORM_CONTENT_TYPE},
            auth=auth,
            timeout=settings.timeout,
        )

    logger.debug("%s responded %d", probe.identity, response.status_code)
    return response.status_code
