"""
Health runner - Runs every configured probe once.

This module coordinates executing probes, recording their state and
notifying on transitions.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import List, Optional

from endpoint_alerter.health import checks, config, notify, store, transitions
from endpoint_alerter.health.models import Outcome, ProbeDefinition, Status

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_CONFIG_ERROR = 1
EXIT_FAILING = 3


@dataclass
class RunSummary:
    """Counts for one pass over the probe list."""

    passing: int = 0
    failing: int = 0
    skipped: int = 0
    errored: int = 0
    changes: List[transitions.Transition] = field(default_factory=list)

    @property
    def exit_code(self) -> int:
        return EXIT_FAILING if self.failing or self.errored else EXIT_OK


def run_probes(
    config_path: Optional[str] = None,
    db_path: Optional[str] = None,
    dry_run: bool = False,
    max_workers: Optional[int] = None,
    settings: Optional[config.Settings] = None,
    notifier=None,
) -> int:
    """
    Run all probes once and return an exit code.

    Args:
        config_path: Path to the probe file (optional)
        db_path: Path to the result database (default: from settings)
        dry_run: If True, print outcomes without touching the store or notifying
        max_workers: Probes evaluated concurrently (default: from settings)
        settings: Runtime settings (default: read from the environment)
        notifier: Object with notify(message) (default: Notifier(settings))

    Returns:
        Exit code: 0 (all passing), 1 (configuration error), 3 (failures)
    """
    try:
        if settings is None:
            settings = config.load_settings()
        probes = config.load_config(config_path, settings.probes_file)
    except (config.ConfigError, OSError) as e:
        logger.error("Cannot load configuration: %s", e)
        return EXIT_CONFIG_ERROR

    engine = None
    if not dry_run:
        result_store = store.ResultStore(db_path or settings.db_path)
        if notifier is None:
            notifier = notify.Notifier(settings)
        engine = transitions.TransitionEngine(result_store, notifier)

    workers = max_workers or settings.max_workers
    summary = run_all(probes, settings, engine, workers)

    logger.info(
        "Ran %d probes: %d passing, %d failing, %d skipped, %d errored",
        len(probes),
        summary.passing,
        summary.failing,
        summary.skipped,
        summary.errored,
    )
    return summary.exit_code


def run_all(
    probes: List[ProbeDefinition],
    settings: config.Settings,
    engine: Optional[transitions.TransitionEngine],
    max_workers: int = 1,
) -> RunSummary:
    """
    Evaluate a list of probes.

    Args:
        probes: Probe definitions
        settings: Runtime settings
        engine: Transition engine, or None for a dry run
        max_workers: Number of probes evaluated concurrently

    Returns:
        RunSummary for the pass
    """
    if max_workers > 1 and len(probes) > 1:
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            results = list(pool.map(lambda p: _evaluate(p, settings, engine), probes))
    else:
        results = [_evaluate(probe, settings, engine) for probe in probes]

    summary = RunSummary()
    for status, transition in results:
        if status is Status.PASS:
            summary.passing += 1
        elif status is Status.FAIL:
            summary.failing += 1
        elif status is None:
            summary.skipped += 1
        else:
            summary.errored += 1
        if transition is not None and transition.changed:
            summary.changes.append(transition)
    return summary


def _evaluate(probe: ProbeDefinition, settings, engine):
    """
    Execute one probe and feed its outcome to the engine.

    Returns:
        (status, transition): status is None for skipped probes and
        Status.UNKNOWN when evaluation itself crashed
    """
    try:
        outcome = checks.execute_probe(probe, settings)
        if outcome is None:
            return None, None

        if engine is None:
            _print_outcome(probe, outcome)
            return outcome.status, None

        transition = engine.process(probe.identity, outcome)
        return outcome.status, transition
    except Exception as e:  # pylint: disable=broad-except
        logger.error("Probe %s crashed: %s", probe.identity, e, exc_info=True)
        return Status.UNKNOWN, None


def _print_outcome(probe: ProbeDefinition, outcome: Outcome) -> None:
    label = "PASS" if outcome.passed else "FAIL"
    print(f"[{label}] {probe.identity}: {outcome.message}")
