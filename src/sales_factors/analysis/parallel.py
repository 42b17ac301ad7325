"""
Per-unit execution for multi-unit scans.

Each unit (a lag, a window, a factor, a product) is computed independently
and its outcome lands in its own slot. AnalysisError is captured per unit so
one degenerate unit never aborts the whole scan; anything else propagates.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Callable, Iterable, Union

from ..errors import AnalysisError
from ..models import UnitFailure

logger = logging.getLogger(__name__)


def run_units(
    func: Callable[[Any], Any],
    units: Iterable[Any],
    max_workers: int = 1,
) -> list[Union[Any, AnalysisError]]:
    """
    Apply func to every unit, serially or on a thread pool.

    Args:
        func: Callable taking one unit
        units: Units to evaluate
        max_workers: Number of worker threads (1 = serial)

    Returns:
        List aligned with units; each slot holds func's result or the
        AnalysisError it raised
    """
    units = list(units)
    outcomes: list[Union[Any, AnalysisError]] = [None] * len(units)

    if max_workers is None or max_workers <= 1 or len(units) <= 1:
        for i, unit in enumerate(units):
            try:
                outcomes[i] = func(unit)
            except AnalysisError as e:
                outcomes[i] = e
        return outcomes

    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = {executor.submit(func, unit): i for i, unit in enumerate(units)}
        for future in as_completed(futures):
            i = futures[future]
            try:
                outcomes[i] = future.result()
            except AnalysisError as e:
                outcomes[i] = e

    return outcomes


def to_failure(unit: Any, error: AnalysisError) -> UnitFailure:
    return UnitFailure(unit=unit, reason=str(error), error_type=type(error).__name__)


def split_outcomes(
    units: list[Any],
    outcomes: list[Union[Any, AnalysisError]],
) -> tuple[list[tuple[Any, Any]], list[UnitFailure]]:
    """Separate successful (unit, result) pairs from failures."""
    succeeded = []
    failures = []
    for unit, outcome in zip(units, outcomes):
        if isinstance(outcome, AnalysisError):
            logger.debug("Unit %r skipped: %s", unit, outcome)
            failures.append(to_failure(unit, outcome))
        else:
            succeeded.append((unit, outcome))
    return succeeded, failures
