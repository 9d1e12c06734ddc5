"""Change detection between the previous and current activity snapshots."""

from typing import List, Tuple

from .logging import get_logger
from .models import CHANGE_COUNTERS, ActivityRecord, Snapshot

logger = get_logger(__name__)


def changed_counters(previous: ActivityRecord, current: ActivityRecord) -> List[str]:
    """Return the row-mutation counters that differ between two records.

    A decrease counts as a change as well; it means the database was reset
    or recreated since the previous run.
    """
    before, after = previous.counters(), current.counters()
    return [counter for counter in CHANGE_COUNTERS if before[counter] != after[counter]]


def needs_backup(previous: Snapshot, current: Snapshot, name: str, force_all: bool = False) -> bool:
    """Decide whether a database needs a fresh dump.

    Args:
        previous: Snapshot persisted by the last run
        current: Snapshot collected by this run
        name: Database name, a key of ``current``
        force_all: Back up every database regardless of activity

    Returns:
        True if the database should be dumped
    """
    if force_all:
        return True

    if name not in previous:
        logger.debug(f"No previous stats for {name}")
        return True

    changed = changed_counters(previous[name], current[name])
    for counter in changed:
        logger.debug(f"{counter} stats do not match for {name}")
    return bool(changed)


def classify(previous: Snapshot, current: Snapshot, force_all: bool = False) -> List[Tuple[str, bool]]:
    """Classify every database in ``current``, in ascending name order."""
    return [(name, needs_backup(previous, current, name, force_all)) for name in current.names()]
