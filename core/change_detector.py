# core/change_detector.py
"""
Diffing between the committed snapshot and a fresh feed fetch.

Pure and synchronous. Cold start is not handled here: an empty previous
snapshot makes every notification-worthy disruption look new, so the
scheduler seeds the store before the first diff.
"""
from typing import Iterable, List

from models.disruption import Disruption, Snapshot


def detect(previous: Snapshot, current: Iterable[Disruption]) -> List[Disruption]:
    """Return notification-worthy disruptions in `current` whose id is not among
    the notification-worthy members of `previous`."""
    seen = previous.notification_worthy_ids()
    new: List[Disruption] = []
    emitted = set()
    for disruption in current:
        if not disruption.notification_worthy:
            continue
        if disruption.id in seen or disruption.id in emitted:
            continue
        emitted.add(disruption.id)
        new.append(disruption)
    return new


def removed(previous: Snapshot, current: Iterable[Disruption]) -> List[int]:
    """Ids present in `previous` but gone from `current`. No action is taken on these."""
    current_ids = {d.id for d in current}
    return sorted(previous.ids - current_ids)
