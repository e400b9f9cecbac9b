"""
Counters for one or more controllers.

Pass the same instance to several controllers to aggregate them.
"""

from dataclasses import asdict, dataclass
from typing import Any


@dataclass
class SyncDiagnostics:
    fetches_started: int = 0
    fetches_dropped: int = 0
    responses_applied: int = 0
    responses_discarded: int = 0
    errors: int = 0
    retries: int = 0
    cancellations: int = 0

    def reset(self) -> None:
        for name in self.__dataclass_fields__:
            setattr(self, name, 0)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
