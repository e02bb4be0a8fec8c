"""Per-user run schedule model."""

from dataclasses import dataclass
from typing import Any, Dict

DEFAULT_RUN_TIME = "09:00"


@dataclass
class Schedule:
    """When a user's daily report runs."""

    time: str = DEFAULT_RUN_TIME  # HH:MM, local time
    enabled: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {'time': self.time, 'enabled': self.enabled}

    @classmethod
    def from_dict(cls, data: Dict[str, Any], default_time: str = DEFAULT_RUN_TIME) -> 'Schedule':
        # Missing keys fall back to an enabled schedule at the default time
        return cls(
            time=str(data.get('time') or default_time),
            enabled=data.get('enabled') is not False,
        )
