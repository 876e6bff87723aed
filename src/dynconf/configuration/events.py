"""
Configuration change events and snapshot diffing.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Dict, List, Mapping, Optional


class ChangeType(Enum):
    """Type of configuration change."""
    ADDED = "added"
    UPDATED = "updated"
    REMOVED = "removed"


@dataclass(frozen=True)
class ConfigurationChangeEvent:
    """A detected difference for one key between two successive snapshots."""
    key: str
    old_value: Optional[str]
    new_value: Optional[str]
    change_type: ChangeType
    source: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self):
        if not self.key:
            raise ValueError("key cannot be empty")
        expected = _classify(self.old_value, self.new_value)
        if expected is None:
            raise ValueError(f"No change for key '{self.key}': old and new values are equal")
        if expected is not self.change_type:
            raise ValueError(
                f"change_type {self.change_type.name} does not match values for key '{self.key}' "
                f"(expected {expected.name})"
            )

    @classmethod
    def added(cls, key: str, new_value: str, source: str) -> 'ConfigurationChangeEvent':
        return cls(key, None, new_value, ChangeType.ADDED, source)

    @classmethod
    def updated(cls, key: str, old_value: str, new_value: str, source: str) -> 'ConfigurationChangeEvent':
        return cls(key, old_value, new_value, ChangeType.UPDATED, source)

    @classmethod
    def removed(cls, key: str, old_value: str, source: str) -> 'ConfigurationChangeEvent':
        return cls(key, old_value, None, ChangeType.REMOVED, source)

    @classmethod
    def between(cls, key: str, old_value: Optional[str], new_value: Optional[str], source: str) -> Optional['ConfigurationChangeEvent']:
        """Build the event describing old -> new, or None if nothing changed."""
        change_type = _classify(old_value, new_value)
        if change_type is None:
            return None
        return cls(key, old_value, new_value, change_type, source)

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {
            "key": self.key,
            "old_value": self.old_value,
            "new_value": self.new_value,
            "change_type": self.change_type.name,
            "source": self.source,
            "timestamp": self.timestamp.isoformat(),
        }


def _classify(old_value: Optional[str], new_value: Optional[str]) -> Optional[ChangeType]:
    if old_value is None and new_value is not None:
        return ChangeType.ADDED
    if old_value is not None and new_value is None:
        return ChangeType.REMOVED
    if old_value is not None and new_value is not None and old_value != new_value:
        return ChangeType.UPDATED
    return None


def diff_snapshots(
    old: Mapping[str, str],
    new: Mapping[str, str],
    source: str,
    origin_of: Optional[Callable[[str], Optional[str]]] = None,
) -> List[ConfigurationChangeEvent]:
    """
    Compare two resolved snapshots and return one event per changed key,
    ordered by key. ``origin_of`` names the source now holding a key; removed
    keys and unknown origins fall back to ``source``.
    """
    events = []
    for key in sorted(set(old) | set(new)):
        new_value = new.get(key)
        origin = source
        if new_value is not None and origin_of is not None:
            origin = origin_of(key) or source
        event = ConfigurationChangeEvent.between(key, old.get(key), new_value, origin)
        if event is not None:
            events.append(event)
    return events
