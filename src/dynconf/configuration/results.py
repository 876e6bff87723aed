"""
Outcome of a configuration refresh.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from ..exceptions import ConfigurationRefreshError


@dataclass(frozen=True)
class RefreshResult:
    """Result of refreshing one source, a composite, or a dynamic configuration."""
    success: bool
    source_name: str
    errors: Tuple[str, ...] = ()
    failed_sources: Tuple[str, ...] = ()
    changes: Tuple = ()
    completed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def ok(cls, source_name: str) -> 'RefreshResult':
        return cls(success=True, source_name=source_name)

    @classmethod
    def failed(cls, source_name: str, error: str, failed_sources: Optional[List[str]] = None) -> 'RefreshResult':
        return cls(
            success=False,
            source_name=source_name,
            errors=(error,),
            failed_sources=tuple(failed_sources if failed_sources is not None else [source_name]),
        )

    @property
    def is_successful(self) -> bool:
        return self.success

    @property
    def error_message(self) -> Optional[str]:
        if not self.errors:
            return None
        return "; ".join(self.errors)

    def with_changes(self, changes) -> 'RefreshResult':
        return RefreshResult(
            success=self.success,
            source_name=self.source_name,
            errors=self.errors,
            failed_sources=self.failed_sources,
            changes=tuple(changes),
            completed_at=self.completed_at,
        )

    def raise_for_status(self) -> 'RefreshResult':
        """Raise ConfigurationRefreshError if the refresh failed."""
        if not self.success:
            raise ConfigurationRefreshError(
                self.error_message or f"Refresh of {self.source_name} failed",
                failed_sources=list(self.failed_sources),
                source_name=self.source_name,
            )
        return self
