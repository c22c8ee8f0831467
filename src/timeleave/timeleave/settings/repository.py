from __future__ import annotations

from typing import Optional, Protocol


class SettingsRepository(Protocol):
    """Key/value store for organization-wide policy values."""

    def get_value(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set_value(self, key: str, value: str, *, updated_by: Optional[int] = None) -> None:
        raise NotImplementedError
