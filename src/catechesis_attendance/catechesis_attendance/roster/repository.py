from __future__ import annotations

from typing import Iterable, Optional, Protocol, Sequence

from .model import Enrollment, Group


class RosterProvider(Protocol):
    """Read-only access to enrollments, owned by the enrollment module."""

    def list_for_group(self, group_id: int) -> Sequence[Enrollment]:
        raise NotImplementedError

    def get_by_id(self, enrollment_id: int) -> Optional[Enrollment]:
        raise NotImplementedError

    def get_many(self, enrollment_ids: Iterable[int]) -> Sequence[Enrollment]:
        raise NotImplementedError


class GroupDirectory(Protocol):
    """Read-only access to group metadata."""

    def get_by_id(self, group_id: int) -> Optional[Group]:
        raise NotImplementedError

    def list_groups(self, *, parish_id: Optional[int] = None, level_id: Optional[int] = None) -> Sequence[Group]:
        raise NotImplementedError
