from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Enrollment:
    """Inscripción de un catequizando en un grupo (entidad externa, solo lectura)."""

    enrollment_id: int
    group_id: int
    learner_name: str
    learner_surname: str
    document_id: str


@dataclass(frozen=True)
class Group:
    """Metadatos de un grupo de catequesis (entidad externa, solo lectura)."""

    group_id: int
    name: str
    parish_id: Optional[int] = None
    parish_name: Optional[str] = None
    level_id: Optional[int] = None
    level_name: Optional[str] = None
    period: Optional[str] = None

    @property
    def label(self) -> str:
        if self.level_name and self.level_name not in self.name:
            return f"{self.name} - {self.level_name}"
        return self.name
