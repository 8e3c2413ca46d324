"""Base stage interface for the case analysis cascade."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class StageStatus(Enum):
    NOT_STARTED = "not_started"
    COMPLETED = "completed"
    BLOCKED = "blocked"
    FAILED = "failed"


@dataclass
class StageResult:
    """Standard result from stage execution."""
    status: StageStatus
    data: dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None


class BaseStage(ABC):
    """A cascade stage that reads its predecessor's stored output."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Stage name, also the key its output is stored under."""
        pass

    @property
    @abstractmethod
    def dependencies(self) -> list[str]:
        """Stages whose stored output must exist before this one runs."""
        pass

    @abstractmethod
    async def is_complete(self, case_id: str) -> bool:
        """Whether any output for this stage is stored for the case."""
        pass

    @abstractmethod
    async def execute(self, case_id: str, *args, **kwargs) -> StageResult:
        """Run the stage for one case."""
        pass
