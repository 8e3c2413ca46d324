from abc import ABC, abstractmethod
from typing import Any, Optional

from petition_ai.core.exceptions import AppError
from petition_ai.services.store.base import CaseStore
from petition_ai.utils.logging import get_logger

LOGGER = get_logger(__name__)


class BaseService(ABC):
    """Base class for application services.

    ``execute()`` validates input, runs the service and normalises errors:
    ``AppError`` subclasses propagate unchanged, anything else is logged and
    wrapped in ``AppError``.
    """

    def __init__(self, store: Optional[CaseStore] = None):
        self.store = store
        self.logger = LOGGER

    async def execute(self, *args, **kwargs) -> Any:
        try:
            self.validate(*args, **kwargs)
            return await self.run(*args, **kwargs)
        except AppError:
            raise
        except Exception as e:
            self.logger.error(
                f"Service execution failed: {e}",
                exc_info=True,
                extra={"service": self.__class__.__name__},
            )
            raise AppError(f"Service execution failed: {e}", original_error=e)

    def validate(self, *args, **kwargs):
        """Validate service input. Raise ``ValidationError`` when invalid."""
        pass

    @abstractmethod
    async def run(self, *args, **kwargs) -> Any:
        """Run the core service logic."""
        pass
