import logging
from abc import ABC, abstractmethod
from typing import List, Optional

from tax_exporter.core.errors import ErrorKind, FetchError
from tax_exporter.core.models import Record


class SourceAdapter(ABC):
    name: str = ""
    record_type: str = ""

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self.logger = logger or logging.getLogger(__name__)

    # Every adapter returns canonical records sorted newest first
    @abstractmethod
    def fetch(self, account_id: str, source_id: str) -> List[Record]:
        pass

    def close(self) -> None:
        """Release connections held by the adapter. Safe to call twice."""
        pass

    def _unsupported(self, source_id: str) -> FetchError:
        return FetchError(
            ErrorKind.UNSUPPORTED_SOURCE,
            f"{self.name} does not support source '{source_id}'",
            source=self.name,
        )
