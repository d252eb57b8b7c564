"""
Read-only adapter over the live request collection.
"""

import logging
from typing import Any, Iterable, Iterator, List, Mapping, Union

from .models import Request


logger = logging.getLogger(__name__)

RecordSource = Union[Mapping[str, Any], Iterable[Any]]


class RecordStore:
    """
    Read-only view over a collection of request records owned elsewhere.

    The wrapped collection is held by reference, so a snapshot reflects the
    records as they are when snapshot() is called. Records may be Request
    instances or plain dicts in the wire (camelCase) shape.

    Example:
        store = RecordStore(request_manager.requests)
        requests = store.snapshot()
    """

    def __init__(self, records: RecordSource):
        """
        Args:
            records: Mapping of id -> record, or an iterable of records
        """
        self._records = records

    def _iter_raw(self) -> Iterator[Any]:
        if isinstance(self._records, Mapping):
            return iter(self._records.values())
        return iter(self._records)

    def snapshot(self) -> List[Request]:
        """Current records as Request models, in collection order"""
        requests = [
            record if isinstance(record, Request) else Request.model_validate(record)
            for record in self._iter_raw()
        ]
        logger.debug(f"Snapshot taken: {len(requests)} requests")
        return requests

    def __iter__(self) -> Iterator[Request]:
        return iter(self.snapshot())

    def __len__(self) -> int:
        return sum(1 for _ in self._iter_raw())
