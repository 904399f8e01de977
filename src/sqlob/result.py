"""
Request outcomes.
"""
import dataclasses
import uuid
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import Any

import pandas as pd

__all__ = ['Record', 'Result']


@dataclass(frozen=True)
class Record:
    """An application object paired with its identifier.

    `id` is None for a record not yet stored; inserting a Record with an
    explicit id reuses that id.
    """
    id: uuid.UUID | None
    object: Any


class Result:
    """Outcome of a request.

    Selects and inserts carry records, an ordered mapping of identifier to
    object. Updates and deletes carry only `count`, the affected rows. For
    inserts `count` is the number of new rows and `inserted` their ids.
    """

    def __init__(self, records: Iterable[Record] = (), count: int | None = None,
                 inserted: Iterable[uuid.UUID] = ()) -> None:
        self._records: dict[uuid.UUID, Any] = {}
        for record in records:
            self._records.setdefault(record.id, record.object)
        self.count = len(self._records) if count is None else count
        self.inserted = list(inserted)

    def keys(self) -> list[uuid.UUID]:
        return list(self._records)

    def objects(self) -> list[Any]:
        return list(self._records.values())

    def items(self) -> list[tuple[uuid.UUID, Any]]:
        return list(self._records.items())

    def get(self, key: uuid.UUID | str, default: Any = None) -> Any:
        if isinstance(key, str):
            key = uuid.UUID(key)
        return self._records.get(key, default)

    def first(self) -> Any | None:
        """First object, or None for an empty result."""
        return next(iter(self._records.values()), None)

    def one(self) -> Any:
        """The only object.

        Raises
            ValueError: If the result does not hold exactly one record
        """
        if len(self._records) != 1:
            raise ValueError(f'Expected exactly one record, got {len(self._records)}')
        return self.first()

    def to_frame(self) -> pd.DataFrame:
        """Records as a DataFrame: an `id` column, then one column per attribute.

        Dataclass objects contribute their fields, other objects their public
        instance attributes. Nested records are left as objects.
        """
        rows = []
        for key, obj in self._records.items():
            if dataclasses.is_dataclass(obj):
                values = {f.name: getattr(obj, f.name, None) for f in dataclasses.fields(obj)}
            else:
                values = {k: v for k, v in vars(obj).items() if not k.startswith('_')}
            rows.append({'id': key, **values})
        if not rows:
            return pd.DataFrame(columns=['id'])
        return pd.DataFrame.from_records(rows)

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[Record]:
        return (Record(key, obj) for key, obj in self._records.items())

    def __contains__(self, key: object) -> bool:
        if isinstance(key, str):
            try:
                key = uuid.UUID(key)
            except ValueError:
                return False
        return key in self._records

    def __bool__(self) -> bool:
        return bool(self._records) or bool(self.count)

    def __repr__(self) -> str:
        if self._records:
            return f'Result({len(self._records)} records, count={self.count})'
        return f'Result(count={self.count})'
