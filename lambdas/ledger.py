"""Score ledger: append-only score records and the rankings derived from them.

Records are never updated or deleted here. Rankings are computed at query
time from a full read of the table, ordered by score (high first), then by
timestamp (earlier first), then by id so equal timestamps still sort the
same way every time.
"""

import decimal
import time
import uuid
from abc import ABC, abstractmethod
from typing import Callable, Iterable, List, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from pydantic import ValidationError as SchemaError

from .errors import StorageError, ValidationError
from .models import ScoreRecord

DEFAULT_TOP_LIMIT = 60


def _now_ms() -> int:
    return int(time.time() * 1000)


def _new_id() -> str:
    return str(uuid.uuid4())


def _rank_key(r: ScoreRecord):
    return (-r.score, r.timestamp, r.id)


class ScoreStore(ABC):
    """Where score records live. put() is atomic per item; scan_all() is unordered."""

    @abstractmethod
    def put(self, item: dict) -> None:
        pass

    @abstractmethod
    def scan_all(self) -> List[dict]:
        pass


class DynamoScoreStore(ScoreStore):
    def __init__(self, table):
        self.table = table

    @classmethod
    def from_settings(cls, settings):
        # a table ARN in another region pins the client; otherwise use the lambda's region
        d = boto3.resource("dynamodb", region_name=settings.table_region or settings.region)
        return cls(d.Table(settings.table_name))

    def put(self, item):
        try:
            self.table.put_item(Item=item)
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"put_item on {self.table.name} failed: {e}")
        except decimal.DecimalException as e:
            # DynamoDB numbers hold at most 38 significant digits
            raise StorageError(f"put_item on {self.table.name} cannot store number: {e!r}")

    def scan_all(self):
        items = []
        kwargs = {}
        try:
            while True:
                resp = self.table.scan(**kwargs)
                items.extend(resp.get("Items", []))
                last = resp.get("LastEvaluatedKey")
                if not last:
                    return items
                kwargs["ExclusiveStartKey"] = last
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"scan on {self.table.name} failed: {e}")


class ScoreLedger:
    def __init__(
        self,
        store: ScoreStore,
        clock: Optional[Callable[[], int]] = None,
        id_factory: Optional[Callable[[], str]] = None,
    ):
        self.store = store
        self.clock = clock or _now_ms
        self.id_factory = id_factory or _new_id

    def submit(self, user_id: str, display_name: str, score: int) -> ScoreRecord:
        """Persist a new score record and return it exactly as stored."""
        if not user_id or not display_name:
            raise ValidationError("user_id and display_name are required")
        if isinstance(score, bool) or not isinstance(score, int):
            raise ValidationError("score must be an integer")
        record = ScoreRecord(
            id=self.id_factory(),
            user_id=user_id,
            user_name=display_name,
            score=score,
            timestamp=self.clock(),
        )
        self.store.put(record.to_item())
        print(f"[INFO] Recorded score {record.score} for {record.user_id} as {record.id}")
        return record

    def _records(self) -> Iterable[ScoreRecord]:
        try:
            return [ScoreRecord.from_item(it) for it in self.store.scan_all()]
        except SchemaError as e:
            raise StorageError(f"Unreadable score record: {e}")

    def top(self, limit: int = DEFAULT_TOP_LIMIT) -> List[ScoreRecord]:
        if limit <= 0:
            return []
        return sorted(self._records(), key=_rank_key)[:limit]

    def highest(self) -> Optional[ScoreRecord]:
        best = self.top(1)
        return best[0] if best else None

    def user_top(self, user_id: str) -> Optional[ScoreRecord]:
        mine = [r for r in self._records() if r.user_id == user_id]
        if not mine:
            return None
        return min(mine, key=_rank_key)
