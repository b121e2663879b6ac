"""
压缩记录的环形缓冲区。

每次压缩追加一条记录；缓冲区满时淘汰最旧的记录。
下游反馈到达时按 record_id 原位替换为带观测值的新版本，记录顺序不变。
所有操作由一把 RLock 保护，读取方拿到的是元组快照。
"""

from __future__ import annotations

import logging
import threading
from collections import deque

from profile_forge.models.record import CompressionRecord

logger = logging.getLogger(__name__)


class CompressionRecorder:
    """
    压缩记录环形缓冲区。

    用法::

        recorder = CompressionRecorder(max_records=10_000)
        recorder.append(record)
        recorder.replace(record.with_outcome(response_quality=0.9))
        recorder.snapshot(since=time.time() - 3600)

    参数:
        max_records: 缓冲区大小，超出后淘汰最旧的记录
    """

    def __init__(self, max_records: int = 10_000) -> None:
        if max_records <= 0:
            raise ValueError(f"max_records 必须为正数，实际为 {max_records}")
        self._lock = threading.RLock()
        self._records: deque[CompressionRecord] = deque(maxlen=max_records)
        self._by_id: dict[str, CompressionRecord] = {}

    @property
    def max_records(self) -> int:
        return self._records.maxlen or 0

    def append(self, record: CompressionRecord) -> bool:
        """
        追加一条记录。

        返回:
            True 表示写入；record_id 已存在时忽略并返回 False
        """
        with self._lock:
            if record.record_id in self._by_id:
                logger.warning("记录 %s 已写入过，忽略重复写入。", record.record_id)
                return False
            if len(self._records) == self._records.maxlen:
                evicted = self._records[0]
                self._by_id.pop(evicted.record_id, None)
            self._records.append(record)
            self._by_id[record.record_id] = record
            return True

    def replace(self, record: CompressionRecord) -> bool:
        """
        用同一 record_id 的新版本替换已有记录，位置保持不变。

        返回:
            True 表示已替换；record_id 不在缓冲区中（从未写入或已被淘汰）时返回 False
        """
        with self._lock:
            if record.record_id not in self._by_id:
                return False
            # 反馈通常针对最近的压缩，从尾部开始找
            last = len(self._records) - 1
            for offset, existing in enumerate(reversed(self._records)):
                if existing.record_id == record.record_id:
                    self._records[last - offset] = record
                    break
            self._by_id[record.record_id] = record
            return True

    def get(self, record_id: str) -> CompressionRecord | None:
        with self._lock:
            return self._by_id.get(record_id)

    def contains(self, record_id: str) -> bool:
        with self._lock:
            return record_id in self._by_id

    def snapshot(self, since: float | None = None) -> tuple[CompressionRecord, ...]:
        """
        返回记录快照（按写入顺序）。

        参数:
            since: 只返回 timestamp >= since 的记录
        """
        with self._lock:
            if since is None:
                return tuple(self._records)
            return tuple(r for r in self._records if r.timestamp >= since)

    def recent(self, limit: int = 100) -> tuple[CompressionRecord, ...]:
        """最近 limit 条记录（新的在后）。"""
        with self._lock:
            if limit <= 0:
                return ()
            return tuple(self._records)[-limit:]

    def clear(self) -> None:
        with self._lock:
            self._records.clear()
            self._by_id.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
