"""In-memory storage backed by a JSON snapshot file.

Each mutation queues a save. A single worker thread drains the queue, so saves
run one at a time in mutation order and a stale map never overwrites a newer
file. The worker serializes under the shared lock, which gives it a
point-in-time view that already contains the mutation that queued it.

A crash between a mutation and the next save loses that mutation.
"""
import json
import logging
import queue
import threading
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, Union

from shortlink.storage.base import URLRecord
from shortlink.storage.memory import InMemoryStorage

logger = logging.getLogger(__name__)

_STOP = object()


class SnapshotWriter:
    """Runs ``save`` on a background thread whenever a save is requested.

    Requests that pile up while a save is running are coalesced into one.
    """

    def __init__(self, save: Callable[[], None], name: str = "snapshot-writer"):
        self._save = save
        self._queue: "queue.Queue[object]" = queue.Queue()
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)
        self._closed = False
        self._thread.start()

    def request_save(self) -> None:
        if self._closed:
            logger.warning("Snapshot requested after writer was closed; ignoring")
            return
        self._queue.put(None)

    def flush(self) -> None:
        """Block until every queued save has been written."""
        self._queue.join()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._queue.put(_STOP)
        self._thread.join()

    def _run(self) -> None:
        while True:
            pending = [self._queue.get()]
            while True:
                try:
                    pending.append(self._queue.get_nowait())
                except queue.Empty:
                    break

            if any(item is not _STOP for item in pending):
                try:
                    self._save()
                except Exception:
                    logger.exception("Failed to write snapshot")

            for _ in pending:
                self._queue.task_done()
            if any(item is _STOP for item in pending):
                return


def _write_json_atomic(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    tmp_path.write_text(content, encoding="utf-8")
    tmp_path.replace(path)


def record_to_dict(record: URLRecord) -> dict:
    return {
        "encrypted_payload": record.encrypted_payload.hex(),
        "created_at": record.created_at.isoformat(),
        "access_count": record.access_count,
    }


def record_from_dict(code: str, data: dict) -> URLRecord:
    return URLRecord(
        code=code,
        encrypted_payload=bytes.fromhex(data["encrypted_payload"]),
        created_at=datetime.fromisoformat(data["created_at"]),
        access_count=int(data["access_count"]),
    )


def load_snapshot(path: Path) -> Dict[str, URLRecord]:
    """Read a snapshot file. Missing or corrupt files yield an empty map."""
    if not path.exists():
        logger.info("No snapshot at %s, starting with an empty store", path)
        return {}
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
        records = {code: record_from_dict(code, data) for code, data in raw.items()}
    except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
        logger.warning("Snapshot %s is unreadable (%s), starting with an empty store", path, e)
        return {}
    logger.info("Loaded %d records from snapshot %s", len(records), path)
    return records


class FileSnapshotStorage(InMemoryStorage):

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        super().__init__(load_snapshot(self.path))
        self._writer = SnapshotWriter(self.save)

    def save(self) -> None:
        with self._lock.read_locked():
            content = json.dumps(
                {code: record_to_dict(record) for code, record in self._records.items()}
            )
        _write_json_atomic(self.path, content)
        logger.debug("Snapshot written to %s", self.path)

    def _mutated(self) -> None:
        self._writer.request_save()

    def flush(self) -> None:
        self._writer.flush()

    def close(self) -> None:
        self._writer.close()
