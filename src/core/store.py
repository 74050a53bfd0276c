"""
YAML-backed entity store.

Each entity kind lives in its own YAML file inside the data directory.
Writes are serialized by a FileLock on the data directory; inside a
transaction every read and write goes through an in-memory buffer that is
flushed only when the transaction body succeeds.
"""
import os
import copy
import uuid
import logging
import tempfile
import threading
from contextlib import contextmanager
from datetime import datetime

import yaml
from filelock import FileLock

logger = logging.getLogger(__name__)

KINDS = ('teams', 'groups', 'group_teams', 'matches')

# Child tables removed together with their parent record.
CASCADES = {
    'groups': [('group_teams', 'group_id'), ('matches', 'group_id')],
    'teams': [('group_teams', 'team_id')],
}


def _now() -> str:
    return datetime.now().isoformat()


def _matches(record: dict, filters: dict) -> bool:
    return all(record.get(key) == value for key, value in filters.items())


class EntityStore:
    """Create/read/update/delete over the tournament's YAML files."""

    def __init__(self, data_dir: str, lock_timeout: float = 10):
        self.data_dir = data_dir
        os.makedirs(data_dir, exist_ok=True)
        self._lock = FileLock(os.path.join(data_dir, '.lock'), timeout=lock_timeout)
        self._local = threading.local()

    def _file_path(self, kind: str) -> str:
        if kind not in KINDS:
            raise ValueError(f'Unknown entity kind: {kind}')
        return os.path.join(self.data_dir, f'{kind}.yaml')

    # ------------------------------------------------------------------
    # Raw file access
    # ------------------------------------------------------------------

    def _read(self, kind: str) -> list:
        path = self._file_path(kind)
        if not os.path.exists(path):
            return []
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
        return data or []

    def _write(self, kind: str, records: list):
        path = self._file_path(kind)
        fd, tmp_path = tempfile.mkstemp(dir=self.data_dir, prefix=f'.{kind}.', suffix='.tmp')
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                yaml.dump(records, f, default_flow_style=False, sort_keys=False)
            os.replace(tmp_path, path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    @property
    def in_transaction(self) -> bool:
        return getattr(self._local, 'buffer', None) is not None

    @contextmanager
    def transaction(self):
        """Hold the data lock and buffer all changes until the block exits.

        Nested calls join the outermost transaction. If the block raises,
        buffered changes are discarded and nothing is written.
        """
        if self.in_transaction:
            yield self
            return
        with self._lock:
            self._local.buffer = {}
            self._local.dirty = set()
            try:
                yield self
                for kind in sorted(self._local.dirty):
                    self._write(kind, self._local.buffer[kind])
                    logger.debug('Flushed %d %s records', len(self._local.buffer[kind]), kind)
            finally:
                self._local.buffer = None
                self._local.dirty = None

    def _table(self, kind: str) -> list:
        """Return the live table inside a transaction, a fresh copy otherwise."""
        if not self.in_transaction:
            return self._read(kind)
        buffer = self._local.buffer
        if kind not in buffer:
            buffer[kind] = self._read(kind)
        return buffer[kind]

    def _mark_dirty(self, kind: str):
        self._local.dirty.add(kind)

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    def select(self, kind: str, **filters) -> list:
        """Return copies of all records whose fields equal the given filters."""
        return [copy.deepcopy(r) for r in self._table(kind) if _matches(r, filters)]

    def get(self, kind: str, record_id: str):
        for record in self._table(kind):
            if record.get('id') == record_id:
                return copy.deepcopy(record)
        return None

    def insert(self, kind: str, record: dict) -> dict:
        with self.transaction():
            now = _now()
            stored = dict(record)
            stored.setdefault('id', str(uuid.uuid4()))
            stored.setdefault('created_at', now)
            stored['updated_at'] = now
            self._table(kind).append(stored)
            self._mark_dirty(kind)
            return copy.deepcopy(stored)

    def update(self, kind: str, record_id: str, **changes):
        """Apply changes to one record. Returns the updated copy or None."""
        with self.transaction():
            for record in self._table(kind):
                if record.get('id') == record_id:
                    record.update(changes)
                    record['updated_at'] = _now()
                    self._mark_dirty(kind)
                    return copy.deepcopy(record)
            return None

    def update_where(self, kind: str, changes: dict, **filters) -> int:
        """Apply the same changes to every matching record. Returns the count."""
        with self.transaction():
            count = 0
            now = _now()
            for record in self._table(kind):
                if _matches(record, filters):
                    record.update(changes)
                    record['updated_at'] = now
                    count += 1
            if count:
                self._mark_dirty(kind)
            return count

    def delete(self, kind: str, **filters) -> int:
        """Delete matching records and their cascaded children. Returns the count."""
        with self.transaction():
            table = self._table(kind)
            doomed = [r for r in table if _matches(r, filters)]
            if not doomed:
                return 0
            table[:] = [r for r in table if not _matches(r, filters)]
            self._mark_dirty(kind)
            for child_kind, foreign_key in CASCADES.get(kind, []):
                for record in doomed:
                    self.delete(child_kind, **{foreign_key: record['id']})
            return len(doomed)
