# db_manager.py
# Persistence only: named network snapshots, loss history and evaluation
# stats, stored as pickled blobs in a key/value table.

import sqlite3
import pickle
import threading
import os
import logging

from config import config
from data_structures import MatchStats

thread_local = threading.local()
logger = logging.getLogger("DatabaseManager")

SNAPSHOT_PREFIX = "network_"
HISTORY_PREFIX = "training_"
STATS_PREFIX = "testStats_"
BASE_LR_PREFIX = "baseLearningRate_"
GAME_RECORD_PREFIX = "lastGame_"

def get_db_connection(db_path):
    """Establishes a thread-local database connection per database file."""
    connections = getattr(thread_local, 'connections', None)
    if connections is None:
        connections = thread_local.connections = {}
    if db_path not in connections:
        db_dir = os.path.dirname(db_path)
        if db_dir:
            os.makedirs(db_dir, exist_ok=True)
        connection = sqlite3.connect(db_path, check_same_thread=False, timeout=10)
        connection.execute('PRAGMA journal_mode=WAL;')
        connection.execute('PRAGMA synchronous=NORMAL;')
        connections[db_path] = connection
    return connections[db_path]

def close_db_connection(db_path):
    connections = getattr(thread_local, 'connections', {})
    connection = connections.pop(db_path, None)
    if connection is not None:
        connection.close()

class DatabaseManager:
    """
    Key/value store for everything the training orchestrator persists. Keys
    follow the `network_<name>`, `training_<name>` and `testStats_<name>`
    naming used for snapshots, loss history and evaluation stats.
    """
    def __init__(self, db_path=config.DB_PATH):
        self.db_path = db_path
        self._init_db()

    def _init_db(self):
        with get_db_connection(self.db_path) as conn:
            conn.execute('''
                CREATE TABLE IF NOT EXISTS store (
                    key TEXT PRIMARY KEY,
                    blob BLOB NOT NULL,
                    updated DATETIME DEFAULT CURRENT_TIMESTAMP
                )
            ''')

    def close(self):
        close_db_connection(self.db_path)

    def set(self, key: str, value):
        serialized = pickle.dumps(value, protocol=pickle.HIGHEST_PROTOCOL)
        with get_db_connection(self.db_path) as conn:
            conn.execute(
                'INSERT OR REPLACE INTO store (key, blob, updated) VALUES (?, ?, CURRENT_TIMESTAMP)',
                (key, serialized))

    def get(self, key: str, default=None):
        conn = get_db_connection(self.db_path)
        row = conn.execute('SELECT blob FROM store WHERE key = ?', (key,)).fetchone()
        if row is None:
            return default
        try:
            return pickle.loads(row[0])
        except (pickle.UnpicklingError, AttributeError, EOFError, ImportError) as e:
            logger.error(f"Could not decode stored value for '{key}': {e}")
            return default

    def delete(self, key: str):
        with get_db_connection(self.db_path) as conn:
            conn.execute('DELETE FROM store WHERE key = ?', (key,))

    def keys(self, prefix: str = ""):
        conn = get_db_connection(self.db_path)
        rows = conn.execute('SELECT key FROM store WHERE substr(key, 1, ?) = ? ORDER BY key',
                            (len(prefix), prefix)).fetchall()
        return [row[0] for row in rows]

    # --- Named snapshots ---
    def save_snapshot(self, name: str, snapshot):
        self.set(SNAPSHOT_PREFIX + name, snapshot)
        logger.info(f"DB: Saved snapshot '{name}' ({snapshot.training_count} examples trained).")

    def load_snapshot(self, name: str):
        return self.get(SNAPSHOT_PREFIX + name)

    def list_networks(self):
        return [key[len(SNAPSHOT_PREFIX):] for key in self.keys(SNAPSHOT_PREFIX)]

    def delete_network(self, name: str):
        for prefix in (SNAPSHOT_PREFIX, HISTORY_PREFIX, STATS_PREFIX, BASE_LR_PREFIX, GAME_RECORD_PREFIX):
            self.delete(prefix + name)
        logger.info(f"DB: Deleted all records for '{name}'.")

    # --- Loss history ---
    def save_history(self, name: str, losses):
        self.set(HISTORY_PREFIX + name, list(losses))

    def load_history(self, name: str):
        return self.get(HISTORY_PREFIX + name, [])

    # --- Evaluation stats ---
    def save_test_stats(self, name: str, stats: dict):
        self.set(STATS_PREFIX + name, {opponent: s.to_dict() for opponent, s in stats.items()})

    def load_test_stats(self, name: str) -> dict:
        raw = self.get(STATS_PREFIX + name, {})
        return {opponent: MatchStats(**s) for opponent, s in raw.items()}

    # --- Last human game ---
    def save_game_record(self, name: str, record):
        self.set(GAME_RECORD_PREFIX + name, record)

    def load_game_record(self, name: str):
        return self.get(GAME_RECORD_PREFIX + name)
