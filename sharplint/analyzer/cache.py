"""Result cache for repeat audits.

Diagnostics are stored per file, keyed by the SHA-256 of the file content and
a fingerprint of everything else that influences the result (tool version,
exclusion policy, external catalog, active rules). A changed file or a
changed configuration is a cache miss.

Cache Format: SQLite database
Location: .sharplint_cache/ in the project root (configurable)
"""

import sqlite3
import json
import time
from pathlib import Path
from typing import Dict, Iterable, List, Optional
import hashlib


class AnalysisCache:
    """Per-file cache of serialized diagnostics."""

    def __init__(self, project_root: Path, cache_dir_name: str = '.sharplint_cache'):
        """Initialize cache database.

        Args:
            project_root: Root directory of the project being analyzed
            cache_dir_name: Cache directory created under ``project_root``
        """
        self.project_root = Path(project_root)
        self.cache_dir = self.project_root / cache_dir_name
        self.cache_file = self.cache_dir / 'analysis.db'

        self.cache_dir.mkdir(parents=True, exist_ok=True)

        self.conn = sqlite3.connect(str(self.cache_file))
        self._init_database()

    def _init_database(self):
        """Create cache tables if they don't exist."""
        cursor = self.conn.cursor()

        cursor.execute('''
            CREATE TABLE IF NOT EXISTS file_results (
                file_path TEXT PRIMARY KEY,
                content_hash TEXT NOT NULL,
                fingerprint TEXT NOT NULL,
                diagnostics TEXT NOT NULL,
                timestamp REAL NOT NULL
            )
        ''')

        cursor.execute('''
            CREATE INDEX IF NOT EXISTS idx_fingerprint
            ON file_results(fingerprint)
        ''')

        self.conn.commit()

    @staticmethod
    def content_hash(source: bytes) -> str:
        return hashlib.sha256(source).hexdigest()

    @staticmethod
    def fingerprint(version: str, policy: dict, catalog_path: Optional[Path], rule_ids: Iterable[str]) -> str:
        """Hash of the configuration a cached result depends on.

        Args:
            version: Tool version
            policy: Exclusion policy as a JSON-ready dict
            catalog_path: External API catalog file (its content is hashed)
            rule_ids: Active rule ids
        """
        catalog = b""
        if catalog_path is not None:
            try:
                catalog = Path(catalog_path).read_bytes()
            except OSError:
                catalog = b""
        payload = json.dumps({
            'version': version,
            'policy': policy,
            'catalog': hashlib.sha256(catalog).hexdigest(),
            'rules': sorted(rule_ids),
        }, sort_keys=True)
        return hashlib.sha256(payload.encode('utf-8')).hexdigest()

    def get_diagnostics(self, file_path: Path, content_hash: str, fingerprint: str) -> Optional[List[Dict]]:
        """Get cached diagnostics for a file.

        Returns:
            List of diagnostic dicts, or None on a miss (unknown file, changed
            content, changed configuration, or unreadable entry)
        """
        cursor = self.conn.cursor()
        cursor.execute('''
            SELECT diagnostics FROM file_results
            WHERE file_path = ? AND content_hash = ? AND fingerprint = ?
        ''', (str(file_path), content_hash, fingerprint))

        result = cursor.fetchone()
        if result:
            try:
                return json.loads(result[0])
            except json.JSONDecodeError:
                return None

        return None

    def set_diagnostics(self, file_path: Path, content_hash: str, fingerprint: str, diagnostics: List[Dict]):
        """Cache the diagnostics of one file (replacing any older entry)."""
        cursor = self.conn.cursor()
        cursor.execute('''
            INSERT OR REPLACE INTO file_results (file_path, content_hash, fingerprint, diagnostics, timestamp)
            VALUES (?, ?, ?, ?, ?)
        ''', (str(file_path), content_hash, fingerprint, json.dumps(diagnostics), time.time()))

        self.conn.commit()

    def invalidate_file(self, file_path: Path):
        """Invalidate cache for a specific file."""
        cursor = self.conn.cursor()
        cursor.execute('DELETE FROM file_results WHERE file_path = ?', (str(file_path),))
        self.conn.commit()

    def clear_cache(self):
        """Clear all cached data."""
        cursor = self.conn.cursor()
        cursor.execute('DELETE FROM file_results')
        self.conn.commit()

    def get_cache_stats(self) -> Dict[str, int]:
        """Get cache statistics."""
        cursor = self.conn.cursor()
        cursor.execute('SELECT COUNT(*) FROM file_results')
        total_files = cursor.fetchone()[0]
        cursor.execute("SELECT COUNT(*) FROM file_results WHERE diagnostics != '[]'")
        files_with_findings = cursor.fetchone()[0]
        cursor.execute('SELECT COUNT(DISTINCT fingerprint) FROM file_results')
        configurations = cursor.fetchone()[0]

        return {
            'total_files': total_files,
            'files_with_findings': files_with_findings,
            'configurations': configurations,
        }

    def close(self):
        """Close database connection."""
        if self.conn:
            self.conn.close()
            self.conn = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
