"""
Metrics Collection Module
Tracks what an indexing pass did so it can be summarized in the logs
"""

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List


@dataclass
class IndexMetrics:
    """
    Counters for a single enumeration pass over the mail store.

    The enumerator records into one instance per pass and logs
    ``get_summary()`` when the pass ends.
    """

    folders_listed: int = 0
    folders_indexed: int = 0

    # Folders that could not be selected, in listing order
    failed_folders: List[str] = field(default_factory=list)

    messages_indexed: int = 0

    # Envelopes without a Message-ID cannot be keyed
    messages_without_id: int = 0

    duplicates: int = 0

    # Messages indexed per folder
    per_folder: Counter = field(default_factory=Counter)

    start_time: datetime = field(default_factory=datetime.now)

    def record_folder_listed(self):
        self.folders_listed += 1

    def record_folder_failed(self, folder: str):
        """Record a folder that could not be selected."""
        self.failed_folders.append(folder)

    def record_folder_indexed(self, folder: str, count: int):
        """
        Record a completed folder.

        Args:
            folder: Display name of the folder
            count: Number of index entries written for it
        """
        self.folders_indexed += 1
        self.messages_indexed += count
        self.per_folder[folder] += count

    def record_missing_id(self):
        self.messages_without_id += 1

    def record_duplicate(self):
        self.duplicates += 1

    def get_summary(self) -> Dict:
        """
        Get a summary of the pass.

        Returns:
            Dictionary suitable for logging or export
        """
        return {
            "elapsed_seconds": (datetime.now() - self.start_time).total_seconds(),
            "folders_listed": self.folders_listed,
            "folders_indexed": self.folders_indexed,
            "folders_failed": len(self.failed_folders),
            "messages_indexed": self.messages_indexed,
            "messages_without_id": self.messages_without_id,
            "duplicates": self.duplicates,
            "per_folder": dict(self.per_folder),
        }
