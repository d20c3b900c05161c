"""
Local CSV persistence backend.

Each partial record is appended to an intermediate file (crash recovery);
the final save writes the complete session file.
"""

import logging
import os
import threading
from datetime import datetime
from typing import List, Optional

import pandas as pd

from config.session import UserInfo
from .adapter import PersistenceAdapter, Record

logger = logging.getLogger(__name__)


class CsvStore(PersistenceAdapter):
    """
    Writes session data to CSV files with pandas.

    Filenames:
    - With participant info: {participant}_{session}_{timestamp}_{suffix}.csv
    - Otherwise: {experiment_name}_{suffix}.csv
    """

    def __init__(self, output_dir: str = "data", experiment_name: str = "experiment",
                 user: Optional[UserInfo] = None):
        """
        Args:
            output_dir: Directory to save data files
            experiment_name: Experiment name for filename
            user: Participant identity used in filenames
        """
        # Appends to one file must not interleave
        super().__init__(max_workers=1)
        self.output_dir = output_dir
        self.experiment_name = experiment_name
        self.user = user
        self._started = datetime.now().strftime("%Y%m%d_%H%M%S")
        self._lock = threading.Lock()
        self.partial_records: List[Record] = []

        os.makedirs(output_dir, exist_ok=True)
        logger.info(f"[CsvStore] Initialized (output: {output_dir}/{experiment_name})")

    def get_output_filename(self, suffix: str) -> str:
        """
        Build output path for a file suffix ('intermediate' or 'data').
        """
        if self.user and self.user.prolific_pid:
            session = self.user.session_id or 'session'
            filename = f"{self.user.prolific_pid}_{session}_{self._started}_{suffix}.csv"
        else:
            filename = f"{self.experiment_name}_{suffix}.csv"
        return os.path.join(self.output_dir, filename)

    def _write_partial(self, record: Record):
        # Rewritten in full so records with different columns stay aligned
        path = self.get_output_filename("intermediate")
        with self._lock:
            self.partial_records.append(record)
            pd.DataFrame(self.partial_records).to_csv(path, index=False)

    def _write_complete(self, records: List[Record]):
        path = self.get_output_filename("data")
        with self._lock:
            pd.DataFrame(records).to_csv(path, index=False)
        logger.info(f"[CsvStore] Saved {len(records)} records to {path}")
