"""
Audit Logger — Structured JSON-lines audit trail of auto-fix runs.

Each line is the fixed result shape written back onto the analysis run
(autoFixPrUrl, autoFixPrNumber, ...) plus the run id and a UTC timestamp.
Also serves as the default RunRecorder when no external store is wired in.
"""

from __future__ import annotations

import json
import logging
import time
from pathlib import Path

from codepolice.config import settings
from codepolice.models.autofix_models import AutoFixRecord

logger = logging.getLogger("codepolice.audit")


class AuditLogger:
    """Writes auto-fix outcome records to a JSON-lines file."""

    def __init__(self, log_path: str | None = None) -> None:
        self.log_path = Path(log_path or settings.audit_log_path)

    async def record(self, analysis_run_id: str, record: AutoFixRecord) -> None:
        self.log(analysis_run_id, record)

    def log(self, analysis_run_id: str, record: AutoFixRecord) -> None:
        """Append one record to the log file."""
        entry = {
            "timestamp": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
            "analysisRunId": analysis_run_id,
            **record.model_dump(by_alias=True),
        }

        try:
            with open(self.log_path, "a") as f:
                f.write(json.dumps(entry) + "\n")
        except OSError as e:
            logger.error(f"Failed to write audit log: {e}")

    def read_recent(self, count: int = 50) -> list[dict]:
        """Read the most recent N audit entries."""
        if not self.log_path.exists():
            return []

        entries: list[dict] = []
        try:
            with open(self.log_path) as f:
                for line in f:
                    line = line.strip()
                    if line:
                        try:
                            entries.append(json.loads(line))
                        except json.JSONDecodeError:
                            continue
        except OSError:
            return []

        return entries[-count:]
