"""
Audit logging for thumbprint bundle tooling.

The verification core never logs. The CLI reports each run through
AuditLogger: one record for the bundle outcome and one per certificate
decision, all tagged with the same run id.
"""

import json
import logging
import sys
import time
import uuid
from contextvars import ContextVar
from typing import Optional

from .errors import FailureCategory, FailureCode

# Ties together the records of one CLI invocation
run_id_var: ContextVar[str] = ContextVar('run_id', default='')


class BundleEventFormatter(logging.Formatter):
    """One JSON object per record: time, level, event, message, run id, event fields."""

    converter = time.gmtime

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "time": self.formatTime(record, '%Y-%m-%dT%H:%M:%SZ'),
            "level": record.levelname,
            "logger": record.name,
            "event": getattr(record, 'event', None),
            "message": record.getMessage(),
        }

        run_id = run_id_var.get()
        if run_id:
            entry["run_id"] = run_id

        entry.update(getattr(record, 'fields', {}))

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


class AuditLogger:
    """
    Logger for bundle trust decisions.

    Integrity failures (bad signature, malformed token, wrong algorithm)
    may indicate tampering and are logged at ERROR. Validity and input
    failures are operational and logged at WARNING.
    """

    def __init__(self, name: str = "thumbprint_bundle.audit"):
        self._logger = logging.getLogger(name)

    def _emit(self, level: int, event: str, message: str, **fields) -> None:
        self._logger.log(level, message, extra={"event": event, "fields": fields})

    def bundle_verified(
        self,
        version: str,
        entries: int,
        schema: Optional[str] = None,
        expires_at: Optional[int] = None
    ) -> None:
        self._emit(
            logging.INFO,
            "BUNDLE_VERIFIED",
            f"Bundle verified (version={version}, entries={entries})",
            version=version,
            entries=entries,
            schema=schema,
            expires_at=expires_at,
        )

    def bundle_rejected(
        self,
        failure: FailureCode,
        reason: Optional[str] = None,
        source: Optional[str] = None
    ) -> None:
        category = failure.category
        if category == FailureCategory.INTEGRITY:
            level, event = logging.ERROR, "BUNDLE_INTEGRITY_FAILURE"
        else:
            level, event = logging.WARNING, "BUNDLE_REJECTED"

        self._emit(
            level,
            event,
            f"Bundle rejected: {failure.value}",
            failure=failure.value,
            category=category.value,
            reason=reason,
            source=source,
        )

    def certificate_decision(
        self,
        certificate: str,
        allowed: bool,
        thumbprint: Optional[str] = None
    ) -> None:
        decision = "ALLOWED" if allowed else "BLOCKED"
        self._emit(
            logging.INFO if allowed else logging.WARNING,
            "CERTIFICATE_DECISION",
            f"{certificate}: {decision}",
            certificate=certificate,
            decision=decision,
            thumbprint=thumbprint,
        )


def configure_logging(level: str = "WARNING", json_format: bool = True) -> None:
    """
    Send log records to stderr; stdout carries the command's report.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        json_format: One JSON object per line instead of plain text
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    if json_format:
        handler.setFormatter(BundleEventFormatter())
    else:
        handler.setFormatter(logging.Formatter('%(asctime)s %(levelname)s %(name)s: %(message)s'))
    root_logger.addHandler(handler)


def start_run(run_id: Optional[str] = None) -> str:
    """Tag subsequent records with a run id (a fresh UUID by default)."""
    run_id = run_id or str(uuid.uuid4())
    run_id_var.set(run_id)
    return run_id


audit_log = AuditLogger()
