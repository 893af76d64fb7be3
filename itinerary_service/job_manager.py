from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import replace
from typing import Any
from uuid import uuid4

import httpx

from .config import Settings
from .content import ContentProvider, build_content_provider
from .credentials import ServiceAccount, fetch_access_token
from .document_store import DocumentStoreClient
from .errors import ContentGenerationError, DocumentStoreError, ValidationError
from .models import COMPLETED, FAILED, PROCESSING, TERMINAL_STATUSES, ItineraryDay, JobRecord, utcnow

logger = logging.getLogger(__name__)


class JobManager:
    """Owns the processing -> completed | failed lifecycle of itinerary jobs.

    The document store is the only copy of job state. The manager keeps just
    the futures of continuations still running so shutdown can wait for them.
    """

    def __init__(
        self,
        settings: Settings,
        client: httpx.Client,
        provider: ContentProvider,
        executor: ThreadPoolExecutor | None = None,
    ):
        self.settings = settings
        self.client = client
        self.provider = provider
        self.executor = executor or ThreadPoolExecutor(
            max_workers=settings.max_workers, thread_name_prefix="itinerary-job"
        )
        self._lock = threading.RLock()
        self._futures: dict[str, Future] = {}

    @classmethod
    def from_settings(cls, settings: Settings) -> JobManager:
        client = httpx.Client(timeout=settings.http_timeout_seconds)
        return cls(settings, client, build_content_provider(settings, client))

    @staticmethod
    def validate_request(payload: Any) -> tuple[str, int]:
        if not isinstance(payload, dict):
            raise ValidationError("Request body must be a JSON object")
        destination = payload.get("destination")
        duration_days = payload.get("durationDays")
        if not isinstance(destination, str) or not destination.strip():
            raise ValidationError("destination must be a non-empty string")
        if isinstance(duration_days, bool) or not isinstance(duration_days, int) or duration_days <= 0:
            raise ValidationError("durationDays must be a positive integer")
        return destination, duration_days

    def _session(self) -> tuple[DocumentStoreClient, str]:
        # The descriptor is parsed per request; nothing is cached between requests.
        account = ServiceAccount.from_json(self.settings.service_account_json)
        token = fetch_access_token(account, self.client)
        store = DocumentStoreClient(
            self.client,
            account.project_id,
            base_url=self.settings.firestore_base_url,
            database_id=self.settings.database_id,
        )
        return store, token

    def _write(self, store: DocumentStoreClient, token: str, record: JobRecord) -> None:
        store.put(token, self.settings.collection, record.id, record.to_document())

    def create_job(self, payload: Any) -> JobRecord:
        destination, duration_days = self.validate_request(payload)
        store, token = self._session()

        record = JobRecord(
            id=str(uuid4()),
            destination=destination,
            duration_days=duration_days,
            created_at=utcnow(),
        )
        self._write(store, token, record)
        logger.info("Job %s created: destination=%r days=%d", record.id, destination, duration_days)

        # The continuation gets its own copy and reuses this request's token.
        self._submit(replace(record), store, token)
        return record

    def get_job(self, job_id: str) -> JobRecord:
        if not job_id or not job_id.strip():
            raise ValidationError("Missing job id")
        store, token = self._session()
        data = store.read_fields(token, self.settings.collection, job_id)
        try:
            return JobRecord.from_document(job_id, data)
        except (KeyError, TypeError, ValueError, ContentGenerationError) as exc:
            raise DocumentStoreError(f"Stored job {job_id} is malformed: {exc}") from exc

    def finish(
        self,
        store: DocumentStoreClient,
        token: str,
        record: JobRecord,
        status: str,
        *,
        itinerary: list[ItineraryDay] | None = None,
        error: str | None = None,
    ) -> JobRecord:
        if record.is_terminal:
            raise RuntimeError(f"Job {record.id} is already {record.status}")
        if status not in TERMINAL_STATUSES:
            raise ValueError(f"Not a terminal status: {status}")

        finished = replace(
            record,
            status=status,
            completed_at=utcnow(),
            itinerary=list(itinerary or []) if status == COMPLETED else [],
            error=error if status == FAILED else None,
        )
        self._write(store, token, finished)
        return finished

    def _fail_if_unfinished(
        self, store: DocumentStoreClient, token: str, record: JobRecord, exc: DocumentStoreError
    ) -> None:
        # The write may have landed even though its response was lost.
        logger.warning("Job %s: completed write failed: %s", record.id, exc)
        current = store.read_fields(token, self.settings.collection, record.id)
        if current.get("status") != PROCESSING:
            logger.warning("Job %s is already %s; leaving it", record.id, current.get("status"))
            return
        self.finish(store, token, record, FAILED, error=str(exc) or "Unknown error")

    def _run_job(self, record: JobRecord, store: DocumentStoreClient, token: str) -> None:
        try:
            try:
                itinerary = self.provider.generate(record.destination, record.duration_days)
            except Exception as exc:
                message = str(exc) or "Unknown error"
                logger.info("Job %s failed: %s", record.id, message)
                self.finish(store, token, record, FAILED, error=message)
                return

            try:
                self.finish(store, token, record, COMPLETED, itinerary=itinerary)
            except DocumentStoreError as exc:
                self._fail_if_unfinished(store, token, record, exc)
                return
            logger.info("Job %s completed with %d day(s)", record.id, len(itinerary))
        except Exception:
            # Nobody listens for this continuation; the job stays as last stored.
            logger.exception("Job %s: terminal write failed", record.id)
        finally:
            with self._lock:
                self._futures.pop(record.id, None)

    def _submit(self, record: JobRecord, store: DocumentStoreClient, token: str) -> None:
        with self._lock:
            existing = self._futures.get(record.id)
            if existing and not existing.done():
                return
            self._futures[record.id] = self.executor.submit(self._run_job, record, store, token)

    def pending_jobs(self) -> list[str]:
        with self._lock:
            return [job_id for job_id, future in self._futures.items() if not future.done()]

    def drain(self, timeout: float | None = None) -> bool:
        """Wait for running continuations. True when none are left."""
        with self._lock:
            futures = list(self._futures.values())
        if futures:
            _, not_done = wait(futures, timeout=timeout)
            if not_done:
                logger.warning("%d job(s) still running after %.1fs", len(not_done), timeout or 0)
                return False
        return True

    def shutdown(self, timeout: float | None = None) -> None:
        pending = len(self.pending_jobs())
        if pending:
            logger.info("Waiting for %d pending job(s) before shutdown", pending)
        self.drain(timeout)
        self.executor.shutdown(wait=True)
        self.client.close()
