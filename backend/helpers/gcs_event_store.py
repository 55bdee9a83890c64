"""
GCS trigger event store - audit trail of trigger events in Google Cloud Storage.

Path: gs://{bucket}/{base_path}/{YYYY-MM-DD}.json (one JSON array per day,
keyed by the event's triggered_at date).
"""

import asyncio
import json
import logging
from typing import Any, Dict, List

from google.cloud import storage

from config.settings import settings
from schemas.triggers import TriggerEvent

logger = logging.getLogger(__name__)


class GCSEventStore:
    """
    Append-only event store writing daily JSON blobs.

    Blob IO runs in a worker thread so a slow bucket does not stall
    other campaigns' evaluation.
    """

    def __init__(
        self,
        bucket: str | None = None,
        base_path: str | None = None,
        client: storage.Client | None = None,
    ):
        self.bucket = bucket or settings.gcs_bucket
        self.base_path = base_path or settings.gcs_base_path
        self._client = client or storage.Client(project=settings.google_cloud_project)
        self._lock = asyncio.Lock()
        logger.info(f"GCS event store: gs://{self.bucket}/{self.base_path}")

    def _get_blob_path(self, event: TriggerEvent) -> str:
        date_str = event.triggered_at.strftime("%Y-%m-%d")
        return f"{self.base_path}/{date_str}.json"

    async def save_trigger_event(self, event: TriggerEvent) -> None:
        """Append the event to its daily blob; raises on duplicate id or GCS failure."""
        # Serialize read-modify-write of the daily blob within this process
        async with self._lock:
            location = await asyncio.to_thread(self._append, event)
        logger.info(f"[TRIGGERS] Saved event {event.id} ({event.status}) to {location}")

    def _append(self, event: TriggerEvent) -> str:
        blob_path = self._get_blob_path(event)
        blob = self._client.bucket(self.bucket).blob(blob_path)

        entries: List[Dict[str, Any]] = []
        if blob.exists():
            entries = json.loads(blob.download_as_text())

        if any(e.get("id") == event.id for e in entries):
            raise ValueError(f"Trigger event {event.id} already saved")

        entries.append(event.model_dump(mode="json"))
        blob.upload_from_string(
            json.dumps(entries, indent=2, default=str),
            content_type="application/json",
        )
        return f"gs://{self.bucket}/{blob_path}"

    async def list_events(self, date_str: str) -> List[TriggerEvent]:
        """Events stored for one day (YYYY-MM-DD)."""
        blob = self._client.bucket(self.bucket).blob(f"{self.base_path}/{date_str}.json")
        exists = await asyncio.to_thread(blob.exists)
        if not exists:
            return []
        content = await asyncio.to_thread(blob.download_as_text)
        return [TriggerEvent.model_validate(e) for e in json.loads(content)]
