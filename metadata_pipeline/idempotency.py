"""
Idempotency gate — "has the metadata for this source already been written?"

The derived artifact key is a pure function of the source key, so the artifact
itself is the completion marker and no external state is needed. Two workers
can both pass the gate for the same object before either writes; both then
write byte-identical content with a full overwrite, so last-writer-wins is
safe and no lock is taken.
"""
from __future__ import annotations

import posixpath

from metadata_pipeline.constants import METADATA_PREFIX, METADATA_SUFFIX
from metadata_pipeline.s3 import ObjectStore


def derived_artifact_key(source_key: str, prefix: str = METADATA_PREFIX) -> str:
    """metadata/<basename(source_key)>.json — independent of the bucket."""
    return f"{prefix}{posixpath.basename(source_key)}{METADATA_SUFFIX}"


class IdempotencyGate:
    def __init__(
        self,
        store: ObjectStore,
        *,
        metadata_bucket: str | None = None,
        metadata_prefix: str = METADATA_PREFIX,
    ) -> None:
        self._store = store
        self._metadata_bucket = metadata_bucket or None
        self._metadata_prefix = metadata_prefix

    def artifact_location(self, source_bucket: str, source_key: str) -> tuple[str, str]:
        """(bucket, key) the artifact for this source is written to and probed at."""
        bucket = self._metadata_bucket or source_bucket
        return bucket, derived_artifact_key(source_key, self._metadata_prefix)

    def already_processed(self, source_bucket: str, source_key: str) -> bool:
        """
        True if the artifact exists, False if it definitively does not.

        Any other probe failure propagates as StoreError so the caller can
        retry instead of skipping or double-writing.
        """
        bucket, key = self.artifact_location(source_bucket, source_key)
        return self._store.exists(bucket, key)
