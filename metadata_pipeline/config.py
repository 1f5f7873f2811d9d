from pydantic_settings import BaseSettings, SettingsConfigDict

from metadata_pipeline.constants import INCOMING_PREFIX, METADATA_PREFIX


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Queue ────────────────────────────────────────────────────────────────
    queue_url: str = ""
    # Partial batch responses need ReportBatchItemFailures on the event source.
    # When disabled, any failure fails the whole batch.
    report_batch_item_failures: bool = True

    # ── AWS ───────────────────────────────────────────────────────────────────
    aws_region: str = "us-east-1"
    aws_endpoint_url: str = ""
    aws_max_attempts: int = 3

    # ── Storage layout ───────────────────────────────────────────────────────
    incoming_prefix: str = INCOMING_PREFIX
    metadata_prefix: str = METADATA_PREFIX
    metadata_bucket: str = ""  # empty = write next to the source object

    # ── Logging ──────────────────────────────────────────────────────────────
    log_level: str = "INFO"
