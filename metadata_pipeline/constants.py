"""
Pipeline — static constants and enum types.
"""
import enum

# Only objects under this prefix are processed.
INCOMING_PREFIX = "incoming/"

# Derived artifacts: metadata/<basename(source_key)>.json
METADATA_PREFIX = "metadata/"
METADATA_SUFFIX = ".json"
METADATA_CONTENT_TYPE = "application/json"

# Case-insensitive allow-list of source extensions
ALLOWED_EXTENSIONS: tuple[str, ...] = (".jpg", ".jpeg", ".png")


class ImageFormat(str, enum.Enum):
    JPEG = "JPEG"
    PNG = "PNG"
    GIF = "GIF"
    WEBP = "WEBP"
    BMP = "BMP"
    TIFF = "TIFF"


# Pillow format names that are reported under another ImageFormat
FORMAT_ALIASES: dict[str, ImageFormat] = {
    "MPO": ImageFormat.JPEG,  # multi-picture JPEG written by cameras
}


class ProcessingOutcome(str, enum.Enum):
    """Per-message result of the batch processor. Never persisted."""
    COMPLETED = "COMPLETED"
    SKIPPED_ALREADY_DONE = "SKIPPED_ALREADY_DONE"
    SKIPPED_INELIGIBLE = "SKIPPED_INELIGIBLE"
    SKIPPED_UNDECODABLE = "SKIPPED_UNDECODABLE"
    SKIPPED_MALFORMED = "SKIPPED_MALFORMED"
    FAILED = "FAILED"  # retryable: redelivered by the queue

    @property
    def retryable(self) -> bool:
        return self is ProcessingOutcome.FAILED
