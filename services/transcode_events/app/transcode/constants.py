"""
Transcode events: static constants and enum types.
"""
import enum


class JobStatus(str, enum.Enum):
    """Job status as reported by MediaConvert. Anything unrecognised is OTHER."""
    COMPLETE = "COMPLETE"
    ERROR = "ERROR"
    OTHER = "OTHER"


class VideoStatus(str, enum.Enum):
    PENDING = "PENDING"
    COMPLETE = "COMPLETE"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self is not VideoStatus.PENDING


class Outcome(str, enum.Enum):
    """Result reported back to the webhook sender."""
    CREATED = "created"
    UPDATED = "updated"
    DUPLICATE = "duplicate"
    ORPHAN = "orphan"
    IGNORED = "ignored"


# EventBridge envelope values emitted for MediaConvert state changes
MEDIACONVERT_SOURCE = "aws.mediaconvert"

# Key inside ``detail.userMetadata`` carrying the owning post id
POST_REFERENCE_KEY = "post_id"

# Output classification (mirrors the job template: hls/, mp4/, thumb/ destinations)
HLS_MANIFEST_NAME = "master.m3u8"
MP4_EXTENSIONS = (".mp4", ".m4v")
THUMBNAIL_EXTENSIONS = (".jpg", ".jpeg", ".png")

# Height thresholds (px) → resolution label, highest first
RESOLUTION_LABELS: tuple[tuple[int, str], ...] = (
    (2160, "4K"),
    (1080, "1080p"),
    (720, "720p"),
)
