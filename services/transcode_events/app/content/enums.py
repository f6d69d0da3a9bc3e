import enum


class PostStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    PROCESSING = "PROCESSING"  # Submitted by the author, waiting on its video transcode
    PUBLISHED = "PUBLISHED"
