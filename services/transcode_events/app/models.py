# Import all models so SQLAlchemy's Base.metadata is populated.
# Required for Alembic autogenerate and create_all().
from app.content.models import Post
from app.transcode.models import ProcessedVideo

__all__ = [
    "Post",
    "ProcessedVideo",
]
