# Import all models once to ensure SQLAlchemy mapper registry is fully populated.
# This prevents late-binding issues for relationship("ClassName").

from .users.models import User  # noqa: F401
from .auth.models import UserSession  # noqa: F401
from .categories.models import Category  # noqa: F401
from .tags.models import Tag  # noqa: F401
from .articles.models import Post, PostView, PostLike, post_tags  # noqa: F401
from .comments.models import Comment  # noqa: F401
