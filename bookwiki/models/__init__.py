from bookwiki.models.models import (
    Comment,
    Permission,
    Tag,
    TagPermission,
    User,
    UserTag,
    WikiPage,
    WikiPageRevision,
    utcnow,
)

__all__ = [
    "Comment",
    "Permission",
    "Tag",
    "TagPermission",
    "User",
    "UserTag",
    "WikiPage",
    "WikiPageRevision",
    "utcnow",
]
