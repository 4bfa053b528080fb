from bookwiki.schemas.schemas import (
    OKResponse,
    TagCreate, TagUpdate, TagResponse, TagWithPermissions, TagPermissionsUpdate,
    PermissionCreate, PermissionUpdate, PermissionResponse,
    UserCreate, UserTagsUpdate, UserResponse, CallerResponse,
    PageCreate, PageUpdate, PageRename, FlagUpdate,
    PageResponse, PageSummary, RevisionResponse, DiffResponse,
    CommentCreate, CommentUpdate, CommentResponse,
)

__all__ = [
    "OKResponse",
    "TagCreate", "TagUpdate", "TagResponse", "TagWithPermissions", "TagPermissionsUpdate",
    "PermissionCreate", "PermissionUpdate", "PermissionResponse",
    "UserCreate", "UserTagsUpdate", "UserResponse", "CallerResponse",
    "PageCreate", "PageUpdate", "PageRename", "FlagUpdate",
    "PageResponse", "PageSummary", "RevisionResponse", "DiffResponse",
    "CommentCreate", "CommentUpdate", "CommentResponse",
]
