"""In-memory content store.

Holds posts and users for a single invocation. It also serves as the
data provider for ``data://`` resources.
"""

import itertools
from datetime import datetime, timezone
from typing import Any, Optional

from shared.logging import get_logger

logger = get_logger(__name__)


EXCERPT_WORDS = 55

SEED_USERS = [
    {"id": 1, "username": "admin", "display_name": "Site Admin", "email": "admin@example.com", "role": "administrator"},
    {"id": 2, "username": "alice", "display_name": "Alice Johnson", "email": "alice@example.com", "role": "editor"},
    {"id": 3, "username": "bob", "display_name": "Bob Smith", "email": "bob@example.com", "role": "author"},
]


def excerpt(content: str, words: int = EXCERPT_WORDS) -> str:
    """First ``words`` words of ``content``, with an ellipsis if truncated."""
    tokens = content.split()
    if len(tokens) <= words:
        return " ".join(tokens)
    return " ".join(tokens[:words]) + "…"


class ContentStore:
    """
    Posts and users kept in memory.
    
    Posts are numbered from 1 in creation order and listed newest first.
    """
    
    def __init__(self, users: Optional[list[dict[str, Any]]] = None) -> None:
        self._users = [dict(u) for u in (users if users is not None else SEED_USERS)]
        self._posts: list[dict[str, Any]] = []
        self._ids = itertools.count(1)
    
    def create_post(
        self,
        title: str,
        content: str,
        post_type: str = "post",
        status: str = "publish"
    ) -> int:
        """Create a post and return its id."""
        post_id = next(self._ids)
        self._posts.append({
            "id": post_id,
            "title": title,
            "content": content,
            "post_type": post_type,
            "status": status,
            "created_at": datetime.now(timezone.utc).isoformat(),
        })
        logger.info("Post created", post_id=post_id, post_type=post_type)
        return post_id
    
    def get_post(self, post_id: int) -> Optional[dict[str, Any]]:
        for post in self._posts:
            if post["id"] == post_id:
                return dict(post)
        return None
    
    def list_posts(self, count: int, status: str = "publish") -> list[dict[str, Any]]:
        """Title and excerpt of the last ``count`` posts with ``status``, newest first."""
        if count <= 0:
            return []
        
        matching = [p for p in reversed(self._posts) if p["status"] == status]
        return [
            {"title": p["title"], "content": excerpt(p["content"])}
            for p in matching[:count]
        ]
    
    def list_users(self) -> list[dict[str, Any]]:
        return [dict(u) for u in self._users]
    
    def get_data(self, key: str) -> Any:
        """
        Data provider lookup for ``data://<key>`` resources.
        
        Raises:
            KeyError: If ``key`` is not a known data set
        """
        if key == "users":
            return self.list_users()
        if key == "posts":
            return [dict(p) for p in self._posts]
        raise KeyError(key)
