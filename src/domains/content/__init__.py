"""Content Domain - posts, users, and catalog tools and resources.

Exposes a content store to the model:
- Tool definitions built with JSON Schema helpers
- Handlers bound to an injected store and text generator
- ``data://`` and ``file://`` resources
"""

import random
from typing import Any, Callable, Optional

from shared.logging import get_logger
from shared.models import ResourceDefinition, ToolDefinition
from shared.schema import create_tool_schema
from mcp_server.server import Server
from domains.content.store import ContentStore

logger = get_logger(__name__)


TextGenerator = Callable[[str], str]

DEFAULT_TOPICS = [
    "seasonal recipes",
    "home gardening",
    "travel on a budget",
    "productivity habits",
    "local history",
    "beginner photography",
]


class ContentTools:
    """
    Content domain tools.
    
    Provides tools for:
    - Arithmetic and greetings
    - Listing and creating posts
    - Bulk post creation with AI-written titles and bodies
    - Listing users
    """
    
    def __init__(
        self,
        store: ContentStore,
        text_generator: Optional[TextGenerator] = None,
        rng: Optional[random.Random] = None
    ) -> None:
        self.store = store
        self.text_generator = text_generator
        self.rng = rng or random.Random()
        self._tools: list[ToolDefinition] = []
        self._define_tools()
    
    @property
    def tools(self) -> list[ToolDefinition]:
        return list(self._tools)
    
    def _define_tools(self) -> None:
        """Define all content tools."""
        
        self._tools.append(ToolDefinition(
            name="calculate_total",
            description="Calculates the total price.",
            input_schema=create_tool_schema([
                {"name": "price", "type": "integer", "description": "The price of the item."},
                {"name": "quantity", "type": "integer", "description": "The quantity of items."},
            ]),
            handler=self._calculate_total
        ))
        
        self._tools.append(ToolDefinition(
            name="greet",
            description="Greets the user.",
            input_schema=create_tool_schema([
                {"name": "name", "type": "string", "description": "The name of the user."},
            ]),
            handler=self._greet
        ))
        
        self._tools.append(ToolDefinition(
            name="list_posts",
            description="Retrieves the last N published posts with their title and excerpt.",
            input_schema=create_tool_schema([
                {"name": "count", "type": "integer", "description": "The number of posts to retrieve."},
            ]),
            handler=self._list_posts
        ))
        
        self._tools.append(ToolDefinition(
            name="create_post",
            description="Creates a new post.",
            input_schema=create_tool_schema([
                {"name": "title", "type": "string", "description": "Title of the post."},
                {"name": "content", "type": "string", "description": "Content of the post."},
                {"name": "post_type", "type": "string", "description": "Type of post (e.g., post or page)."},
            ]),
            handler=self._create_post
        ))
        
        self._tools.append(ToolDefinition(
            name="list_users",
            description="Lists all users of the site.",
            input_schema=create_tool_schema([]),
            handler=self._list_users
        ))
        
        if self.text_generator is not None:
            self._tools.append(ToolDefinition(
                name="create_bulk_posts",
                description="Creates multiple posts using AI-generated content.",
                input_schema=create_tool_schema(
                    [
                        {"name": "count", "type": "integer", "description": "The number of posts to create."},
                        {
                            "name": "topics",
                            "type": "array",
                            "description": "An array of topics to generate posts for (optional).",
                            "items": {"type": "string"},
                        },
                    ],
                    required=["count"]
                ),
                handler=self._create_bulk_posts
            ))
    
    def _calculate_total(self, params: dict[str, Any]) -> Any:
        return params["price"] * params["quantity"]
    
    def _greet(self, params: dict[str, Any]) -> str:
        return f"Hello, {params['name']}!"
    
    def _list_posts(self, params: dict[str, Any]) -> list[dict[str, Any]]:
        return self.store.list_posts(int(params["count"]))
    
    def _create_post(self, params: dict[str, Any]) -> str:
        post_id = self.store.create_post(
            title=params["title"],
            content=params["content"],
            post_type=params["post_type"]
        )
        return f"Post created with ID: {post_id}"
    
    def _list_users(self, params: dict[str, Any]) -> list[dict[str, Any]]:
        return self.store.list_users()
    
    def _create_bulk_posts(self, params: dict[str, Any]) -> list[str]:
        topics = params.get("topics") or DEFAULT_TOPICS
        
        created = []
        for _ in range(int(params["count"])):
            topic = self.rng.choice(topics)
            
            title = self.text_generator(f"Generate a post title about {topic}.").strip()
            content = self.text_generator(f"Write a detailed post about {topic}.")
            
            post_id = self.store.create_post(title=title, content=content, post_type="post")
            created.append(f"Post created with ID: {post_id}, Title: {title}")
        
        return created


def content_resources(products_path: str = "./products.json") -> list[ResourceDefinition]:
    """Resources of the content domain."""
    return [
        ResourceDefinition(
            name="users",
            uri="data://users",
            description="List of users",
            mime_type="application/json",
            data_key="users"
        ),
        ResourceDefinition(
            name="product_catalog",
            uri="file://./products.json",
            description="Product catalog",
            mime_type="application/json",
            file_path=products_path
        ),
    ]


def register_content_domain(
    server: Server,
    store: ContentStore,
    text_generator: Optional[TextGenerator] = None,
    products_path: str = "./products.json"
) -> ContentTools:
    """Register the content domain tools and resources with the MCP server."""
    content_tools = ContentTools(store, text_generator)
    
    server.registry.register_many(content_tools.tools)
    for resource in content_resources(products_path):
        server.register_resource(resource)
    
    logger.info("Content domain registered", tool_count=len(content_tools.tools))
    return content_tools


__all__ = [
    "ContentStore",
    "ContentTools",
    "content_resources",
    "register_content_domain",
]
