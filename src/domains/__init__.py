"""Application Domains.

Each domain contains:
- Tool definitions
- Handlers bound to injected collaborators
- Resource definitions

Domains are isolated by design with no cross-domain calls or shared state.
"""

from typing import TYPE_CHECKING, Callable, Optional

if TYPE_CHECKING:
    from domains.content.store import ContentStore
    from mcp_server.server import Server


def load_all_domains(
    server: "Server",
    store: "ContentStore",
    text_generator: Optional[Callable[[str], str]] = None,
    products_path: str = "./products.json"
) -> None:
    """
    Load and register all application domains.
    
    This is called once per invocation, before the first prompt, to
    register all domain tools and resources.
    """
    from domains.content import register_content_domain
    
    register_content_domain(server, store, text_generator, products_path)


__all__ = ["load_all_domains"]
