"""Conversation state for the Orchestrator.

A conversation is an ordered, append-only sequence of Content items that
lives for exactly one orchestration.
"""

import uuid
from typing import Any, Iterator, Optional

from shared.logging import get_logger
from shared.models import (
    Content,
    ContentRole,
    FunctionCallPart,
    FunctionResponsePart,
)

logger = get_logger(__name__)


class Conversation:
    """
    Append-only conversation history.
    
    Responsibilities:
    - Seed the history from a user prompt
    - Append function call / response pairs in order
    - Provide the content list sent to the gateway
    """
    
    def __init__(self, contents: Optional[list[Content]] = None) -> None:
        self.id = str(uuid.uuid4())
        self._contents: list[Content] = list(contents or [])
    
    @classmethod
    def from_prompt(cls, prompt: str) -> "Conversation":
        """Create a conversation holding one user Text part."""
        conversation = cls([Content.user_text(prompt)])
        logger.debug("Conversation created", conversation_id=conversation.id)
        return conversation
    
    @property
    def contents(self) -> list[Content]:
        """Snapshot of the history; later appends do not affect it."""
        return list(self._contents)
    
    def __len__(self) -> int:
        return len(self._contents)
    
    def __iter__(self) -> Iterator[Content]:
        return iter(list(self._contents))
    
    def add(self, content: Content) -> None:
        self._contents.append(content)
    
    def add_function_exchange(
        self,
        call: FunctionCallPart,
        result: dict[str, Any]
    ) -> None:
        """
        Append a model function call followed by the user's response to it.
        
        Args:
            call: Function call part as returned by the gateway
            result: Response payload; echoed with the call's id and name
        """
        self._contents.append(Content(role=ContentRole.MODEL, parts=[call]))
        self._contents.append(Content(
            role=ContentRole.USER,
            parts=[FunctionResponsePart(id=call.id, name=call.name, result=result)]
        ))
