"""AI Gateway adapters.

Supports multiple backends behind one interface:
- OpenAI (chat via LlamaIndex, images via the OpenAI SDK)
- Azure OpenAI
- Mock gateway for tests

Adapters select a model by capability, translate conversation content
to the backend format and map the reply back to typed parts. They have
no MCP or tool-execution access.
"""

import json
from abc import ABC, abstractmethod
from collections import deque
from typing import Any, Callable, Iterable, Optional, Union

import httpx
from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from shared.config import LLMSettings
from shared.errors import GatewayError, GatewayUnavailableError
from shared.logging import get_logger
from shared.models import (
    Candidate,
    Capability,
    Content,
    ContentRole,
    FileDataPart,
    FunctionCallPart,
    FunctionResponsePart,
    InlineDataPart,
    ModelHandle,
    Part,
    TextPart,
)

logger = get_logger(__name__)


TEXT_MODEL_CAPABILITIES = [
    Capability.MULTIMODAL_INPUT,
    Capability.TEXT_GENERATION,
    Capability.FUNCTION_CALLING,
]

Contents = Union[str, list[Content]]


def as_contents(contents: Contents) -> list[Content]:
    """Accept a bare prompt string wherever a conversation is expected."""
    if isinstance(contents, str):
        return [Content.user_text(contents)]
    return list(contents)


def collect_text(candidates: list[Candidate]) -> str:
    """Concatenate the Text parts of the first candidate."""
    if not candidates:
        return ""
    return candidates[0].content.text


class AIGatewayAdapter(ABC):
    """
    Abstract base class for AI gateway backends.
    
    Gateway Rules:
    - The gateway receives only the conversation and the declared tools
    - It outputs ordered parts: text, function calls, or media
    - It never executes tools itself
    """
    
    name: str = "base"
    
    def __init__(self, models: list[ModelHandle]) -> None:
        self._models = models
    
    @property
    def models(self) -> list[ModelHandle]:
        return list(self._models)
    
    def is_available(self) -> bool:
        """Whether the backend is configured well enough to be called."""
        return True
    
    def select_model(self, required_capabilities: Iterable[Capability]) -> ModelHandle:
        """
        Select the first model supporting every required capability.
        
        Raises:
            GatewayUnavailableError: If the backend is not configured or
                no model covers the capabilities
        """
        required = set(required_capabilities)
        
        if not self.is_available():
            raise GatewayUnavailableError(
                f"AI gateway '{self.name}' is not configured (missing API key?)"
            )
        
        for model in self._models:
            if required <= set(model.capabilities):
                logger.debug("Model selected", provider=self.name, model=model.model)
                return model
        
        wanted = ", ".join(sorted(c.value for c in required))
        raise GatewayUnavailableError(f"No available AI model supports: {wanted}")
    
    @abstractmethod
    def generate_text(
        self,
        model: ModelHandle,
        contents: Contents,
        tool_declarations: Optional[list[dict[str, Any]]] = None
    ) -> list[Candidate]:
        """
        Generate the next model turn for a conversation.
        
        Args:
            model: Handle returned by ``select_model``
            contents: Conversation so far, or a bare prompt
            tool_declarations: Functions the model may call
        
        Returns:
            Candidates in backend order
        """
        pass
    
    @abstractmethod
    def generate_image(self, model: ModelHandle, prompt: str) -> list[Candidate]:
        """
        Generate an image for a prompt.
        
        Returns:
            Candidates whose parts carry InlineData or FileData
        """
        pass


class OpenAIGateway(AIGatewayAdapter):
    """OpenAI gateway: chat through LlamaIndex, images through the OpenAI SDK."""
    
    name = "openai"
    
    def __init__(self, settings: LLMSettings) -> None:
        super().__init__([
            ModelHandle(
                provider=self.name,
                model=settings.model,
                capabilities=TEXT_MODEL_CAPABILITIES
            ),
            ModelHandle(
                provider=self.name,
                model=settings.image_model,
                capabilities=[Capability.IMAGE_GENERATION]
            ),
        ])
        self.settings = settings
        self._llm = None
        self._image_client = None
    
    def is_available(self) -> bool:
        return bool(self.settings.api_key)
    
    def _get_llm(self):
        """Lazy initialization of LlamaIndex LLM."""
        if self._llm is None:
            from llama_index.llms.openai import OpenAI
            
            self._llm = OpenAI(
                model=self.settings.model,
                api_key=self.settings.api_key,
                api_base=self.settings.api_base,
                temperature=self.settings.temperature,
                max_tokens=self.settings.max_tokens,
                timeout=self.settings.timeout_seconds,
                max_retries=0,
            )
        return self._llm
    
    def _get_image_client(self):
        """Lazy initialization of the OpenAI SDK client used for images."""
        if self._image_client is None:
            from openai import OpenAI
            
            self._image_client = OpenAI(
                api_key=self.settings.api_key,
                base_url=self.settings.api_base,
                timeout=httpx.Timeout(self.settings.timeout_seconds),
                max_retries=0,
            )
        return self._image_client
    
    def _image_model_name(self) -> str:
        return self.settings.image_model
    
    def _call_with_retry(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        """Retry transient connection failures; other errors propagate at once."""
        from openai import APIConnectionError
        
        retryer = Retrying(
            retry=retry_if_exception_type(APIConnectionError),
            stop=stop_after_attempt(self.settings.max_retries + 1),
            wait=wait_exponential(multiplier=1, min=1, max=10),
            reraise=True
        )
        return retryer(fn, *args, **kwargs)
    
    def _convert_contents(self, contents: list[Content]) -> list:
        """Convert conversation content to LlamaIndex chat messages."""
        from llama_index.core.base.llms.types import ImageBlock, TextBlock
        from llama_index.core.llms import ChatMessage, MessageRole
        
        messages = []
        for content in contents:
            if content.role == ContentRole.MODEL:
                text = content.text
                tool_calls = [
                    {
                        "id": part.id,
                        "type": "function",
                        "function": {
                            "name": part.name,
                            "arguments": json.dumps(part.args, default=str)
                        }
                    }
                    for part in content.function_calls
                ]
                chat_msg = ChatMessage(role=MessageRole.ASSISTANT, content=text or None)
                if tool_calls:
                    chat_msg.additional_kwargs = {"tool_calls": tool_calls}
                messages.append(chat_msg)
                continue
            
            blocks = []
            for part in content.parts:
                if isinstance(part, TextPart):
                    blocks.append(TextBlock(text=part.text))
                elif isinstance(part, InlineDataPart):
                    blocks.append(ImageBlock(image=part.decode(), image_mimetype=part.mime_type))
                elif isinstance(part, FileDataPart):
                    blocks.append(ImageBlock(url=part.file_uri, image_mimetype=part.mime_type))
                elif isinstance(part, FunctionResponsePart):
                    messages.append(ChatMessage(
                        role=MessageRole.TOOL,
                        content=json.dumps(part.result, default=str),
                        additional_kwargs={"tool_call_id": part.id, "name": part.name}
                    ))
            
            if blocks:
                messages.append(ChatMessage(role=MessageRole.USER, blocks=blocks))
        
        return messages
    
    @staticmethod
    def _tool_call_to_part(tool_call: Any) -> FunctionCallPart:
        if isinstance(tool_call, dict):
            call_id = tool_call.get("id")
            function = tool_call.get("function", {})
            name = function.get("name", "")
            arguments = function.get("arguments") or "{}"
        else:
            call_id = tool_call.id
            name = tool_call.function.name
            arguments = tool_call.function.arguments or "{}"
        
        try:
            args = json.loads(arguments) if isinstance(arguments, str) else dict(arguments)
        except json.JSONDecodeError:
            logger.warning("Unparsable function call arguments", function=name)
            args = {}
        
        return FunctionCallPart(id=call_id, name=name, args=args)
    
    def generate_text(
        self,
        model: ModelHandle,
        contents: Contents,
        tool_declarations: Optional[list[dict[str, Any]]] = None
    ) -> list[Candidate]:
        """Generate the next turn using the OpenAI chat API."""
        llm = self._get_llm()
        chat_messages = self._convert_contents(as_contents(contents))
        
        kwargs: dict[str, Any] = {}
        if tool_declarations:
            kwargs["tools"] = [
                {"type": "function", "function": declaration}
                for declaration in tool_declarations
            ]
        
        try:
            response = self._call_with_retry(llm.chat, chat_messages, **kwargs)
        except Exception as e:
            logger.error("Text generation failed", provider=self.name, error=str(e))
            raise GatewayError(f"Text generation failed: {e}") from e
        
        parts: list[Part] = []
        message = response.message
        if message is not None and message.content:
            parts.append(TextPart(text=message.content))
        
        tool_calls = (message.additional_kwargs.get("tool_calls") if message is not None else None) or []
        parts.extend(self._tool_call_to_part(tc) for tc in tool_calls)
        
        return [Candidate(
            content=Content(role=ContentRole.MODEL, parts=parts),
            finish_reason="tool_calls" if tool_calls else "stop"
        )]
    
    def generate_image(self, model: ModelHandle, prompt: str) -> list[Candidate]:
        """Generate an image using the OpenAI images API."""
        client = self._get_image_client()
        model_name = self._image_model_name()
        
        kwargs: dict[str, Any] = {"model": model_name, "prompt": prompt, "n": 1}
        if model_name.startswith("dall-e"):
            kwargs["response_format"] = "b64_json"
        
        try:
            response = self._call_with_retry(client.images.generate, **kwargs)
        except Exception as e:
            logger.error("Image generation failed", provider=self.name, error=str(e))
            raise GatewayError(f"Image generation failed: {e}") from e
        
        candidates = []
        for image in response.data or []:
            if getattr(image, "b64_json", None):
                part: Part = InlineDataPart(mime_type="image/png", data=image.b64_json)
            elif getattr(image, "url", None):
                part = FileDataPart(file_uri=image.url, mime_type="image/png")
            else:
                continue
            candidates.append(Candidate(content=Content(role=ContentRole.MODEL, parts=[part])))
        
        return candidates


class AzureOpenAIGateway(OpenAIGateway):
    """Azure OpenAI gateway using deployments instead of model names."""
    
    name = "azure_openai"
    
    def is_available(self) -> bool:
        return bool(self.settings.api_key and self.settings.api_base)
    
    def _get_llm(self):
        """Lazy initialization of LlamaIndex LLM."""
        if self._llm is None:
            from llama_index.llms.azure_openai import AzureOpenAI
            
            self._llm = AzureOpenAI(
                model=self.settings.model,
                deployment_name=self.settings.deployment_name or self.settings.model,
                api_key=self.settings.api_key,
                azure_endpoint=self.settings.api_base,
                api_version=self.settings.api_version,
                temperature=self.settings.temperature,
                max_tokens=self.settings.max_tokens,
                timeout=self.settings.timeout_seconds,
                max_retries=0,
            )
        return self._llm
    
    def _get_image_client(self):
        if self._image_client is None:
            from openai import AzureOpenAI
            
            self._image_client = AzureOpenAI(
                api_key=self.settings.api_key,
                azure_endpoint=self.settings.api_base,
                api_version=self.settings.api_version,
                timeout=httpx.Timeout(self.settings.timeout_seconds),
                max_retries=0,
            )
        return self._image_client
    
    def _image_model_name(self) -> str:
        return self.settings.image_deployment_name or self.settings.image_model


class MockGateway(AIGatewayAdapter):
    """Mock gateway for testing without API calls."""
    
    name = "mock"
    
    def __init__(
        self,
        settings: Optional[LLMSettings] = None,
        capabilities: Optional[Iterable[Capability]] = None
    ) -> None:
        super().__init__([
            ModelHandle(
                provider=self.name,
                model="mock-model",
                capabilities=list(capabilities) if capabilities is not None else list(Capability)
            )
        ])
        self.settings = settings
        self.call_history: list[dict[str, Any]] = []
        self._text_responses: deque[list[Candidate]] = deque()
        self._image_responses: deque[list[Candidate]] = deque()
    
    def queue_candidates(self, candidates: list[Candidate], image: bool = False) -> None:
        """Queue the candidates returned by the next text (or image) call."""
        if image:
            self._image_responses.append(candidates)
        else:
            self._text_responses.append(candidates)
    
    def queue_text_response(self, *parts: Part) -> None:
        """Queue a single model candidate made of ``parts``."""
        self.queue_candidates([Candidate(content=Content(role=ContentRole.MODEL, parts=list(parts)))])
    
    def queue_image_response(self, *parts: Part) -> None:
        self.queue_candidates(
            [Candidate(content=Content(role=ContentRole.MODEL, parts=list(parts)))],
            image=True
        )
    
    def generate_text(
        self,
        model: ModelHandle,
        contents: Contents,
        tool_declarations: Optional[list[dict[str, Any]]] = None
    ) -> list[Candidate]:
        """Return the next queued response, or a fixed text reply."""
        self.call_history.append({
            "method": "generate_text",
            "model": model.model,
            "contents": as_contents(contents),
            "tool_declarations": tool_declarations,
        })
        
        if self._text_responses:
            return self._text_responses.popleft()
        
        return [Candidate(
            content=Content(
                role=ContentRole.MODEL,
                parts=[TextPart(text="This is a mock response.")]
            ),
            finish_reason="stop"
        )]
    
    def generate_image(self, model: ModelHandle, prompt: str) -> list[Candidate]:
        """Return the next queued image response, or no candidates."""
        self.call_history.append({
            "method": "generate_image",
            "model": model.model,
            "prompt": prompt,
        })
        
        if self._image_responses:
            return self._image_responses.popleft()
        return []


def create_gateway(settings: LLMSettings) -> AIGatewayAdapter:
    """
    Factory function to create the configured AI gateway.
    
    Supports:
    - openai: OpenAI API
    - azure_openai: Azure OpenAI Service
    - mock: Mock gateway for testing
    
    Args:
        settings: LLM configuration settings
    
    Returns:
        Configured gateway adapter
    
    Raises:
        ValueError: If provider is not supported
    """
    gateways = {
        "openai": OpenAIGateway,
        "azure_openai": AzureOpenAIGateway,
        "mock": MockGateway,
    }
    
    gateway_class = gateways.get(settings.provider)
    if not gateway_class:
        raise ValueError(
            f"Unsupported AI gateway: {settings.provider}. "
            f"Supported: {list(gateways.keys())}"
        )
    
    logger.info("Creating AI gateway", provider=settings.provider, model=settings.model)
    return gateway_class(settings)
