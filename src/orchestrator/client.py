"""AI Client - Core orchestration logic.

The client coordinates:
- Conversation state for one prompt
- Gateway interactions with the registered tool declarations
- Function call execution via the MCP Client or local capabilities
- The bounded turn loop that ends on a plain-text answer
"""

from pathlib import Path
from typing import Any, Callable, Optional, Union

from shared.config import OrchestratorSettings
from shared.errors import INTERNAL_ERROR, MCPError, LoopLimitExceededError, ToolExecutionError, ValidationError
from shared.logging import bind_context, clear_context, get_logger
from shared.models import Capability, FunctionCallPart, TextPart
from mcp_client.client import MCPClient
from mcp_server.server import Server
from orchestrator.conversation import Conversation
from orchestrator.images import GeneratedImage, image_from_candidates
from orchestrator.llm import AIGatewayAdapter, TEXT_MODEL_CAPABILITIES, collect_text

logger = get_logger(__name__)


COMMAND_PROMPT = (
    "Return the shell command to {prompt}, "
    "and false if no such command is found. "
    "Return only the shell command without any description or formatting, "
    "without any error redirection or fallback logic. "
    "It needs to be in plain text format.\n"
)

GENERATE_IMAGE_DECLARATION = {
    "name": "generate_image",
    "description": "Generates an image and returns its local file path or URL.",
    "parameters": {
        "type": "object",
        "properties": {
            "prompt": {
                "type": "string",
                "description": "The prompt for generating the image."
            }
        },
        "required": ["prompt"]
    }
}

LocalHandler = Callable[[dict[str, Any]], Any]


def wrap_result(value: Any) -> list[Any]:
    """Function responses always carry a list; wrap anything else in one."""
    if isinstance(value, list):
        return value
    if isinstance(value, tuple):
        return list(value)
    return [value]


class AIClient:
    """
    Orchestrates a conversation between the AI gateway and the MCP Server.
    
    Each turn sends the whole conversation plus tool declarations to the
    gateway, executes the function calls it asks for, and appends each
    call and its response. The loop ends when a turn has no function
    calls, or fails once ``max_turns`` is exceeded.
    
    Local capabilities are answered by the client itself and their names
    are reserved on the server so no tool can shadow them.
    """
    
    def __init__(
        self,
        server: Server,
        gateway: AIGatewayAdapter,
        max_turns: int = 10,
        tool_errors_fatal: bool = False,
        image_dir: Optional[Union[str, Path]] = None
    ) -> None:
        """
        Initialize the client.
        
        Args:
            server: MCP Server holding the registered tools
            gateway: AI gateway adapter
            max_turns: Maximum gateway round-trips per conversation
            tool_errors_fatal: Abort on failed tool calls instead of
                reporting the error to the model
            image_dir: Directory for generated image files (system temp by default)
        """
        if max_turns < 1:
            raise ValueError("max_turns must be at least 1")
        
        self.mcp = MCPClient(server)
        self.gateway = gateway
        self.max_turns = max_turns
        self.tool_errors_fatal = tool_errors_fatal
        self.image_dir = image_dir
        self.generated_images: list[GeneratedImage] = []
        
        self._local_capabilities: dict[str, tuple[dict[str, Any], LocalHandler]] = {
            GENERATE_IMAGE_DECLARATION["name"]: (
                GENERATE_IMAGE_DECLARATION,
                self._generate_image_capability
            ),
        }
        server.reserve_names(*self._local_capabilities)
    
    @classmethod
    def from_settings(
        cls,
        server: Server,
        gateway: AIGatewayAdapter,
        settings: OrchestratorSettings
    ) -> "AIClient":
        return cls(
            server,
            gateway,
            max_turns=settings.max_turns,
            tool_errors_fatal=settings.tool_errors_fatal,
            image_dir=settings.image_dir
        )
    
    def get_tool_declarations(self) -> list[dict[str, Any]]:
        """Declarations of registered tools followed by local capabilities."""
        declarations = list(self.mcp.list_tools())
        declarations.extend(declaration for declaration, _ in self._local_capabilities.values())
        return declarations
    
    def call_with_prompt(self, prompt: str) -> str:
        """
        Answer a prompt, letting the model call tools along the way.
        
        Returns:
            Text of the first gateway turn that requested no function calls
        
        Raises:
            GatewayUnavailableError: If no capable model is available
            GatewayError: If a gateway call fails
            LoopLimitExceededError: If the model does not converge in time
            ToolExecutionError: If a tool fails and tool errors are fatal
        """
        return self.run(Conversation.from_prompt(prompt))
    
    def run(self, conversation: Conversation) -> str:
        """Run turns over ``conversation`` until the model stops calling functions."""
        bind_context(conversation_id=conversation.id)
        try:
            for turn in range(1, self.max_turns + 1):
                text, called = self._run_turn(conversation, turn)
                if not called:
                    logger.info("Conversation converged", turns=turn)
                    return text
            
            logger.warning("Max turns reached", max_turns=self.max_turns)
            raise LoopLimitExceededError(self.max_turns)
        finally:
            clear_context()
    
    def _run_turn(self, conversation: Conversation, turn: int) -> tuple[str, bool]:
        """
        One round-trip: call the gateway, then execute requested function calls.
        
        Returns:
            Accumulated text and whether any function call was executed
        """
        declarations = self.get_tool_declarations()
        model = self.gateway.select_model(TEXT_MODEL_CAPABILITIES)
        
        logger.debug(
            "Calling gateway",
            turn=turn,
            model=model.model,
            contents=len(conversation),
            tools=len(declarations)
        )
        candidates = self.gateway.generate_text(model, conversation.contents, declarations)
        
        text = ""
        called = False
        
        if not candidates:
            logger.warning("Gateway returned no candidates", turn=turn)
            return text, called
        
        for part in candidates[0].content.parts:
            if isinstance(part, TextPart):
                if text:
                    text += "\n\n"
                text += part.text
            elif isinstance(part, FunctionCallPart):
                result = self._execute_function_call(part)
                conversation.add_function_exchange(part, result)
                called = True
        
        return text, called
    
    def _execute_function_call(self, call: FunctionCallPart) -> dict[str, Any]:
        """
        Execute one function call and build its response payload.
        
        Returns:
            ``{"result": [...]}`` on success, ``{"error": {...}}`` on failure
        """
        logger.info("Executing function call", function=call.name, call_id=call.id)
        
        capability = self._local_capabilities.get(call.name)
        if capability is not None:
            _, handler = capability
            try:
                return {"result": wrap_result(handler(call.args))}
            except MCPError as e:
                return self._error_payload(call.name, e.message, e.code)
            except OSError as e:
                logger.warning("Local capability failed", function=call.name, error=str(e))
                return self._error_payload(call.name, str(e), INTERNAL_ERROR)
        
        result = self.mcp.execute(call.name, call.args)
        
        if not result.ok:
            return self._error_payload(call.name, result.error or "Unknown error", result.error_code)
        
        return {"result": wrap_result(result.data)}
    
    def _error_payload(self, name: str, message: str, code: Optional[int]) -> dict[str, Any]:
        if self.tool_errors_fatal:
            raise ToolExecutionError(name, message, code)
        
        logger.info("Reporting tool error to model", function=name, code=code)
        return {"error": {"code": code, "message": message}}
    
    def _generate_image_capability(self, args: dict[str, Any]) -> str:
        prompt = args.get("prompt")
        if not isinstance(prompt, str) or not prompt:
            raise ValidationError("generate_image requires a 'prompt' string")
        
        image = self.generate_image(prompt)
        if image:
            self.generated_images.append(image)
        return image.location
    
    def generate_image(self, prompt: str) -> GeneratedImage:
        """
        Generate an image with an image-capable model.
        
        The returned handle owns any local file it points to; call
        ``release()`` on it (or use it as a context manager) to delete it.
        """
        model = self.gateway.select_model([Capability.IMAGE_GENERATION])
        candidates = self.gateway.generate_image(model, prompt)
        
        image = image_from_candidates(candidates, self.image_dir)
        logger.info("Generated image", location=image.location, local=image.is_local)
        return image
    
    def release_images(self) -> None:
        """Delete local files of images generated during conversations."""
        for image in self.generated_images:
            image.release()
        self.generated_images.clear()
    
    def generate_text(self, prompt: str) -> str:
        """Single-shot text generation without tools; Text parts are concatenated."""
        model = self.gateway.select_model([Capability.TEXT_GENERATION])
        return collect_text(self.gateway.generate_text(model, prompt))
    
    def generate_command(self, prompt: str) -> str:
        """Ask for a single literal shell command. The reply is returned unvalidated."""
        return self.generate_text(COMMAND_PROMPT.format(prompt=prompt))
