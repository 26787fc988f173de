"""LLM integration components.

Language models are optional collaborators. The engine runs fully without
them; when configured they interpret free text the parser does not know and
voice freeform NPCs.

- `client.py`: LiteLLM client wrapper and RetryPolicy
- `prompt_loader.py`: Prompt template loading utility
- `interpreter.py`: Interpreter protocol and LLMInterpreter
- `dialogue.py`: DialogueGenerator protocol and LLMDialogueGenerator

Import collaborators directly from submodules:
    from casefile.llm.interpreter import LLMInterpreter
    from casefile.llm.dialogue import LLMDialogueGenerator
"""

# Only import shared utilities that don't cause circular imports
from casefile.llm.client import RetryPolicy, get_completion, get_model_string, parse_json_response
from casefile.llm.prompt_loader import get_loader

__all__ = [
    "RetryPolicy",
    "get_completion",
    "parse_json_response",
    "get_model_string",
    "get_loader",
]
