"""
System prompts for the interpreter and dialogue collaborators.

Layout under casefile/llm/prompts/:
    interpreter/system_prompt.txt
    dialogue/system_prompt.txt

A prompt is re-read when its file's mtime moves forward, so wording can be
tuned against a running server.
"""

import logging
from pathlib import Path
from typing import NamedTuple, Optional

logger = logging.getLogger(__name__)

PROMPTS_DIR = Path(__file__).parent / "prompts"


class _Entry(NamedTuple):
    text: str
    mtime: float


class PromptLoader:
    """mtime-checked cache of prompt files.

    Attributes:
        prompts_dir: Root holding one subdirectory per collaborator
    """

    def __init__(self, prompts_dir: Optional[Path] = None):
        self.prompts_dir = Path(prompts_dir or PROMPTS_DIR)
        self._entries: dict[str, _Entry] = {}

    def get_prompt(self, category: str, filename: str, reload: bool = False) -> str:
        """
        Text of prompts_dir/category/filename.

        A cached copy outlives its file: if the file disappears after a
        successful read, the last text keeps being served.

        Raises:
            FileNotFoundError: The file is missing and was never read
        """
        key = f"{category}/{filename}"
        path = self.prompts_dir / category / filename
        entry = self._entries.get(key)

        if not path.exists():
            if entry is None:
                raise FileNotFoundError(f"No prompt at {path}")
            logger.warning(f"{path} is gone, serving cached {key}")
            return entry.text

        mtime = path.stat().st_mtime
        if reload or entry is None or mtime > entry.mtime:
            if entry is not None:
                logger.info(f"Re-reading prompt {key}")
            entry = _Entry(path.read_text(encoding="utf-8"), mtime)
            self._entries[key] = entry
        return entry.text


_loader: Optional[PromptLoader] = None


def get_loader() -> PromptLoader:
    """Process-wide loader over the packaged prompts."""
    global _loader
    if _loader is None:
        _loader = PromptLoader()
    return _loader
