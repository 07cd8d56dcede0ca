"""
Prompt management for LegiSync.

Loads system prompts from separate text files so prompt wording can be
edited without touching code.
"""

import logging
from pathlib import Path
from typing import Dict

logger = logging.getLogger(__name__)

PROMPTS_DIR = Path(__file__).parent


class PromptLoader:
    """Loads and caches prompts from text files."""

    _cache: Dict[str, str] = {}

    @classmethod
    def load(cls, prompt_name: str) -> str:
        """
        Load a prompt from a text file.

        Args:
            prompt_name: Prompt name without the .txt extension
                         (e.g. "bill_analysis")

        Returns:
            The prompt text

        Raises:
            FileNotFoundError: If the prompt does not exist
        """
        if prompt_name in cls._cache:
            return cls._cache[prompt_name]

        prompt_file = PROMPTS_DIR / f"{prompt_name}.txt"

        if not prompt_file.exists():
            raise FileNotFoundError(
                f"Prompt file not found: {prompt_file}\n"
                f"Available prompts: {cls.list_available()}"
            )

        prompt_text = prompt_file.read_text(encoding="utf-8")
        cls._cache[prompt_name] = prompt_text

        logger.debug(f"Loaded prompt '{prompt_name}' ({len(prompt_text)} chars)")
        return prompt_text

    @classmethod
    def list_available(cls) -> list[str]:
        """Names of all available prompts (without .txt)."""
        return sorted(p.stem for p in PROMPTS_DIR.glob("*.txt"))

    @classmethod
    def reload(cls, prompt_name: str = None) -> None:
        """
        Drop cached prompts so they are re-read on next use.

        Args:
            prompt_name: Specific prompt, or None for all
        """
        if prompt_name:
            cls._cache.pop(prompt_name, None)
            logger.info(f"Reloaded prompt: {prompt_name}")
        else:
            cls._cache.clear()
            logger.info("Reloaded all prompts")


def get_prompt(name: str) -> str:
    """Convenience wrapper around ``PromptLoader.load``."""
    return PromptLoader.load(name)
