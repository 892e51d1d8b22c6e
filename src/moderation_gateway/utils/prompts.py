"""
Moderation prompt loading.

Prompts are markdown files shipped in the package's prompts/ directory and
named ``<name>_system.md``. The moderation prompt is read once when the
gateway configuration is built.
"""

from pathlib import Path

from moderation_gateway.utils.logging import get_logger

logger = get_logger(__name__)

PROMPTS_DIR = Path(__file__).parent.parent / "prompts"


def prompt_path(prompt_name: str) -> Path:
    """Location of the prompt file for ``prompt_name``."""
    return PROMPTS_DIR / f"{prompt_name}_system.md"


def load_prompt(prompt_name: str) -> str:
    """
    Read a system prompt, stripped of surrounding whitespace.

    Args:
        prompt_name: Prompt name without the _system.md suffix (e.g., 'moderation')

    Returns:
        Prompt text

    Raises:
        FileNotFoundError: If no prompt file exists for the name
    """
    path = prompt_path(prompt_name)
    if not path.is_file():
        logger.error("Prompt file not found", extra={"prompt_name": prompt_name, "path": str(path)})
        raise FileNotFoundError(f"Prompt file not found: {path.absolute()}")

    prompt = path.read_text(encoding="utf-8").strip()
    logger.info("Loaded prompt", extra={"prompt_name": prompt_name, "prompt_chars": len(prompt)})
    return prompt
