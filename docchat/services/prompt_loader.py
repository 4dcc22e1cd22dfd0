"""System prompt for the document chat, read from the prompt file."""
from pathlib import Path

from docchat.config import settings


def load_prompt(base_dir: Path | None = None) -> str:
    path = settings.get_prompt_path(base_dir)
    if not path.exists():
        raise FileNotFoundError(f"Prompt file not found: {path}")
    return path.read_text(encoding="utf-8").strip()
