from pathlib import Path

from listing_worker.inference.exceptions import InferenceError

_DEFAULT_PROMPT_DIR = Path(__file__).parent / "prompts"


def load_prompt_template(name: str, prompt_dir: Path | None = None) -> str:
    """Load a stage prompt template from a file.

    Args:
        name: Template file name, e.g. "research_prompt.txt".
        prompt_dir: Directory to read from. Defaults to the bundled prompts.

    Returns:
        The raw template string with str.format placeholders.

    Raises:
        InferenceError: if the file cannot be read.
    """
    path = (prompt_dir or _DEFAULT_PROMPT_DIR) / name
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise InferenceError(f"Failed to load prompt template {name}: {exc}") from exc
