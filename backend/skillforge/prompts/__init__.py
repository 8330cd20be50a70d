from pathlib import Path
from typing import Dict, Optional

PROMPTS_DIR = Path(__file__).parent
PROMPT_KINDS = ("system", "user")


def load_prompts(
    prompts_dir: Optional[Path] = None,
) -> Dict[str, Dict[str, Dict[str, str]]]:
    """Index templates stored as ``<kind>/<group>/<name>.txt``.

    The result is addressed as ``PROMPTS[kind][group][name]``. User templates
    are ``str.format`` strings; literal braces are doubled.
    """
    prompts_dir = prompts_dir or PROMPTS_DIR
    prompts: Dict[str, Dict[str, Dict[str, str]]] = {kind: {} for kind in PROMPT_KINDS}

    for kind in PROMPT_KINDS:
        for template in sorted((prompts_dir / kind).glob("*/*.txt")):
            group = prompts[kind].setdefault(template.parent.name, {})
            group[template.stem] = template.read_text(encoding="utf-8").strip()

    return prompts


PROMPTS = load_prompts()
