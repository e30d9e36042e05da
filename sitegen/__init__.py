import os
from pathlib import Path
from typing import Dict, List, MutableMapping, Optional


def parse_env_text(text: str) -> Dict[str, str]:
    """Parse ``KEY=value`` lines as written in a provider ``.env`` file.

    Blank lines, ``#`` comments and lines without ``=`` are ignored. A leading
    ``export`` and one pair of matching quotes around the value are dropped.
    """
    pairs: Dict[str, str] = {}
    for raw in text.splitlines():
        line = raw.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, value = line.partition("=")
        key = key.strip()
        if key.startswith("export "):
            key = key[len("export "):].strip()
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in "'\"":
            value = value[1:-1]
        if key:
            pairs[key] = value
    return pairs


def load_env_file(path: Path, environ: Optional[MutableMapping[str, str]] = None) -> List[str]:
    """Copy unset variables from ``path`` into ``environ``; return the keys applied.

    A missing or unreadable file applies nothing.
    """
    env = os.environ if environ is None else environ
    try:
        text = path.read_text(encoding="utf-8")
    except OSError:
        return []
    applied = []
    for key, value in parse_env_text(text).items():
        if key not in env:
            env[key] = value
            applied.append(key)
    return applied


def _load_dotenv_if_needed() -> List[str]:
    # Tests build their provider registries explicitly
    if os.getenv("PYTEST_CURRENT_TEST"):
        return []
    return load_env_file(Path(os.getenv("SITEGEN_ENV_FILE", ".env") or ".env"))


_load_dotenv_if_needed()
