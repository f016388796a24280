"""
Safe .env file parser.

Parses KEY=value files without shell execution, so a publisher.env file
can hold credentials without ever being sourced by a shell.
"""

import re
from pathlib import Path
from typing import Mapping

# Values are handed to git and subprocess argv, never to a shell, but a
# command substitution in a config file is always a mistake worth flagging.
FORBIDDEN_PATTERNS = [
    r'`',           # backticks
    r'\$\(',        # command substitution
    r'\$\{',        # variable expansion
]

KEY_PATTERN = re.compile(r'^[A-Z][A-Z0-9_]*$')


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ('"', "'"):
        return value[1:-1]
    return value


def load_env(filepath: str | Path) -> dict[str, str]:
    """
    Parse env file safely, return dict.

    Lines may start with 'export '. Blank lines and '#' comments are skipped.

    Raises:
        FileNotFoundError: if file doesn't exist
        ValueError: if syntax invalid or forbidden pattern found
    """
    path = Path(filepath)
    if not path.exists():
        raise FileNotFoundError(f"Env file not found: {filepath}")

    result = {}
    for lineno, raw in enumerate(path.read_text().splitlines(), 1):
        line = raw.strip()
        if not line or line.startswith('#'):
            continue
        if line.startswith('export '):
            line = line[len('export '):].lstrip()

        if '=' not in line:
            raise ValueError(f"{path.name}:{lineno}: Invalid syntax (no '=')")

        key, _, value = line.partition('=')
        key = key.strip()
        value = _unquote(value.strip())

        if not KEY_PATTERN.match(key):
            raise ValueError(f"{path.name}:{lineno}: Invalid key '{key}'")

        for pattern in FORBIDDEN_PATTERNS:
            if re.search(pattern, value):
                raise ValueError(f"{path.name}:{lineno}: Forbidden pattern in value of {key}")

        result[key] = value

    return result


def layered_env(
    keys: list[str],
    filepath: str | Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> dict[str, str]:
    """
    Collect the given keys from an env file overlaid by the environment.

    Process environment wins over the file. Empty values are treated as
    unset. Keys not listed are ignored so unrelated environment variables
    never leak into configuration.
    """
    merged: dict[str, str] = {}
    if filepath is not None:
        for key, value in load_env(filepath).items():
            if key in keys and value != "":
                merged[key] = value
    if environ is not None:
        for key in keys:
            value = environ.get(key)
            if value:
                merged[key] = value
    return merged
