"""Variable expansion for search configurations.

Syntax::

    $name        ${name}        ${name.with.dots}        $$  (literal $)

References to unknown variables are left untouched.  Variables whose value
is empty count as unset, so ``$name`` stays literal when ``name=""``.
"""

from __future__ import annotations

import os
import re
from typing import Mapping

_VARIABLE_RE = re.compile(r"\$([A-Za-z0-9_]+|\{[A-Za-z0-9_.]+\}|\$)")


def build_variables(
    global_properties: Mapping[str, str] | None = None,
    environ: Mapping[str, str] | None = None,
) -> dict[str, str]:
    """Merge the process environment with host-wide properties.

    Global properties win over environment variables of the same name.  An
    empty value removes the name altogether.
    """
    variables: dict[str, str] = {}
    for source in (os.environ if environ is None else environ, global_properties or {}):
        for name, value in source.items():
            if value:
                variables[name] = value
            else:
                variables.pop(name, None)
    return variables


def replace_macro(text: str, variables: Mapping[str, str]) -> str:
    """Substitute ``$name`` / ``${name}`` references in *text*."""
    if "$" not in text:
        return text

    def _substitute(match: re.Match[str]) -> str:
        token = match.group(1)
        if token == "$":
            return "$"
        name = token[1:-1] if token.startswith("{") else token
        value = variables.get(name)
        return match.group(0) if value is None else value

    return _VARIABLE_RE.sub(_substitute, text)
