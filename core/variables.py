# PATH: core/variables.py
"""
core/variables.py - ${VAR} placeholder resolution.

Resolution rules:
- Process environment wins over the stored variable of the same name
- Single pass: a resolved value is never re-scanned for placeholders
- ${} or an unterminated/invalid placeholder is a FormatError
- A name with no value anywhere is UnresolvedVariable(name)

The environment is read once per resolve() call as a snapshot, or
injected by the caller (tests pass a fixed mapping).
"""

import os
from typing import Iterator, Mapping, Optional

from core.constants import PLACEHOLDER_CLOSE, PLACEHOLDER_OPEN, VARIABLE_NAME_PATTERN
from core.exceptions import FormatError, UnresolvedVariable


def _scan(template: str) -> Iterator[tuple[int, int, str]]:
    """Yield (start, end, name) for each placeholder in template."""
    pos = 0
    while True:
        start = template.find(PLACEHOLDER_OPEN, pos)
        if start == -1:
            return
        end = template.find(PLACEHOLDER_CLOSE, start + len(PLACEHOLDER_OPEN))
        if end == -1:
            raise FormatError("Unterminated placeholder", {"position": start})
        name = template[start + len(PLACEHOLDER_OPEN):end]
        if not name:
            raise FormatError("Empty placeholder name", {"position": start})
        if not VARIABLE_NAME_PATTERN.match(name):
            raise FormatError(
                f"Invalid placeholder name: {name!r}",
                {"position": start},
            )
        yield start, end + len(PLACEHOLDER_CLOSE), name
        pos = end + len(PLACEHOLDER_CLOSE)


def placeholders(template: str) -> list[str]:
    """Names referenced by template, in order of appearance (deduplicated)."""
    seen: list[str] = []
    for _, _, name in _scan(template):
        if name not in seen:
            seen.append(name)
    return seen


class VariableResolver:
    """
    Expands ${NAME} placeholders against stored variables and the environment.

    Args:
        variables: Persisted variable store (name -> literal value)
        environ: Environment mapping; None means snapshot os.environ per call
    """

    def __init__(
        self,
        variables: Optional[Mapping[str, str]] = None,
        environ: Optional[Mapping[str, str]] = None,
    ):
        self.variables = dict(variables or {})
        self._environ = environ

    def _environment(self) -> Mapping[str, str]:
        if self._environ is not None:
            return self._environ
        return dict(os.environ)

    def lookup(self, name: str, environ: Optional[Mapping[str, str]] = None) -> str:
        env = environ if environ is not None else self._environment()
        if name in env:
            return env[name]
        if name in self.variables:
            return self.variables[name]
        raise UnresolvedVariable(name)

    def resolve(self, template: str) -> str:
        """
        Expand every placeholder in template.

        Raises:
            FormatError: malformed placeholder
            UnresolvedVariable: placeholder with no value
        """
        tokens = list(_scan(template))
        if not tokens:
            return template

        env = self._environment()
        parts: list[str] = []
        pos = 0
        for start, end, name in tokens:
            parts.append(template[pos:start])
            parts.append(self.lookup(name, env))
            pos = end
        parts.append(template[pos:])
        return "".join(parts)
