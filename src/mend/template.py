# mend/template.py
"""
Shell-style template expansion for recipe commands, commit messages and hooks.

Placeholders:
    $1 .. $9, ${N}      positional step arguments (recipes only)
    $NAME, ${NAME}      environment lookup (plan env over inherited env)

Unresolved $NAME references are left in place so the shell running the
command can still see them. A positional reference with no argument is a
TemplateError. Anything else starting with '$' ($0, $$, a trailing '$',
shell parameter expansions like ${CC:-gcc}) is copied through unchanged.
"""

from __future__ import annotations

import logging
import os
import re
from collections.abc import Mapping, Sequence

from .exceptions import TemplateError

logger = logging.getLogger(__name__)

_NAME = r"[A-Za-z_][A-Za-z0-9_]*"

_PLACEHOLDER = re.compile(
    r"\$(?:"
    r"\{(?P<braced>[^}]*)\}"  # ${...}
    r"|(?P<digit>[0-9])"  # $1
    rf"|(?P<name>{_NAME})"  # $NAME
    r"|(?P<open>\{)"  # unterminated ${
    r"|(?P<dollar>\$)"  # $$
    r")"
)
_NAME_RE = re.compile(rf"^{_NAME}$")


def check_template(template: str) -> None:
    """
    Validate placeholder syntax without expanding anything.

    Raises:
        TemplateError: On an unterminated '${' or an empty '${}'
    """
    for match in _PLACEHOLDER.finditer(template):
        _classify(match, template)


def _classify(match: re.Match, template: str) -> tuple[str, str | int]:
    """Return ("positional", index), ("env", name) or ("literal", text)."""
    if match.group("open") is not None:
        raise TemplateError(f"Unterminated '${{' in template: {template!r}")
    if match.group("dollar") is not None:
        return "literal", match.group(0)

    braced = match.group("braced")
    if braced is not None:
        if braced.isdigit():
            return "positional", int(braced)
        if _NAME_RE.match(braced):
            return "env", braced
        if not braced:
            raise TemplateError(f"Empty placeholder '${{}}' in template: {template!r}")
        # Shell parameter expansion such as ${CC:-gcc} or ${x%.c}
        return "literal", match.group(0)

    digit = match.group("digit")
    if digit is not None:
        return "positional", int(digit)

    return "env", match.group("name")


def expand(
    template: str,
    env: Mapping[str, str],
    args: Sequence[str] | None = None,
) -> str:
    """
    Expand positional and environment placeholders in a template.

    Args:
        template: Template string (command or commit message)
        env: Environment used for $NAME lookups
        args: Positional step arguments. None means the template belongs to
            something without arguments (a hook) and positional references
            are left untouched.

    Returns:
        The expanded string

    Raises:
        TemplateError: If a positional index has no argument, or the template
            is malformed
    """

    def replace(match: re.Match) -> str:
        kind, key = _classify(match, template)
        if kind == "literal":
            return match.group(0)
        if kind == "positional":
            index = int(key)  # type: ignore[arg-type]
            if index == 0 or args is None:
                return match.group(0)
            if index > len(args):
                raise TemplateError(
                    f"Template references ${index} but only {len(args)} "
                    f"argument(s) were given: {template!r}"
                )
            return args[index - 1]

        value = env.get(key)  # type: ignore[arg-type]
        if value is None:
            logger.debug(f"Leaving unresolved variable ${key} in place")
            return match.group(0)
        return value

    return _PLACEHOLDER.sub(replace, template)


def build_environment(
    plan_env: Mapping[str, str],
    base: Mapping[str, str] | None = None,
) -> dict[str, str]:
    """
    Build the environment commands run with.

    Starts from the inherited environment and overlays plan entries in
    declaration order. Each plan value is itself expanded against the
    environment built so far, so ``PATH = "$PATH:/opt/bin"`` extends the
    inherited PATH. Plan entries win on name collision.
    """
    environment = dict(os.environ if base is None else base)
    for key, value in plan_env.items():
        environment[key] = expand(value, environment)
    logger.debug(f"Built environment with {len(plan_env)} plan variable(s)")
    return environment
