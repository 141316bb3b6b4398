from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, BinaryIO

try:
    import tomllib as tomli  # Python 3.11+
except ImportError:
    import tomli  # <3.11

from .exceptions import ConfigError, TemplateError
from .mend_config import HOOK_POINTS, Hook, MendPlan, Recipe, SourceRef, Step
from .template import check_template

logger = logging.getLogger(__name__)

KNOWN_KEYS = {"from", "include", "env", "recipes", "hooks", "steps"}


@dataclass
class _Merged:
    """Accumulates documents in merge order. Later documents win by name."""

    source: SourceRef | None = None
    env: dict[str, str] = field(default_factory=dict)
    recipes: dict[str, Recipe] = field(default_factory=dict)
    hooks: dict[str, list[Hook]] = field(
        default_factory=lambda: {point: [] for point in HOOK_POINTS}
    )
    loaded: set[Path] = field(default_factory=set)
    documents: dict[Path, dict[str, Any]] = field(default_factory=dict)


# =====================================================================
#   Main loader
# =====================================================================
def load_config(path: str | Path | BinaryIO) -> MendPlan:
    """
    Load a mend TOML document and everything it includes into one MendPlan.

    Includes are resolved relative to the document that lists them and are
    merged before that document's own content, so the including document
    overrides its includes and later includes override earlier ones
    (recipes and env by name; hooks are appended in merge order). Only the
    root document may declare steps.

    Raises:
        ConfigError: On any malformed, unreadable or cyclic configuration
    """
    root_path: Path | None = None
    if not hasattr(path, "read"):
        root_path = Path(path).resolve()
        data = _read_document(root_path)
        label = root_path.name
        base_dir = root_path.parent
    else:
        try:
            data = tomli.load(path)  # type: ignore[arg-type]
        except tomli.TOMLDecodeError as e:
            raise ConfigError(f"Unable to load data from stream: {e}") from None
        label = "<stream>"
        base_dir = Path.cwd()

    merged = _Merged()
    stack = [root_path] if root_path else []
    if root_path:
        merged.loaded.add(root_path)
    _merge_document(data, label=label, base_dir=base_dir, merged=merged, stack=stack)

    steps = _parse_steps(data.get("steps", []), label)

    plan = MendPlan(
        steps=tuple(steps),
        recipes=merged.recipes,
        env=merged.env,
        before_step=tuple(merged.hooks["before_step"]),
        after_step=tuple(merged.hooks["after_step"]),
        source=merged.source,
        path=root_path,
    )

    unresolved = plan.unresolved_steps()
    if unresolved:
        known = ", ".join(sorted(plan.recipes)) or "(none)"
        details = "; ".join(
            f"step {i + 1} `{step}` uses undeclared recipe '{step.recipe}'" for i, step in unresolved
        )
        raise ConfigError(f"{details}. Available recipes: {known}")

    logger.debug(
        f"Loaded plan from {label}: {len(plan.steps)} steps, {len(plan.recipes)} recipes, "
        f"{len(plan.before_step)}+{len(plan.after_step)} hooks, "
        f"{len(merged.loaded)} document(s)"
    )
    return plan


# =====================================================================
#   Documents and includes
# =====================================================================
def _read_document(path: Path, included_from: str | None = None) -> dict[str, Any]:
    try:
        with open(path, "rb") as f:
            return tomli.load(f)
    except OSError as e:
        if included_from is None:
            raise ConfigError(f"Could not read file `{path}`: {e.strerror}") from None
        raise ConfigError(
            f"Could not read include file `{path}` included from `{included_from}`: {e.strerror}"
        ) from None
    except tomli.TOMLDecodeError as e:
        raise ConfigError(f"Unable to load data from `{path}`: {e}") from None


def _merge_document(
    data: dict[str, Any],
    *,
    label: str,
    base_dir: Path,
    merged: _Merged,
    stack: list[Path],
    with_hooks: bool = True,
) -> None:
    """
    Merge a document's includes (recursively), then the document itself.

    A document reached a second time is merged again so its recipes, env
    and source win by position, but its hooks are only taken the first time.
    """
    if with_hooks:
        for key in data:
            if key not in KNOWN_KEYS:
                logger.warning(f"Ignoring unknown key '{key}' in {label}")

    includes = data.get("include", [])
    if not isinstance(includes, list) or not all(isinstance(i, str) for i in includes):
        raise ConfigError(f"'include' in {label} must be a list of paths")

    for include in includes:
        include_path = (base_dir / Path(include).expanduser()).resolve()

        if include_path in stack:
            cycle = " -> ".join(p.name for p in [*stack, include_path])
            raise ConfigError(f"Include cycle detected: {cycle}")

        if include_path in merged.loaded:
            logger.debug(f"Re-applying `{include}` from {label}: already merged, hooks kept once")
            include_data = merged.documents[include_path]
            include_hooks = False
        else:
            merged.loaded.add(include_path)
            include_data = _read_document(include_path, included_from=label)
            if include_data.get("steps"):
                raise ConfigError(
                    f"Included file `{include}` declares steps; only the root document may. "
                    f"Move them into the including document."
                )
            merged.documents[include_path] = include_data
            logger.debug(f"Merging include `{include}` from {label}")
            include_hooks = True

        _merge_document(
            include_data,
            label=include_path.name,
            base_dir=include_path.parent,
            merged=merged,
            stack=[*stack, include_path],
            with_hooks=include_hooks,
        )

    _merge_own(data, label, merged, with_hooks=with_hooks)


def _merge_own(data: dict[str, Any], label: str, merged: _Merged, with_hooks: bool = True) -> None:
    # ────── from ──────
    if "from" in data:
        from_dict = data["from"]
        if not isinstance(from_dict, dict):
            raise ConfigError(f"'from' in {label} must be a table with 'repo' and 'sha'")
        try:
            merged.source = SourceRef(**from_dict)
        except TypeError as e:
            raise ConfigError(f"Invalid config in [from] of {label}: {e}") from None

    # ────── env ──────
    env = data.get("env", {})
    if not isinstance(env, dict):
        raise ConfigError(f"[env] in {label} must be a table")
    for key, value in env.items():
        if not isinstance(value, str):
            raise ConfigError(f"env.{key} in {label} must be a string, got {value!r}")
        _check(value, f"env.{key} in {label}")
        if key in merged.env:
            logger.debug(f"env.{key} from {label} overrides earlier value")
        merged.env[key] = value

    # ────── recipes ──────
    recipes = data.get("recipes", {})
    if not isinstance(recipes, dict):
        raise ConfigError(f"[recipes] in {label} must be a table")
    for name, recipe_dict in recipes.items():
        if not isinstance(recipe_dict, dict):
            raise ConfigError(f"[recipes.{name}] in {label} must be a table")
        try:
            recipe = Recipe(name=name, **recipe_dict)
        except TypeError as e:
            raise ConfigError(f"Invalid config in [recipes.{name}] of {label}: {e}") from None
        _check(recipe.run, f"recipes.{name}.run in {label}")
        if recipe.commit_template is not None:
            _check(recipe.commit_template, f"recipes.{name}.commit_template in {label}")
        if name in merged.recipes:
            logger.debug(f"Recipe '{name}' from {label} overrides earlier definition")
        merged.recipes[name] = recipe

    # ────── hooks ──────
    if not with_hooks:
        return
    hooks = data.get("hooks", {})
    if not isinstance(hooks, dict):
        raise ConfigError(f"[hooks] in {label} must be a table")
    for point, hook_list in hooks.items():
        if point not in HOOK_POINTS:
            raise ConfigError(
                f"Unknown hook point 'hooks.{point}' in {label}. Valid: {', '.join(HOOK_POINTS)}"
            )
        if not isinstance(hook_list, list):
            raise ConfigError(f"[[hooks.{point}]] in {label} must be an array of tables")
        for hook_dict in hook_list:
            if not isinstance(hook_dict, dict):
                raise ConfigError(f"[[hooks.{point}]] in {label} must be an array of tables")
            try:
                hook = Hook(**hook_dict)
            except TypeError as e:
                raise ConfigError(f"Invalid config in [[hooks.{point}]] of {label}: {e}") from None
            _check(hook.run, f"hooks.{point} in {label}")
            merged.hooks[point].append(hook)


def _parse_steps(steps: Any, label: str) -> list[Step]:
    if not isinstance(steps, list):
        raise ConfigError(f"'steps' in {label} must be a list of strings")
    return [Step.parse(line) for line in steps]


def _check(template: str, where: str) -> None:
    try:
        check_template(template)
    except TemplateError as e:
        raise ConfigError(f"Bad template in {where}: {e}") from None
