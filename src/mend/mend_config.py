from __future__ import annotations

import logging
import os
import shlex
from dataclasses import dataclass, field
from pathlib import Path

from .exceptions import ConfigError

logger = logging.getLogger(__name__)

HOOK_POINTS = ("before_step", "after_step")


# ─────────────────────────────────────────────────────────────────────────────
# Source reference
# ─────────────────────────────────────────────────────────────────────────────
@dataclass(frozen=True)
class SourceRef:
    """
    Where the plan was written against (the `from` table).

    Informational only; the engine never checks it out. The CLI --worktree
    mode uses it to prepare a detached worktree before running.
    """

    repo: str
    sha: str

    def __post_init__(self) -> None:
        if not self.repo:
            raise ConfigError("from.repo cannot be empty")
        if not self.sha:
            raise ConfigError("from.sha cannot be empty")

    @property
    def repo_path(self) -> Path:
        """The repository path with environment variables and `~` expanded."""
        return Path(os.path.expandvars(self.repo)).expanduser()


# ─────────────────────────────────────────────────────────────────────────────
# Recipes, hooks and steps
# ─────────────────────────────────────────────────────────────────────────────
@dataclass(frozen=True)
class Recipe:
    """
    A named, reusable command template.

    `tag` is accepted for documents that declare a single tag; it is folded
    into `tags` on construction and reset to None, so `tags` is the only
    field callers need to read.
    """

    name: str
    """Unique recipe name, as referenced by steps."""

    run: str
    """Shell command template. May contain $1.. and $NAME placeholders."""

    commit_template: str | None = None
    """Commit message template. None → the step's source line is used."""

    tags: frozenset[str] = field(default_factory=frozenset)
    """Tags used by hooks' when_tag / when_not_tag predicates."""

    tag: str | None = None
    """Single-tag shorthand, merged into `tags`."""

    def __post_init__(self) -> None:
        if not self.name:
            logger.warning("Invalid config: Recipe name cannot be empty")
            raise ConfigError("Recipe name cannot be empty")
        if not isinstance(self.run, str) or not self.run.strip():
            logger.warning(f"Invalid config for recipe '{self.name}': run cannot be empty")
            raise ConfigError(f"Recipe '{self.name}' must have a non-empty 'run'")
        if self.commit_template is not None and not isinstance(self.commit_template, str):
            raise ConfigError(f"Recipe '{self.name}': commit_template must be a string")

        tags = self.tags
        if isinstance(tags, str) or not all(isinstance(t, str) for t in tags):
            raise ConfigError(f"Recipe '{self.name}': tags must be a list of strings")
        if self.tag is not None:
            if not isinstance(self.tag, str):
                raise ConfigError(f"Recipe '{self.name}': tag must be a string")
            tags = [*tags, self.tag]
        object.__setattr__(self, "tags", frozenset(tags))
        object.__setattr__(self, "tag", None)


@dataclass(frozen=True)
class Hook:
    """
    A command run before or after every step whose recipe tags match.

    Hooks have no positional arguments; only $NAME substitution applies.
    """

    run: str
    when_tag: str | None = None
    when_not_tag: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.run, str) or not self.run.strip():
            logger.warning("Invalid config: Hook run cannot be empty")
            raise ConfigError("Hook must have a non-empty 'run'")
        for attr in ("when_tag", "when_not_tag"):
            value = getattr(self, attr)
            if value is not None and (not isinstance(value, str) or not value):
                raise ConfigError(f"Hook {attr} must be a non-empty string")


@dataclass(frozen=True)
class Step:
    """One recipe invocation with concrete arguments."""

    recipe: str
    args: tuple[str, ...] = ()
    line: str = ""
    """Source line from the plan. Used as the default commit message."""

    @classmethod
    def parse(cls, line: str) -> Step:
        """
        Parse a plan line like ``rename B calculate_value``.

        Words are split shell-style, so ``rename "a b" c`` has two arguments.
        """
        if not isinstance(line, str):
            raise ConfigError(f"Step must be a string, got {type(line).__name__}: {line!r}")
        try:
            words = shlex.split(line)
        except ValueError as e:
            raise ConfigError(f"Cannot parse step {line!r}: {e}") from None
        if not words:
            raise ConfigError("Step cannot be empty")
        return cls(recipe=words[0], args=tuple(words[1:]), line=line.strip())

    def __str__(self) -> str:
        return self.line or shlex.join([self.recipe, *self.args])


# ─────────────────────────────────────────────────────────────────────────────
# The merged plan
# ─────────────────────────────────────────────────────────────────────────────
@dataclass(frozen=True)
class MendPlan:
    """
    Fully merged plan returned by load_config().
    Contains everything needed to instantiate a StepExecutor.
    """

    steps: tuple[Step, ...] = ()

    recipes: dict[str, Recipe] = field(default_factory=dict)

    env: dict[str, str] = field(default_factory=dict)
    """
    Plan environment, in declaration order.
    Overlays the inherited process environment when commands run.
    """

    before_step: tuple[Hook, ...] = ()
    after_step: tuple[Hook, ...] = ()

    source: SourceRef | None = None
    """The `from` table, if any."""

    path: Path | None = None
    """Root document the plan was loaded from (None for streams or code)."""

    def __post_init__(self) -> None:
        object.__setattr__(self, "steps", tuple(self.steps))
        object.__setattr__(self, "before_step", tuple(self.before_step))
        object.__setattr__(self, "after_step", tuple(self.after_step))
        for name, recipe in self.recipes.items():
            if name != recipe.name:
                raise ConfigError(f"Recipe registered as '{name}' is named '{recipe.name}'")

    def hooks(self, point: str) -> tuple[Hook, ...]:
        if point not in HOOK_POINTS:
            raise ValueError(f"Unknown hook point '{point}'. Valid: {', '.join(HOOK_POINTS)}")
        return getattr(self, point)

    def unresolved_steps(self) -> list[tuple[int, Step]]:
        """Steps whose recipe is not declared, with their indices."""
        return [(i, s) for i, s in enumerate(self.steps) if s.recipe not in self.recipes]
