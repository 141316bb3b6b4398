# mend/tag_matcher.py
"""
Pure decision logic for deciding which hooks apply to a recipe invocation.

A hook applies when:
- when_tag is unset, or the recipe carries that tag, AND
- when_not_tag is unset, or the recipe does not carry that tag.

A hook naming the same tag in both fields never applies. That is legal.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Set

from .mend_config import Hook

logger = logging.getLogger(__name__)


def matches(tags: Set[str], when_tag: str | None = None, when_not_tag: str | None = None) -> bool:
    if when_tag is not None and when_tag not in tags:
        return False
    if when_not_tag is not None and when_not_tag in tags:
        return False
    return True


def hook_applies(hook: Hook, tags: Set[str]) -> bool:
    return matches(tags, hook.when_tag, hook.when_not_tag)


def select_hooks(hooks: Iterable[Hook], tags: Set[str]) -> list[tuple[int, Hook]]:
    """
    Return the hooks that apply to a recipe with `tags`, in list order.

    Each hook is paired with its index in the original list so failures can
    name the hook that failed.
    """
    selected = [(i, hook) for i, hook in enumerate(hooks) if hook_applies(hook, tags)]
    logger.debug(f"Selected hooks {[i for i, _ in selected]} for tags {sorted(tags)}")
    return selected
