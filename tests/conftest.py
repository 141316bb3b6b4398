# tests/conftest.py
import sys
import os
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..', 'src')))

import asyncio
from pathlib import Path
from unittest.mock import AsyncMock, Mock

import pytest
from mend.mend_config import Hook, MendPlan, Recipe, Step

DATA_DIR = Path(__file__).parent / "data"


@pytest.fixture
def data_dir():
    return DATA_DIR


@pytest.fixture
def rename_recipe():
    return Recipe(
        name="rename",
        run="untangler rename $1 $2 -w -f $DEFAULT_FILE",
        commit_template="R - Rename $1 to $2",
    )


@pytest.fixture
def format_recipe():
    return Recipe(
        name="format",
        run="clang-format -i $DEFAULT_FILE",
        commit_template="d - Format",
        tag="binary_identical",
    )


@pytest.fixture
def sample_plan(rename_recipe, format_recipe):
    return MendPlan(
        steps=(Step.parse("format"), Step.parse("rename B calculate_value")),
        recipes={"rename": rename_recipe, "format": format_recipe},
        env={"DEFAULT_FILE": "main.c"},
        before_step=(
            Hook(run="make && cp a.out a.out.bak", when_tag="binary_identical"),
            Hook(run="make", when_not_tag="binary_identical"),
        ),
        after_step=(
            Hook(run="diff a.out a.out.bak", when_tag="binary_identical"),
            Hook(run="make test", when_not_tag="binary_identical"),
        ),
    )


@pytest.fixture
def create_proc():
    """
    Factory fixture that returns asyncio subprocess mocks.
    Use it like:
        proc = create_proc(stdout=b"hello\\n", returncode=0)
        with patch("asyncio.create_subprocess_shell", return_value=proc):
            ...
    """
    def _make(stdout=b"", returncode=0, delay=0.0):
        proc = AsyncMock()

        async def communicate():
            if delay:
                await asyncio.sleep(delay)
            return stdout, None

        proc.communicate = communicate
        proc.returncode = returncode
        proc.pid = 4242
        proc.kill = Mock(side_effect=lambda: setattr(proc, "returncode", -9))
        proc.wait = AsyncMock(return_value=returncode)
        return proc

    return _make
