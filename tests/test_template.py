# tests/test_template.py
import pytest

from mend.exceptions import TemplateError
from mend.template import build_environment, check_template, expand

ENV = {"DEFAULT_FILE": "main.c", "HOME": "/home/me"}


def test_positional_and_env():
    cmd = expand("untangler rename $1 $2 -w -f $DEFAULT_FILE", ENV, ["B", "calculate_value"])
    assert cmd == "untangler rename B calculate_value -w -f main.c"


def test_commit_template():
    assert expand("R - Rename $1 to $2", ENV, ["B", "calculate_value"]) == "R - Rename B to calculate_value"


def test_braced_forms():
    assert expand("${DEFAULT_FILE}.bak ${1}x", ENV, ["a"]) == "main.c.bak ax"


def test_braced_multi_digit_positional():
    args = [str(i) for i in range(1, 12)]
    assert expand("${11} $1", {}, args) == "11 1"


def test_bare_digit_is_single_digit():
    # $10 is $1 followed by a literal 0
    assert expand("$10", {}, ["a"]) == "a0"


def test_unresolved_env_is_left_in_place():
    assert expand("echo $NOPE ${ALSO_NOPE}", ENV, []) == "echo $NOPE ${ALSO_NOPE}"


def test_missing_positional_raises():
    with pytest.raises(TemplateError, match=r"references \$2 but only 1 argument"):
        expand("rename $1 $2", ENV, ["B"])


def test_no_args_leaves_positionals_for_hooks():
    assert expand("awk '{print $1}' $DEFAULT_FILE", ENV) == "awk '{print $1}' main.c"


def test_dollar_zero_and_double_dollar_pass_through():
    assert expand("echo $0 $$ costs 5$", ENV, []) == "echo $0 $$ costs 5$"


def test_name_boundary():
    assert expand("$DEFAULT_FILE.o", ENV, []) == "main.c.o"
    assert expand("$DEFAULT_FILEX", ENV, []) == "$DEFAULT_FILEX"


def test_substituted_values_are_not_reexpanded():
    assert expand("$1", {"X": "boom"}, ["$X"]) == "$X"


def test_no_placeholders_is_identity():
    text = "make && cp a.out a.out.bak"
    assert expand(text, ENV, []) == text


@pytest.mark.parametrize("template", ["echo ${DEFAULT_FILE", "echo ${}", "make CC=${CC:-gcc} ${"])
def test_check_template_rejects_malformed(template):
    with pytest.raises(TemplateError):
        check_template(template)


@pytest.mark.parametrize(
    "template",
    [
        "echo $1 ${2} $NAME ${NAME}",
        "plain",
        "$$ $0 trailing $",
        "make CC=${CC:-gcc}",
        "echo ${#x} ${x%.c} ${1a} ${-x}",
    ],
)
def test_check_template_accepts_well_formed(template):
    check_template(template)


def test_shell_parameter_expansions_pass_through():
    template = "make CC=${CC:-gcc} ${SRC%.c}.o ${#SRC} -f $DEFAULT_FILE $1"
    assert expand(template, ENV, ["all"]) == "make CC=${CC:-gcc} ${SRC%.c}.o ${#SRC} -f main.c all"


def test_build_environment_overlays_and_extends():
    env = build_environment(
        {"PATH": "$PATH:/opt/untangler/bin", "DEFAULT_FILE": "main.c", "OUT": "$DEFAULT_FILE.o"},
        base={"PATH": "/usr/bin", "HOME": "/home/me"},
    )
    assert env == {
        "PATH": "/usr/bin:/opt/untangler/bin",
        "HOME": "/home/me",
        "DEFAULT_FILE": "main.c",
        "OUT": "main.c.o",
    }


def test_build_environment_plan_wins():
    env = build_environment({"HOME": "/tmp"}, base={"HOME": "/home/me"})
    assert env["HOME"] == "/tmp"


def test_build_environment_defaults_to_process_env(monkeypatch):
    monkeypatch.setenv("MEND_TEST_VAR", "inherited")
    env = build_environment({"COPY": "$MEND_TEST_VAR"})
    assert env["MEND_TEST_VAR"] == "inherited"
    assert env["COPY"] == "inherited"


def test_build_environment_does_not_mutate_base():
    base = {"A": "1"}
    build_environment({"A": "2"}, base=base)
    assert base == {"A": "1"}
