"""Tests for the build argument library."""

import pytest

from kustomize_stage.args import build_args


@pytest.mark.parametrize(
    ("build_arguments", "kustomize_path", "expected"),
    [
        ([], "", []),
        (["--foo"], "", ["--foo"]),
        ([], "foo", ["foo"]),
        (["--foo"], "bar", ["--foo", "bar"]),
        (["--foo", "--bar"], "", ["--foo", "--bar"]),
        (["--foo bar", "--baz"], "", ["--foo", "bar", "--baz"]),
        (["--foo bar", "--baz"], "barfoo", ["--foo", "bar", "--baz", "barfoo"]),
        (["--foo", "bar", "--baz"], "barfoo", ["--foo", "bar", "--baz", "barfoo"]),
    ],
    ids=[
        "no-args-no-path",
        "one-arg-no-path",
        "no-args-path",
        "one-arg-path",
        "multiple-args-no-path",
        "args-with-spaces-no-path",
        "args-with-spaces-path",
        "args-no-spaces-path",
    ],
)
def test_build_args(
    build_arguments: list[str], kustomize_path: str, expected: list[str]
) -> None:
    """Test flattening build arguments and appending the path."""
    assert build_args(build_arguments, kustomize_path) == expected


def test_whitespace_only_argument() -> None:
    """Test an argument of only whitespace contributes no tokens."""
    assert build_args(["  ", "--foo", "\t\n"], "") == ["--foo"]
    assert build_args([" "]) == []


def test_path_with_spaces_is_not_split() -> None:
    """Test the kustomize path is always a single token."""
    assert build_args(["--enable-helm"], "my app/overlays") == [
        "--enable-helm",
        "my app/overlays",
    ]


def test_multiple_spaces_between_flags() -> None:
    """Test runs of whitespace inside an argument are collapsed."""
    assert build_args(["  --load-restrictor   LoadRestrictionsNone "], "app") == [
        "--load-restrictor",
        "LoadRestrictionsNone",
        "app",
    ]


def test_input_is_not_modified() -> None:
    """Test the input sequence is left untouched."""
    arguments = ["--foo bar"]
    build_args(arguments, "path")
    assert arguments == ["--foo bar"]
