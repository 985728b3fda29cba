import pytest

from diligent.requirements_parser import (
    LexicalError,
    ManifestParseError,
    Requirement,
    RequirementsSyntaxError,
    TokenKind,
    parse_requirements,
    tokenize,
)


@pytest.mark.parametrize(
    "text, expected",
    [
        ("testPackage", [Requirement("testPackage")]),
        (" testPackage ", [Requirement("testPackage")]),
        (" testPackage\n", [Requirement("testPackage")]),
        ("\ntestPackage\n", [Requirement("testPackage")]),
        ("\ntestPackage\nanotherPackage\n", [Requirement("testPackage"), Requirement("anotherPackage")]),
        ("testPackage==1.2.3", [Requirement("testPackage", "==", "1.2.3")]),
        (" testPackage == 1.2.3 ", [Requirement("testPackage", "==", "1.2.3")]),
        ("\ttestPackage\t==\t1.2.3\r\n", [Requirement("testPackage", "==", "1.2.3")]),
        ("", []),
        ("\n\r\n  \n", []),
    ],
)
def test_parse_requirements(text, expected):
    assert parse_requirements(text.encode()) == expected


def test_parse_mixed_manifest_keeps_file_order():
    manifest = b"\ntestPackage1\ntestPackage2==1.2.3\ntestPackage3~=4.5\ntestPackage4>=7.8.9a\n"

    reqs = parse_requirements(manifest)

    assert [str(req) for req in reqs] == [
        "testPackage1",
        "testPackage2==1.2.3",
        "testPackage3~=4.5",
        "testPackage4>=7.8.9a",
    ]
    assert reqs[0].version_operator == "" and reqs[0].package_version == ""


def test_two_requirement_example():
    reqs = parse_requirements(b"\ntestPackage1\ntestPackage2==1.2.3\n")

    assert reqs == [Requirement("testPackage1"), Requirement("testPackage2", "==", "1.2.3")]


def test_parsing_is_repeatable():
    manifest = b"alpha==1.0\nbeta\n\ngamma<=2\n"

    assert parse_requirements(manifest) == parse_requirements(manifest)


def test_accepts_text_input():
    assert parse_requirements("requests==2.31.0\n") == [Requirement("requests", "==", "2.31.0")]


@pytest.mark.parametrize(
    "text, message",
    [
        ("==1.2.3", "expected a package name"),
        ("==", "expected a package name"),
        ("myPackage someVersion", "expected a comparison operator"),
        ("myPackage==", "expected a version string"),
        ("myPackage== ==", "expected a version string"),
        ("myPackage==1.2.3 anotherPackage", "expected end of line or end of file"),
    ],
)
def test_syntax_errors_name_the_expectation(text, message):
    with pytest.raises(RequirementsSyntaxError) as excinfo:
        parse_requirements(text.encode())

    assert message in str(excinfo.value)


@pytest.mark.parametrize("text", ["@", "valid==1.0\nbad^pkg\n", "pkg==1.0 # comment"])
def test_lexical_errors_abort_the_manifest(text):
    with pytest.raises(RequirementsSyntaxError) as excinfo:
        parse_requirements(text.encode())

    assert str(excinfo.value).startswith("tokenizer error:")
    assert isinstance(excinfo.value.__cause__, LexicalError)
    assert isinstance(excinfo.value, ManifestParseError)


def test_tokenizer_collapses_newlines_and_ends_once():
    tokens = list(tokenize(b"  pkg >= 1.0\r\n\n"))

    assert [token.kind for token in tokens] == [
        TokenKind.STRING,
        TokenKind.OPERATOR,
        TokenKind.STRING,
        TokenKind.NEWLINE,
        TokenKind.END_OF_INPUT,
    ]
    assert [token.value for token in tokens[:4]] == ["pkg", ">=", "1.0", "\r\n\n"]
    assert tokens[0].offset == 2


def test_tokenizer_empty_input_is_end_of_input():
    tokens = list(tokenize(b""))

    assert len(tokens) == 1
    assert tokens[0].kind is TokenKind.END_OF_INPUT


def test_tokenizer_reports_offending_character():
    stream = tokenize(b"pkg @")

    assert next(stream).value == "pkg"
    with pytest.raises(LexicalError) as excinfo:
        next(stream)
    assert excinfo.value.character == "@"
    assert excinfo.value.offset == 4
    assert list(stream) == []


def test_lexical_error_names_non_ascii_bytes_and_offset():
    with pytest.raises(RequirementsSyntaxError) as excinfo:
        parse_requirements("pkg\nné==1.0\n".encode("utf-8"))

    assert str(excinfo.value) == "tokenizer error: unexpected character, '\\xc3' at offset 5"
    assert excinfo.value.__cause__.offset == 5


def test_hyphenated_names_are_outside_the_grammar():
    with pytest.raises(RequirementsSyntaxError) as excinfo:
        parse_requirements(b"python-dateutil==2.8\n")

    assert "unexpected character, '-' at offset 6" in str(excinfo.value)
