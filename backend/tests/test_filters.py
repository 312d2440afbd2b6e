import pytest

from ragchat.rag.filters import Condition, eq, parse_filter, quote


def test_single_equality():
    expr = parse_filter("document_id == 'abc-123'")

    assert expr.conditions == (Condition(key="document_id", op="==", value="abc-123"),)


def test_conjunction_with_and_keyword_and_symbol():
    expected = (
        Condition(key="source", op="==", value="faq.txt"),
        Condition(key="category", op="!=", value="code_block"),
    )
    for text in (
        "source == 'faq.txt' && category != 'code_block'",
        "source == 'faq.txt' AND category != 'code_block'",
        "source=='faq.txt'and category!='code_block'",
    ):
        assert parse_filter(text).conditions == expected


def test_quoted_values_survive_round_trip():
    name = "it's a \\ file.txt"

    assert parse_filter(eq("source", name)).conditions[0].value == name


def test_quote_escapes_single_quotes():
    assert quote("a'b") == "'a\\'b'"


def test_dotted_keys_are_allowed():
    assert parse_filter("meta.lang == 'python'").conditions[0].key == "meta.lang"


@pytest.mark.parametrize(
    "text",
    ["", "source = 'x'", "source == x", "source == 'x' OR page == '1'", "== 'x'"],
)
def test_invalid_expressions_raise(text):
    with pytest.raises(ValueError):
        parse_filter(text)
