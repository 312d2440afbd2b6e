"""
Metadata filter expressions for the document store.

Grammar (deliberately small):

    expression := condition ( ("&&" | "AND") condition )*
    condition  := key ("==" | "!=") 'value'

Keys are metadata field names; values are single-quoted strings with `\\'`
for an embedded quote. Examples:

    document_id == '5f0c...'
    source == 'faq.txt' && category != 'code_block'
"""
import re
from dataclasses import dataclass

_CONDITION_RE = re.compile(
    r"""\s*(?P<key>[A-Za-z_][A-Za-z0-9_.]*)\s*(?P<op>==|!=)\s*'(?P<value>(?:[^'\\]|\\.)*)'\s*"""
)
_AND_RE = re.compile(r"\s*(?:&&|\bAND\b)\s*", re.IGNORECASE)


@dataclass(frozen=True)
class Condition:
    key: str
    op: str  # "==" | "!="
    value: str


@dataclass(frozen=True)
class FilterExpression:
    conditions: tuple[Condition, ...]


def parse_filter(expression: str) -> FilterExpression:
    """Parses a filter string; raises ValueError on anything outside the grammar."""
    text = (expression or "").strip()
    if not text:
        raise ValueError("Filter expression is empty")

    conditions: list[Condition] = []
    pos = 0
    while True:
        m = _CONDITION_RE.match(text, pos)
        if not m:
            raise ValueError(f"Invalid filter expression: {expression!r}")
        value = re.sub(r"\\(.)", r"\1", m.group("value"))
        conditions.append(Condition(key=m.group("key"), op=m.group("op"), value=value))
        pos = m.end()
        if pos == len(text):
            break
        sep = _AND_RE.match(text, pos)
        if not sep or sep.end() == pos:
            raise ValueError(f"Invalid filter expression: {expression!r}")
        pos = sep.end()

    return FilterExpression(conditions=tuple(conditions))


def quote(value: str) -> str:
    return "'" + str(value).replace("\\", "\\\\").replace("'", "\\'") + "'"


def eq(key: str, value: str) -> str:
    """Builds `key == 'value'` with the value safely quoted."""
    return f"{key} == {quote(value)}"
