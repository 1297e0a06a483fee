"""Translation of a CQL subset into SQLAlchemy filter and ordering clauses.

Supported grammar::

    query    := [expr] ["sortby" sortkey+]
    expr     := term (("and" | "or" | "not") term)*
    term     := "(" expr ")" | index relation value
    sortkey  := index ["/sort.ascending" | "/sort.descending"]

Boolean operators share one precedence level and associate to the left;
``a not b`` means ``a AND NOT b``. Values are bare words or double-quoted
strings with backslash escapes. Only indexes registered on the
:class:`QueryDefinition` are accepted, and every value is passed as a bound
parameter.
"""
import re
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Dict, List, Optional, Tuple

from sqlalchemy import and_, not_, or_, true
from sqlalchemy.sql.elements import ColumnElement

from batch_print.core.exceptions import QueryError

ALL_RECORDS_INDEX = "cql.allrecords"

_TOKEN_RE = re.compile(
    r"""\s*(?:
        (?P<lparen>\()
      | (?P<rparen>\))
      | (?P<relation><>|==|<=|>=|=|<|>)
      | (?P<quoted>"(?:[^"\\]|\\.)*")
      | (?P<word>[^\s()"=<>]+)
    )""",
    re.VERBOSE,
)

_BOOLEANS = ("and", "or", "not")


@dataclass
class Token:
    kind: str
    text: str
    pos: int

    def keyword(self, *names: str) -> bool:
        return self.kind == "word" and self.text.lower() in names


def tokenize(expression: str) -> List[Token]:
    tokens = []
    pos = 0
    end = len(expression.rstrip())
    while pos < end:
        match = _TOKEN_RE.match(expression, pos)
        if match is None or match.end() == pos:
            raise QueryError(f"Unexpected character at position {pos}: {expression[pos:pos + 10]!r}")
        kind = match.lastgroup
        text = match.group(kind)
        if kind == "quoted":
            text = text[1:-1]
        tokens.append(Token(kind, text, match.start(kind)))
        pos = match.end()
    return tokens


def _pattern(value: str) -> Tuple[str, bool]:
    """CQL-маска в LIKE-шаблон; второй элемент: есть ли в значении маски"""
    out = []
    masked = False
    chars = iter(value)
    for ch in chars:
        if ch == "\\":
            literal = next(chars, "\\")
            out.append("\\" + literal if literal in "%_\\" else literal)
        elif ch == "*":
            out.append("%")
            masked = True
        elif ch == "?":
            out.append("_")
            masked = True
        elif ch in "%_":
            out.append("\\" + ch)
        else:
            out.append(ch)
    return "".join(out), masked


def _unescape(value: str) -> str:
    return re.sub(r"\\(.)", r"\1", value)


class QueryField:
    """Описание индекса CQL: колонка и поддерживаемые отношения"""

    type_name = "field"
    relations = frozenset({"=", "==", "<>"})

    def __init__(self, column: Optional[str] = None):
        self.column = column

    def check_relation(self, index: str, relation: str) -> None:
        if relation not in self.relations:
            raise QueryError(f"Unsupported operator '{relation}' for {self.type_name} field {index}")

    def compare(self, column, relation: str, value: str) -> ColumnElement:
        raise NotImplementedError


class UuidField(QueryField):
    type_name = "uuid"

    def compare(self, column, relation, value):
        try:
            parsed = uuid.UUID(_unescape(value))
        except ValueError:
            raise QueryError(f"Invalid UUID: {value}")
        if relation == "<>":
            return column != parsed
        return column == parsed


class TextField(QueryField):
    """Текстовое поле: точное совпадение, маски * и ? дают поиск по шаблону.

    При ``exact=True`` маски не действуют и значение сравнивается буквально.
    """
    type_name = "text"

    def __init__(self, column: Optional[str] = None, exact: bool = False):
        super().__init__(column)
        self.exact = exact

    def compare(self, column, relation, value):
        if self.exact:
            literal = _unescape(value)
            return column != literal if relation == "<>" else column == literal
        pattern, masked = _pattern(value)
        if masked:
            clause = column.like(pattern, escape="\\")
        else:
            clause = column == _unescape(value)
        if relation == "<>":
            return not_(clause)
        return clause


class TimestampField(QueryField):
    type_name = "timestamp"
    relations = frozenset({"=", "==", "<>", "<", ">", "<=", ">="})

    def compare(self, column, relation, value):
        text = _unescape(value)
        day = _parse_day(text)
        if day is not None and relation in ("=", "==", "<>"):
            start = datetime(day.year, day.month, day.day)
            clause = and_(column >= start, column < start + timedelta(days=1))
            return not_(clause) if relation == "<>" else clause

        moment = datetime.combine(day, datetime.min.time()) if day else _parse_timestamp(text)
        if relation in ("=", "=="):
            return column == moment
        if relation == "<>":
            return column != moment
        if relation == "<":
            return column < moment
        if relation == ">":
            return column > moment
        if relation == "<=":
            return column <= moment
        return column >= moment


def _parse_day(text: str) -> Optional[date]:
    if len(text) != 10:
        return None
    try:
        return date.fromisoformat(text)
    except ValueError:
        return None


def _parse_timestamp(text: str) -> datetime:
    """ISO-время в наивное UTC, в котором хранится колонка"""
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        raise QueryError(f"Invalid timestamp: {text}")
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


@dataclass
class TranslatedQuery:
    where: ColumnElement
    order_by: List[ColumnElement] = field(default_factory=list)


class QueryDefinition:
    """Белый список индексов CQL для одной таблицы"""

    def __init__(self, table):
        self.table = table
        self.fields: Dict[str, QueryField] = {}

    def add_field(self, name: str, query_field: QueryField) -> "QueryDefinition":
        self.fields[name] = query_field
        return self

    def column_for(self, index: str):
        query_field = self.fields.get(index)
        if query_field is None:
            raise QueryError(f"Unsupported CQL index: {index}")
        return query_field, self.table.c[query_field.column or index]

    def translate(self, expression: Optional[str]) -> TranslatedQuery:
        """Разбор выражения CQL в условие WHERE и список ORDER BY"""
        if expression is None or not expression.strip():
            return TranslatedQuery(where=true())
        return _Parser(self, tokenize(expression)).parse()


def translate(expression: Optional[str], definition: QueryDefinition) -> TranslatedQuery:
    return definition.translate(expression)


class _Parser:

    def __init__(self, definition: QueryDefinition, tokens: List[Token]):
        self.definition = definition
        self.tokens = tokens
        self.pos = 0

    def peek(self) -> Optional[Token]:
        return self.tokens[self.pos] if self.pos < len(self.tokens) else None

    def take(self, expected: Optional[str] = None) -> Token:
        token = self.peek()
        if token is None:
            raise QueryError("Unexpected end of query")
        if expected is not None and token.kind != expected:
            raise QueryError(f"Unexpected '{token.text}' at position {token.pos}")
        self.pos += 1
        return token

    def parse(self) -> TranslatedQuery:
        where = true()
        token = self.peek()
        if token is not None and not token.keyword("sortby"):
            where = self.expression()

        order_by = []
        token = self.peek()
        if token is not None:
            if not token.keyword("sortby"):
                raise QueryError(f"Unexpected '{token.text}' at position {token.pos}")
            self.take()
            order_by = self.sort_keys()
        return TranslatedQuery(where=where, order_by=order_by)

    def expression(self) -> ColumnElement:
        clause = self.term()
        while True:
            token = self.peek()
            if token is None or not token.keyword(*_BOOLEANS):
                return clause
            operator = self.take().text.lower()
            right = self.term()
            if operator == "and":
                clause = and_(clause, right)
            elif operator == "or":
                clause = or_(clause, right)
            else:
                clause = and_(clause, not_(right))

    def term(self) -> ColumnElement:
        token = self.peek()
        if token is not None and token.kind == "lparen":
            self.take()
            clause = self.expression()
            self.take("rparen")
            return clause

        index = self.take()
        if index.kind not in ("word", "quoted") or index.keyword(*_BOOLEANS, "sortby"):
            raise QueryError(f"Unexpected '{index.text}' at position {index.pos}")
        relation = self.peek()
        if relation is None or relation.kind != "relation":
            raise QueryError(f"Missing relation after index {index.text}")
        self.take()
        value = self.take()
        if value.kind not in ("word", "quoted"):
            raise QueryError(f"Unexpected '{value.text}' at position {value.pos}")

        if index.text.lower() == ALL_RECORDS_INDEX:
            return true()
        query_field, column = self.definition.column_for(index.text)
        query_field.check_relation(index.text, relation.text)
        return query_field.compare(column, relation.text, value.text)

    def sort_keys(self) -> List[ColumnElement]:
        keys = []
        while self.peek() is not None:
            token = self.take("word")
            index, _, modifier = token.text.partition("/")
            _, column = self.definition.column_for(index)
            modifier = modifier.lower()
            if modifier in ("", "sort.ascending"):
                keys.append(column.asc())
            elif modifier == "sort.descending":
                keys.append(column.desc())
            else:
                raise QueryError(f"Unsupported sort modifier: {modifier}")
        if not keys:
            raise QueryError("sortby requires at least one index")
        return keys
