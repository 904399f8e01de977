"""
SQL text helpers shared by the dialect strategies and requests.

Generated statements are written with `?` placeholders; each dialect
standardizes them to its own marker before execution:

- `standardize_placeholders()` - Convert %s <-> ? for a dialect
- `has_placeholders()` - Check if SQL has placeholders
- `quote_identifier()` - Quote table/column names
"""
import re
from dataclasses import dataclass
from enum import Enum, auto


class TokenType(Enum):
    """Token types identified during SQL scanning."""
    SQL_TEXT = auto()
    STRING_LITERAL = auto()
    POSITIONAL_PH = auto()      # %s or ?


@dataclass(slots=True)
class Token:
    """Token from SQL scanning."""
    type: TokenType
    text: str


_TOKENIZE = re.compile(r"""
    (?P<string>'(?:[^']|'')*'|"(?:[^"]|"")*")
    |(?P<percent_s>%s)
    |(?P<qmark>\?)
""", re.VERBOSE)

_HAS_PLACEHOLDER = re.compile(r'%s|\?')


def tokenize_sql(sql: str) -> list[Token]:
    """Split SQL into literals, placeholders and the text between them.
    """
    tokens = []
    last_end = 0

    for match in _TOKENIZE.finditer(sql):
        start, end = match.span()
        if start > last_end:
            tokens.append(Token(TokenType.SQL_TEXT, sql[last_end:start]))

        if match.group('string'):
            ttype = TokenType.STRING_LITERAL
        else:
            ttype = TokenType.POSITIONAL_PH

        tokens.append(Token(ttype, match.group(0)))
        last_end = end

    if last_end < len(sql):
        tokens.append(Token(TokenType.SQL_TEXT, sql[last_end:]))

    return tokens


def _dialect_placeholder(dialect: str) -> str:
    """Return the positional placeholder marker for a dialect."""
    return '?' if dialect == 'sqlite' else '%s'


def standardize_placeholders(sql: str, dialect: str = 'postgresql') -> str:
    """Convert placeholders between %s and ? based on dialect.

    Placeholders inside quoted literals and identifiers are left untouched.

    Parameters
        sql: SQL query string
        dialect: Database dialect

    Returns
        SQL with standardized placeholders
    """
    if not sql or not has_placeholders(sql):
        return sql

    marker = _dialect_placeholder(dialect)
    result = []
    for token in tokenize_sql(sql):
        if token.type == TokenType.POSITIONAL_PH:
            result.append(marker)
        else:
            result.append(token.text)
    return ''.join(result)


def has_placeholders(sql: str | None) -> bool:
    """Check if SQL has positional placeholders.
    """
    if not sql:
        return False
    return bool(_HAS_PLACEHOLDER.search(sql))


def quote_identifier(identifier: str, dialect: str = 'postgresql') -> str:
    """Safely quote database identifiers.

    Parameters
        identifier: Table or column name
        dialect: Database dialect

    Returns
        Quoted identifier

    Raises
        ValueError: If dialect is unsupported
    """
    if dialect in {'postgresql', 'sqlite'}:
        return '"' + identifier.replace('"', '""') + '"'

    raise ValueError(f'Unknown dialect: {dialect}')
