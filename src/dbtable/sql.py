"""
SQL parameter processing with single-pass architecture.

Statements are written with `?` placeholders. Before they reach the driver
they go through one tokenization pass:

    SQL + Args → Tokenize → Analyze Context → Normalize Args → Build Output

which rewrites the placeholders for the driver's paramstyle and expands the
`IN ?` binding contract: a scalar bound to `IN ?` becomes `IN (?)` and a
tuple becomes `IN (?, ?, ...)`.
"""
import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from enum import Enum, auto
from typing import Any

QMARK = '?'
FORMAT = '%s'

# =============================================================================
# Data Structures
# =============================================================================


class TokenType(Enum):
    """Token types identified during SQL parsing."""
    SQL_TEXT = auto()
    STRING_LITERAL = auto()
    POSITIONAL_PH = auto()      # %s or ?
    IN_KEYWORD = auto()
    IS_KEYWORD = auto()
    IS_NOT_KEYWORD = auto()
    OPEN_PAREN = auto()
    CLOSE_PAREN = auto()


@dataclass(slots=True)
class Token:
    """Token from SQL parsing."""
    type: TokenType
    text: str
    start: int
    end: int


@dataclass(slots=True)
class PlaceholderInfo:
    """Information about a placeholder and its context."""
    token: Token
    index: int
    context: str = 'value'          # 'value', 'in_clause', 'is_null', 'is_not_null'
    in_parentheses: bool = False    # Already in parens: IN (?)


_TOKENIZE = re.compile(r"""
    (?P<string>'(?:[^']|'')*'|"(?:[^"]|"")*")
    |(?P<percent_s>%s)
    |(?P<qmark>\?)
    |(?P<is_not>\bIS\s+NOT\b)
    |(?P<is_kw>\bIS\b)
    |(?P<in_kw>\bIN\b)
    |(?P<open_paren>\()
    |(?P<close_paren>\))
""", re.IGNORECASE | re.VERBOSE)

_UNESCAPED_PERCENT = re.compile(r'(?<!%)%(?![%s(])')

_HAS_PLACEHOLDER = re.compile(r'%s|\?')

_GROUP_TYPES = {
    'string': TokenType.STRING_LITERAL,
    'percent_s': TokenType.POSITIONAL_PH,
    'qmark': TokenType.POSITIONAL_PH,
    'is_not': TokenType.IS_NOT_KEYWORD,
    'is_kw': TokenType.IS_KEYWORD,
    'in_kw': TokenType.IN_KEYWORD,
    'open_paren': TokenType.OPEN_PAREN,
    'close_paren': TokenType.CLOSE_PAREN,
    }


def issequence(obj: Any) -> bool:
    """True for list/tuple-like values, False for strings and bytes."""
    return isinstance(obj, Sequence) and not isinstance(obj, (str, bytes))


def isiterable(obj: Any) -> bool:
    """True for non-string iterables."""
    return isinstance(obj, Iterable) and not isinstance(obj, (str, bytes))


# =============================================================================
# Core Functions
# =============================================================================

def tokenize_sql(sql: str) -> list[Token]:
    """Parse SQL into tokens in a single pass.
    """
    tokens = []
    last_end = 0

    for match in _TOKENIZE.finditer(sql):
        start, end = match.span()

        if start > last_end:
            tokens.append(Token(TokenType.SQL_TEXT, sql[last_end:start], last_end, start))

        tokens.append(Token(_GROUP_TYPES[match.lastgroup], match.group(0), start, end))
        last_end = end

    if last_end < len(sql):
        tokens.append(Token(TokenType.SQL_TEXT, sql[last_end:], last_end, len(sql)))

    return tokens


def analyze_placeholders(tokens: list[Token]) -> list[PlaceholderInfo]:
    """Determine, for each placeholder, whether it is a plain value, an
    IN clause binding (needs expansion) or an IS NULL comparison.
    """
    placeholders = []
    positional_index = 0

    prev_keyword: TokenType | None = None
    in_paren_after_in = False

    for i, token in enumerate(tokens):
        if token.type == TokenType.IN_KEYWORD:
            prev_keyword = TokenType.IN_KEYWORD
            j = i + 1
            while j < len(tokens) and tokens[j].type == TokenType.SQL_TEXT and not tokens[j].text.strip():
                j += 1
            if j < len(tokens) and tokens[j].type == TokenType.OPEN_PAREN:
                in_paren_after_in = True

        elif token.type in {TokenType.IS_KEYWORD, TokenType.IS_NOT_KEYWORD}:
            prev_keyword = token.type

        elif token.type == TokenType.CLOSE_PAREN:
            in_paren_after_in = False

        elif token.type == TokenType.POSITIONAL_PH:
            placeholders.append(PlaceholderInfo(
                token=token,
                index=positional_index,
                context=_determine_context(prev_keyword),
                in_parentheses=in_paren_after_in
            ))
            positional_index += 1
            prev_keyword = None
            in_paren_after_in = False

        elif token.type == TokenType.SQL_TEXT:
            if token.text.strip() and prev_keyword not in {TokenType.IN_KEYWORD, TokenType.IS_KEYWORD, TokenType.IS_NOT_KEYWORD}:
                prev_keyword = None

    return placeholders


def _determine_context(prev_keyword: TokenType | None) -> str:
    """Determine placeholder context from preceding keyword."""
    if prev_keyword == TokenType.IN_KEYWORD:
        return 'in_clause'
    if prev_keyword == TokenType.IS_KEYWORD:
        return 'is_null'
    if prev_keyword == TokenType.IS_NOT_KEYWORD:
        return 'is_not_null'
    return 'value'


def normalize_args(args: tuple | list, placeholders: list[PlaceholderInfo]) -> tuple:
    """Normalize positional args so there is one entry per placeholder.

    Handles:
    - Direct list: [1, 2, 3] for a single IN clause
    - Nested tuple: [(1, 2, 3)] matching the placeholder count
    - Mixed: (name, (1, 2, 3))
    """
    in_clause_count = sum(1 for p in placeholders if p.context == 'in_clause')
    total_placeholders = len(placeholders)

    # [(a, b, c)] -> (a, b, c)
    if len(args) == 1 and issequence(args[0]) and total_placeholders > 1:
        inner = args[0]
        if len(inner) == total_placeholders:
            return tuple(inner)

    # [1, 2, 3] bound to a lone IN ?
    if in_clause_count == 1 and total_placeholders == 1 and len(args) > 1:
        if all(not isiterable(a) for a in args):
            return (tuple(args),)

    return tuple(args)


def build_sql(tokens: list[Token], placeholders: list[PlaceholderInfo],
              args: tuple, placeholder: str) -> tuple[str, tuple]:
    """Build final SQL and args in single forward pass.
    """
    result_parts = []
    result_args = []
    placeholder_idx = 0

    for token in tokens:
        if token.type == TokenType.STRING_LITERAL and placeholder == FORMAT:
            result_parts.append(_escape_percent_in_literal(token.text))

        elif token.type == TokenType.POSITIONAL_PH:
            if placeholder_idx < len(placeholders) and placeholder_idx < len(args):
                ph = placeholders[placeholder_idx]
                sql_part, new_args = _process_positional_placeholder(
                    ph, args[placeholder_idx], placeholder)
                result_parts.append(sql_part)
                result_args.extend(new_args)
            else:
                result_parts.append(placeholder)
            placeholder_idx += 1

        else:
            result_parts.append(token.text)

    return ''.join(result_parts), tuple(result_args)


def _process_positional_placeholder(ph: PlaceholderInfo, value: Any,
                                    placeholder: str) -> tuple[str, list]:
    """Process a positional placeholder."""
    if ph.context in {'is_null', 'is_not_null'} and value is None:
        return 'NULL', []

    if ph.context == 'in_clause':
        return _expand_in_clause(value, placeholder, ph.in_parentheses)

    return placeholder, [value]


def _expand_in_clause(value: Any, placeholder: str,
                      already_in_parens: bool) -> tuple[str, list]:
    """Expand IN clause value to multiple placeholders."""
    if issequence(value):
        if len(value) == 1 and issequence(value[0]):
            value = value[0]

        if not value:
            return 'NULL' if already_in_parens else '(NULL)', []

        placeholders = ', '.join([placeholder] * len(value))
        if already_in_parens:
            return placeholders, list(value)
        return f'({placeholders})', list(value)

    if already_in_parens:
        return placeholder, [value]
    return f'({placeholder})', [value]


def _escape_percent_in_literal(literal: str) -> str:
    """Escape unescaped percent signs in string literal."""
    quote = literal[0]
    content = literal[1:-1]
    escaped = _UNESCAPED_PERCENT.sub('%%', content)
    return f'{quote}{escaped}{quote}'


# =============================================================================
# Main Entry Points
# =============================================================================

def placeholder_for(paramstyle: str) -> str:
    """Positional placeholder for a DBAPI paramstyle."""
    return QMARK if paramstyle == 'qmark' else FORMAT


def has_placeholders(sql: str | None) -> bool:
    """Check if SQL has any parameter placeholders.
    """
    if not sql:
        return False
    return bool(_HAS_PLACEHOLDER.search(sql))


def prepare_query(sql: str, args: tuple | list,
                  paramstyle: str = 'qmark') -> tuple[str, tuple]:
    """Process SQL and positional parameters for a driver paramstyle.

    Parameters
        sql: SQL text written with ? (or %s) placeholders
        args: Bind values, one per placeholder
        paramstyle: DBAPI paramstyle of the target driver

    Returns
        Tuple of (processed_sql, processed_args)
    """
    if not sql or not args or not has_placeholders(sql):
        return sql, ()

    tokens = tokenize_sql(sql)
    placeholders = analyze_placeholders(tokens)
    if not placeholders:
        return sql, ()

    normalized = normalize_args(tuple(args), placeholders)
    return build_sql(tokens, placeholders, normalized, placeholder_for(paramstyle))
