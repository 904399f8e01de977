"""
Equality criteria composed with AND / OR.

A Where is an immutable tree. Leaves compare one column with one value;
composite nodes join two subtrees. Rendering yields the predicate text with
``?`` placeholders and the parameter list in placeholder order, which the
statement layer converts to the connection's placeholder style.

Examples
    >>> Where.and_(Where.eq('a', 1), Where.eq('b', 2)).to_sql()
    ('(a = ?) AND (b = ?)', [1, 2])
    >>> Where.eq('a', None).to_sql()
    ('a IS NULL', [])
    >>> Where().to_sql()
    ('', [])
"""
from collections.abc import Callable, Iterator
from typing import Any

__all__ = ['Where']

_EMPTY = 'empty'
_NEVER = 'never'
_EQ = 'eq'
_AND = 'AND'
_OR = 'OR'


class Where:
    """Criteria tree constraining select, update and delete requests.

    ``Where()`` is the empty criteria and matches every row. ``Where.never()``
    matches no row.
    """

    __slots__ = ('_op', '_column', '_value', '_left', '_right')

    def __init__(self) -> None:
        self._op = _EMPTY
        self._column = None
        self._value = None
        self._left = None
        self._right = None

    @classmethod
    def _node(cls, op: str, column: str | None = None, value: Any = None,
              left: 'Where | None' = None, right: 'Where | None' = None) -> 'Where':
        node = cls.__new__(cls)
        node._op = op
        node._column = column
        node._value = value
        node._left = left
        node._right = right
        return node

    @classmethod
    def eq(cls, column: str, value: Any) -> 'Where':
        """Leaf matching rows whose `column` equals `value` (IS NULL for None).
        """
        if not column:
            raise ValueError('column name cannot be empty')
        return cls._node(_EQ, column=column, value=value)

    equals = eq

    @classmethod
    def never(cls) -> 'Where':
        """Criteria that matches no row."""
        return cls._node(_NEVER)

    @classmethod
    def and_(cls, left: 'Where | None', right: 'Where | None') -> 'Where':
        """Conjunction of two criteria. An empty operand yields the other one."""
        left, right = left or cls(), right or cls()
        if left.empty:
            return right
        if right.empty:
            return left
        if left.is_never or right.is_never:
            return cls.never()
        return cls._node(_AND, left=left, right=right)

    @classmethod
    def or_(cls, left: 'Where | None', right: 'Where | None') -> 'Where':
        """Disjunction of two criteria. An empty operand matches everything.
        """
        left, right = left or cls(), right or cls()
        if left.empty or right.empty:
            return cls()
        if left.is_never:
            return right
        if right.is_never:
            return left
        return cls._node(_OR, left=left, right=right)

    @classmethod
    def all(cls, *wheres: 'Where') -> 'Where':
        """AND of any number of criteria, left to right."""
        result = cls()
        for where in wheres:
            result = cls.and_(result, where)
        return result

    @classmethod
    def any(cls, *wheres: 'Where') -> 'Where':
        """OR of any number of criteria, left to right. No operand matches nothing.
        """
        if not wheres:
            return cls.never()
        result = wheres[0] or cls()
        for where in wheres[1:]:
            result = cls.or_(result, where)
        return result

    def __and__(self, other: 'Where') -> 'Where':
        return Where.and_(self, other)

    def __or__(self, other: 'Where') -> 'Where':
        return Where.or_(self, other)

    @property
    def empty(self) -> bool:
        return self._op == _EMPTY

    @property
    def is_never(self) -> bool:
        return self._op == _NEVER

    @property
    def is_leaf(self) -> bool:
        return self._op == _EQ

    @property
    def column(self) -> str | None:
        return self._column

    @property
    def value(self) -> Any:
        return self._value

    def _operands(self) -> list['Where']:
        """Children of a run of same-operator nodes, left to right."""
        operands = []
        stack = [self]
        while stack:
            node = stack.pop()
            if node._op == self._op:
                stack.append(node._right)
                stack.append(node._left)
            else:
                operands.append(node)
        return operands

    def leaves(self) -> Iterator['Where']:
        """Yield the equality leaves left to right."""
        stack = [self]
        while stack:
            node = stack.pop()
            if node._op == _EQ:
                yield node
            elif node._op in {_AND, _OR}:
                stack.append(node._right)
                stack.append(node._left)

    def map(self, fn: Callable[['Where'], 'Where']) -> 'Where':
        """Return a new tree with every leaf replaced by `fn(leaf)`.

        `fn` may return any Where, including an empty or never criteria; the
        tree is recombined with the usual AND / OR simplifications.
        """
        if self._op == _EQ:
            return fn(self)
        if self._op not in {_AND, _OR}:
            return self
        mapped = [operand.map(fn) for operand in self._operands()]
        if self._op == _AND:
            return Where.all(*mapped)
        return Where.any(*mapped)

    def to_sql(self, quote: Callable[[str], str] | None = None) -> tuple[str, list]:
        """Render predicate text and parameters in placeholder order.

        A run of the same operator renders flat, as ``(a) OR (b) OR (c)``.

        Args:
            quote: Optional identifier quoting function applied to column names

        Returns
            Tuple of (predicate text, parameter list); ('', []) when empty
        """
        if self._op == _EMPTY:
            return '', []
        if self._op == _NEVER:
            return '1 = 0', []
        if self._op == _EQ:
            column = quote(self._column) if quote else self._column
            if self._value is None:
                return f'{column} IS NULL', []
            return f'{column} = ?', [self._value]
        parts, params = [], []
        for operand in self._operands():
            sql, operand_params = operand.to_sql(quote)
            parts.append(f'({sql})')
            params.extend(operand_params)
        return f' {self._op} '.join(parts), params

    def _key(self) -> tuple:
        if self._op in {_AND, _OR}:
            return (self._op, tuple(operand._key() for operand in self._operands()))
        return (self._op, self._column, self._value)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Where):
            return NotImplemented
        return self._key() == other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    def __setattr__(self, name: str, value: Any) -> None:
        if hasattr(self, '_right'):
            raise AttributeError('Where is immutable')
        object.__setattr__(self, name, value)

    def __repr__(self) -> str:
        if self._op == _EMPTY:
            return 'Where()'
        if self._op == _NEVER:
            return 'Where.never()'
        if self._op == _EQ:
            return f'Where.eq({self._column!r}, {self._value!r})'
        return '(' + f' {self._op} '.join(repr(operand) for operand in self._operands()) + ')'
