"""
Condition evaluation for workflow steps.

Grammar (lowest to highest precedence):

    expr     := or
    or       := and ('||' and)*
    and      := equality ('&&' equality)*
    equality := unary (('==' | '!=') unary)*
    unary    := '!' unary | primary
    primary  := 'true' | 'false' | 'steps.<id>.passed' | 'steps.<id>.skipped'
              | '(' expr ')'

Expressions are parsed, never handed to eval().
"""

import logging
import re
from typing import List, Mapping, Optional, Tuple

from ..exceptions import ConditionSyntaxError
from ..models import StepResult

logger = logging.getLogger(__name__)

TOKEN_PATTERN = re.compile(
    r'\s*(?:'
    r'(?P<ref>steps\.(?P<id>[A-Za-z0-9_-]+)\.(?P<attr>passed|skipped))(?![A-Za-z0-9_.-])'
    r'|(?P<bool>true|false)(?![A-Za-z0-9_.-])'
    r'|(?P<op>&&|\|\||==|!=|!|\(|\))'
    r')'
)

Token = Tuple[str, object]

# Parenthesis nesting limit; each level costs several parser frames
MAX_DEPTH = 64


class _Unsupported(Exception):
    """Expression contains text outside the condition grammar."""


class ConditionEvaluator:
    """
    Evaluates step conditions against the result ledger.

    Undefined step references evaluate to false. Expressions containing
    anything outside the grammar evaluate to false. Expressions built from
    valid tokens that do not parse, or that nest parentheses deeper than
    MAX_DEPTH, raise ConditionSyntaxError.
    """

    def evaluate(self, condition: Optional[str], results: Mapping[str, StepResult]) -> bool:
        """
        Evaluate a step condition.

        Args:
            condition: Expression text (None or blank means always true)
            results: Ledger of step id -> final StepResult

        Returns:
            True if the step should run

        Raises:
            ConditionSyntaxError: If the expression is malformed
        """
        if condition is None:
            return True

        text = str(condition).strip()
        if not text:
            return True

        try:
            tokens = self._tokenize(text, results)
        except _Unsupported as e:
            logger.warning(f"Condition '{text}' rejected: {e}")
            return False

        parser = _Parser(text, tokens)
        return parser.parse()

    def _tokenize(self, text: str, results: Mapping[str, StepResult]) -> List[Token]:
        tokens: List[Token] = []
        pos = 0
        while pos < len(text):
            if text[pos:].strip() == "":
                break
            match = TOKEN_PATTERN.match(text, pos)
            if not match or match.end() == pos:
                raise _Unsupported(f"unexpected text at position {pos}: {text[pos:]!r}")

            if match.group('ref'):
                tokens.append(('value', self._lookup(results, match.group('id'), match.group('attr'))))
            elif match.group('bool'):
                tokens.append(('value', match.group('bool') == 'true'))
            else:
                tokens.append(('op', match.group('op')))
            pos = match.end()
        return tokens

    def _lookup(self, results: Mapping[str, StepResult], step_id: str, attr: str) -> bool:
        result = results.get(step_id)
        if result is None:
            return False
        return bool(result.passed if attr == 'passed' else result.skipped)


class _Parser:
    """Recursive-descent parser over pre-resolved boolean tokens."""

    def __init__(self, text: str, tokens: List[Token]):
        self.text = text
        self.tokens = tokens
        self.pos = 0
        self.depth = 0

    def parse(self) -> bool:
        if not self.tokens:
            raise ConditionSyntaxError(self.text, "empty expression")
        value = self._or()
        if self.pos != len(self.tokens):
            raise ConditionSyntaxError(self.text, f"unexpected '{self.tokens[self.pos][1]}'")
        return value

    def _peek(self) -> Optional[Token]:
        if self.pos < len(self.tokens):
            return self.tokens[self.pos]
        return None

    def _accept(self, op: str) -> bool:
        token = self._peek()
        if token == ('op', op):
            self.pos += 1
            return True
        return False

    def _or(self) -> bool:
        value = self._and()
        while self._accept('||'):
            rhs = self._and()
            value = value or rhs
        return value

    def _and(self) -> bool:
        value = self._equality()
        while self._accept('&&'):
            rhs = self._equality()
            value = value and rhs
        return value

    def _equality(self) -> bool:
        value = self._unary()
        while True:
            if self._accept('=='):
                value = value == self._unary()
            elif self._accept('!='):
                value = value != self._unary()
            else:
                return value

    def _unary(self) -> bool:
        negations = 0
        while self._accept('!'):
            negations += 1
        value = self._primary()
        return not value if negations % 2 else value

    def _primary(self) -> bool:
        token = self._peek()
        if token is None:
            raise ConditionSyntaxError(self.text, "unexpected end of expression")

        kind, value = token
        if kind == 'value':
            self.pos += 1
            return bool(value)

        if self._accept('('):
            self.depth += 1
            if self.depth > MAX_DEPTH:
                raise ConditionSyntaxError(self.text, "expression nested too deeply")
            inner = self._or()
            if not self._accept(')'):
                raise ConditionSyntaxError(self.text, "missing ')'")
            self.depth -= 1
            return inner

        raise ConditionSyntaxError(self.text, f"unexpected '{value}'")
