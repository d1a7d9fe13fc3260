"""
表达式词法分析与转换

把 TeX 风格的表达式转换为 Python 表达式源码，随后交给 `ast.parse` 解析：
- `2.5pt`            -> `_q('2.5', 'pt')`
- `1fil`             -> `_fil('1', 'fil')`
- `0.5\\textwidth`    -> `_scaled('0.5', _ref('textwidth'))`
- `\\parindent`       -> `_ref('parindent')`
- `\\value{page}`     -> `_value('page')`
- `\\real{1.5}`       -> `_real((1.5))`，`\\ratio`、`\\maxof`、`\\minof`、`\\stretch` 同理
- `1pt plus 2fil minus 1pt` -> `_glue(_q('1', 'pt'), _fil('2', 'fil'), _q('1', 'pt'))`
- `^` -> `**`

以下划线开头的名称只由本模块生成，用户输入中的标识符不能以下划线开头。
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Optional, Tuple

from .errors import ParseError
from .units import FIL_ORDERS, KNOWN_UNITS


_TOKEN_RE = re.compile(
    r"""
    (?P<space>\s+)
  | (?P<number>\d+(?:\.\d*)?|\.\d+)
  | (?P<cs>\\(?:[A-Za-z@]+|.))
  | (?P<word>[A-Za-z]+)
  | (?P<op>==|!=|<=|>=|[-+*/^()<>,{}])
    """,
    re.VERBOSE,
)

# 宏名 -> 参数个数
MACROS = {
    "value": 1,
    "real": 1,
    "ratio": 2,
    "maxof": 2,
    "minof": 2,
    "stretch": 1,
}

# 转换后可能出现的内部原语
PRIMITIVES = frozenset(
    {"_q", "_fil", "_ref", "_value", "_scaled", "_glue"}
    | {f"_{name}" for name in MACROS if name != "value"}
)

_IGNORED_CS = frozenset({"relax"})
_OPERATORS = {"^": "**"}
# 按长度倒序，保证 "filll" 先于 "fil" 匹配
_UNIT_PREFIXES = sorted(KNOWN_UNITS | set(FIL_ORDERS), key=len, reverse=True)


@dataclass
class Token:
    """词法单元。"""

    kind: str
    text: str
    pos: int


def _is_register(token: Token) -> bool:
    """控制序列是否表示寄存器引用（而非宏或 \\relax）。"""
    name = token.text[1:]
    return token.kind == "cs" and name not in MACROS and name not in _IGNORED_CS


def tokenize(expression: str) -> List[Token]:
    """
    把表达式切分为词法单元（空白被丢弃）。

    Raises:
        ParseError: 出现无法识别的字符。
    """
    tokens: List[Token] = []
    pos = 0
    while pos < len(expression):
        match = _TOKEN_RE.match(expression, pos)
        if match is None:
            raise ParseError(f"位置 {pos} 处无法识别的字符 {expression[pos]!r}", expression)
        kind = match.lastgroup
        if kind != "space":
            tokens.append(Token(kind, match.group(), pos))
        pos = match.end()
    return tokens


def split_unit(word: str) -> Tuple[Optional[str], str]:
    """
    从单词开头切出单位关键字。

    例如 "ptplus" -> ("pt", "plus")，"foo" -> (None, "foo")。
    """
    for unit in _UNIT_PREFIXES:
        if word.startswith(unit):
            return unit, word[len(unit):]
    return None, word


class ExpressionTranslator:
    """把词法单元序列转换为 Python 表达式源码。"""

    def __init__(self, expression: str) -> None:
        self.expression = expression
        self._tokens = tokenize(expression)
        self._pos = 0

    def translate(self) -> str:
        parts = self._translate_group(closing=False)
        if self._pos < len(self._tokens):
            raise ParseError("多余的右花括号", self.expression)
        source = " ".join(part for part in parts if part)
        if not source:
            raise ParseError("表达式为空", self.expression)
        return source

    # ------------------------------------------------------------------#
    # 通用工具
    # ------------------------------------------------------------------#
    def _peek(self) -> Optional[Token]:
        if self._pos < len(self._tokens):
            return self._tokens[self._pos]
        return None

    def _next(self) -> Token:
        token = self._peek()
        if token is None:
            raise ParseError("表达式意外结束", self.expression)
        self._pos += 1
        return token

    def _is_op(self, token: Optional[Token], text: str) -> bool:
        return token is not None and token.kind == "op" and token.text == text

    def _translate_group(self, closing: bool) -> List[str]:
        """转换到右花括号（closing=True）或输入结束为止。"""
        parts: List[str] = []
        while True:
            token = self._peek()
            if token is None:
                if closing:
                    raise ParseError("缺少右花括号", self.expression)
                return parts
            if self._is_op(token, "}"):
                if closing:
                    return parts
                raise ParseError("多余的右花括号", self.expression)
            self._pos += 1
            if token.kind == "number":
                parts.append(self._number(token))
            elif token.kind == "cs":
                parts.append(self._control_sequence(token))
            elif token.kind == "word":
                if token.text in ("plus", "minus"):
                    raise ParseError(f"{token.text} 只能跟在尺寸之后", self.expression)
                parts.append(token.text)
            elif self._is_op(token, "{"):
                raise ParseError("花括号只能作为宏参数", self.expression)
            else:
                parts.append(_OPERATORS.get(token.text, token.text))

    # ------------------------------------------------------------------#
    # 数值、尺寸与胶
    # ------------------------------------------------------------------#
    @staticmethod
    def _literal(text: str) -> str:
        """数值的 Python 字面量（去掉整数的前导零）。"""
        if "." in text:
            return text
        return str(int(text))

    def _take_unit(self) -> Optional[str]:
        """若下一个单词以单位开头，则消费单位并返回；剩余部分留作下一个单词。"""
        token = self._peek()
        if token is None or token.kind != "word":
            return None
        unit, rest = split_unit(token.text)
        if unit is None:
            return None
        if rest:
            self._tokens[self._pos] = Token("word", rest, token.pos + len(unit))
        else:
            self._pos += 1
        return unit

    def _number(self, token: Token) -> str:
        unit = self._take_unit()
        if unit is not None:
            if unit in FIL_ORDERS:
                return f"_fil({token.text!r}, {unit!r})"
            return self._glue_tail(f"_q({token.text!r}, {unit!r})")
        following = self._peek()
        if following is not None and _is_register(following):
            self._pos += 1
            term = f"_scaled({token.text!r}, _ref({following.text[1:]!r}))"
            return self._glue_tail(term)
        return self._literal(token.text)

    def _component(self, keyword: str) -> str:
        """读取 plus/minus 之后的分量：可带符号的尺寸、fil 或寄存器。"""
        sign = ""
        token = self._next()
        if token.kind == "op" and token.text in "+-":
            sign = "-" if token.text == "-" else ""
            token = self._next()
        if token.kind == "number":
            unit = self._take_unit()
            if unit in FIL_ORDERS:
                term = f"_fil({sign + token.text!r}, {unit!r})"
            elif unit is not None:
                term = f"_q({sign + token.text!r}, {unit!r})"
            else:
                following = self._peek()
                if following is None or not _is_register(following):
                    raise ParseError(f"{keyword} 之后缺少单位", self.expression)
                self._pos += 1
                term = f"_scaled({sign + token.text!r}, _ref({following.text[1:]!r}))"
            return term
        if _is_register(token):
            ref = f"_ref({token.text[1:]!r})"
            return f"-{ref}" if sign else ref
        raise ParseError(f"{keyword} 之后应为尺寸", self.expression)

    def _keyword(self, keyword: str) -> bool:
        """若下一个单词以关键字开头则消费之。"""
        token = self._peek()
        if token is None or token.kind != "word" or not token.text.startswith(keyword):
            return False
        rest = token.text[len(keyword):]
        if rest:
            self._tokens[self._pos] = Token("word", rest, token.pos + len(keyword))
        else:
            self._pos += 1
        return True

    def _glue_tail(self, term: str) -> str:
        stretch = self._component("plus") if self._keyword("plus") else None
        shrink = self._component("minus") if self._keyword("minus") else None
        if stretch is None and shrink is None:
            return term
        return f"_glue({term}, {stretch or 'None'}, {shrink or 'None'})"

    # ------------------------------------------------------------------#
    # 控制序列
    # ------------------------------------------------------------------#
    def _control_sequence(self, token: Token) -> str:
        name = token.text[1:]
        if name in _IGNORED_CS:
            return ""
        arity = MACROS.get(name)
        if arity is None:
            return self._glue_tail(f"_ref({name!r})")
        if name == "value":
            return f"_value({self._raw_argument(name)!r})"
        args = [self._argument(name) for _ in range(arity)]
        return f"_{name}({', '.join(args)})"

    def _open_argument(self, name: str) -> None:
        if not self._is_op(self._peek(), "{"):
            raise ParseError(f"\\{name} 缺少花括号参数", self.expression)
        self._pos += 1

    def _argument(self, name: str) -> str:
        self._open_argument(name)
        parts = self._translate_group(closing=True)
        self._pos += 1  # 右花括号
        body = " ".join(part for part in parts if part)
        if not body:
            raise ParseError(f"\\{name} 的参数为空", self.expression)
        return f"({body})"

    def _raw_argument(self, name: str) -> str:
        """读取原样参数（计数器名）。"""
        self._open_argument(name)
        pieces: List[str] = []
        while True:
            token = self._next()
            if self._is_op(token, "}"):
                break
            pieces.append(token.text)
        if not pieces:
            raise ParseError(f"\\{name} 的参数为空", self.expression)
        return "".join(pieces)


def translate(expression: str) -> str:
    """把 TeX 风格表达式转换为 Python 表达式源码。"""
    return ExpressionTranslator(expression).translate()
