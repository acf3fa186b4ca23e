from enum import Enum
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class TokenType(str, Enum):
    # keywords
    KW_PAGE = "KW_PAGE"
    KW_COMPONENT = "KW_COMPONENT"
    KW_STYLE = "KW_STYLE"
    KW_EVENT = "KW_EVENT"
    KW_STATE = "KW_STATE"
    KW_API = "KW_API"
    KW_ROUTER = "KW_ROUTER"
    KW_ROUTE = "KW_ROUTE"
    KW_LAYOUT = "KW_LAYOUT"
    KW_ANIMATION = "KW_ANIMATION"
    KW_TYPE = "KW_TYPE"
    KW_HOOK = "KW_HOOK"
    KW_PLUGIN = "KW_PLUGIN"
    KW_CONFIG = "KW_CONFIG"
    KW_IMPORT = "KW_IMPORT"
    KW_EXPORT = "KW_EXPORT"
    KW_FROM = "KW_FROM"
    KW_AS = "KW_AS"
    KW_IF = "KW_IF"
    KW_ELSE = "KW_ELSE"
    KW_FOR = "KW_FOR"
    KW_WHILE = "KW_WHILE"
    KW_FUNCTION = "KW_FUNCTION"
    KW_ASYNC = "KW_ASYNC"
    KW_AWAIT = "KW_AWAIT"
    KW_RETURN = "KW_RETURN"
    KW_CONST = "KW_CONST"
    KW_LET = "KW_LET"
    KW_VAR = "KW_VAR"
    KW_TRUE = "KW_TRUE"
    KW_FALSE = "KW_FALSE"
    KW_NULL = "KW_NULL"
    KW_UNDEFINED = "KW_UNDEFINED"
    KW_CLASS = "KW_CLASS"
    KW_EXTENDS = "KW_EXTENDS"
    KW_IMPLEMENTS = "KW_IMPLEMENTS"
    KW_INTERFACE = "KW_INTERFACE"
    KW_ENUM = "KW_ENUM"
    KW_NAMESPACE = "KW_NAMESPACE"
    KW_RENDER = "KW_RENDER"
    KW_COMPUTED = "KW_COMPUTED"
    KW_WATCH = "KW_WATCH"
    KW_MOUNTED = "KW_MOUNTED"
    KW_UNMOUNTED = "KW_UNMOUNTED"
    # operators
    ASSIGN = "ASSIGN"
    EQUAL = "EQUAL"
    NOT_EQUAL = "NOT_EQUAL"
    LESS_EQUAL = "LESS_EQUAL"
    GREATER_EQUAL = "GREATER_EQUAL"
    PLUS = "PLUS"
    MINUS = "MINUS"
    MULTIPLY = "MULTIPLY"
    DIVIDE = "DIVIDE"
    MODULO = "MODULO"
    AND = "AND"
    OR = "OR"
    NOT = "NOT"
    ARROW = "ARROW"
    PIPE = "PIPE"
    # punctuation
    LPAREN = "LPAREN"
    RPAREN = "RPAREN"
    LBRACE = "LBRACE"
    RBRACE = "RBRACE"
    LBRACKET = "LBRACKET"
    RBRACKET = "RBRACKET"
    SEMICOLON = "SEMICOLON"
    COMMA = "COMMA"
    DOT = "DOT"
    COLON = "COLON"
    QUESTION = "QUESTION"
    # tags
    TAG_OPEN = "TAG_OPEN"
    TAG_CLOSE_START = "TAG_CLOSE_START"
    TAG_END = "TAG_END"
    # literals
    IDENTIFIER = "IDENTIFIER"
    STRING = "STRING"
    NUMBER = "NUMBER"
    TEMPLATE = "TEMPLATE"
    # trivia
    COMMENT = "COMMENT"
    WHITESPACE = "WHITESPACE"
    NEWLINE = "NEWLINE"
    EOF = "EOF"


TRIVIA = frozenset({TokenType.COMMENT, TokenType.WHITESPACE, TokenType.NEWLINE})


class Token(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: TokenType
    lexeme: str
    line: int
    col: int


class Diagnostic(BaseModel):
    model_config = ConfigDict(frozen=True)

    phase: Literal["lex", "parse", "codegen"]
    line: Optional[int] = None
    col: Optional[int] = None
    code: str
    msg: str

    def render(self) -> str:
        where = f"{self.phase}:{self.line}:{self.col}" if self.line is not None else self.phase
        return f"{where}: {self.code} {self.msg}"


class CompileOptions(BaseModel):
    # stored for later emitter passes, no effect on output yet
    minify: bool = False
    sourcemap: bool = False
    treeshaking: bool = True


class CompileResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool
    markup: str = ""
    style: str = ""
    script: str = ""
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    elapsed: float = Field(default=0.0, ge=0.0)


class ApiErr(BaseModel):
    ok: Literal[False] = False
    phase: Literal["lex", "parse", "codegen", "compile"]
    line: Optional[int] = None
    col: Optional[int] = None
    code: str
    msg: str


class ApiOk(BaseModel):
    ok: Literal[True] = True
    data: Any
