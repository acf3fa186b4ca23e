import logging
import re
from typing import List

from fastapi import FastAPI
from pydantic import BaseModel

from emadocs.models import ApiOk, Diagnostic, Token, TokenType

logger = logging.getLogger(__name__)

app = FastAPI(title="lexer-svc")

@app.get("/healthz")
def healthz():
    return {"ok": True}

KEYWORDS = {
    kw: TokenType[f"KW_{kw.upper()}"]
    for kw in (
        "page", "component", "style", "event", "state", "api", "router", "route",
        "layout", "animation", "type", "hook", "plugin", "config", "import", "export",
        "from", "as", "if", "else", "for", "while", "function", "async", "await",
        "return", "const", "let", "var", "true", "false", "null", "undefined",
        "class", "extends", "implements", "interface", "enum", "namespace",
        "render", "computed", "watch", "mounted", "unmounted",
    )
}

TOKENS = [
    ("NEWLINE", r"\n"),
    ("WS", r"[^\S\n]"),
    ("COM", r"//[^\n]*|/\*.*?(?:\*/|\Z)"),
    ("STR", r"""(?P<quote>["'])(?:\\.|\\\Z|(?!(?P=quote))[^\\])*(?P<str_end>(?P=quote))?"""),
    ("TPL", r"`(?:\\.|\\\Z|[^`\\])*(?P<tpl_end>`)?"),
    ("NUM", r"[0-9][0-9.]*"),
    ("IDENT", r"[^\W\d]\w*"),
    ("OP", r"==|=>|!=|<=|>=|&&|\|\||</|[=!<>+\-*/%&|]"),
    ("SYM", r"[(){}\[\];,.:?]"),
]
MASTER = re.compile("|".join(f"(?P<T{i}>{p})" for i, (_, p) in enumerate(TOKENS)), re.S)

OPS = {
    "==": TokenType.EQUAL, "=>": TokenType.ARROW, "!=": TokenType.NOT_EQUAL,
    "<=": TokenType.LESS_EQUAL, ">=": TokenType.GREATER_EQUAL, "&&": TokenType.AND,
    "||": TokenType.OR, "</": TokenType.TAG_CLOSE_START,
    "=": TokenType.ASSIGN, "!": TokenType.NOT, "<": TokenType.TAG_OPEN, ">": TokenType.TAG_END,
    "+": TokenType.PLUS, "-": TokenType.MINUS, "*": TokenType.MULTIPLY, "/": TokenType.DIVIDE,
    "%": TokenType.MODULO, "&": TokenType.AND, "|": TokenType.PIPE,
}
SYMS = {
    "(": TokenType.LPAREN, ")": TokenType.RPAREN, "{": TokenType.LBRACE, "}": TokenType.RBRACE,
    "[": TokenType.LBRACKET, "]": TokenType.RBRACKET, ";": TokenType.SEMICOLON,
    ",": TokenType.COMMA, ".": TokenType.DOT, ":": TokenType.COLON, "?": TokenType.QUESTION,
}


class Lexer:
    """Turns EmadocsLang source into tokens.

    Never raises: characters that start no token are skipped, and literals or
    block comments left open run to the end of input and are reported in
    ``diagnostics``.
    """

    def __init__(self, source: str):
        self.source = source
        self.diagnostics: List[Diagnostic] = []

    def warn(self, code, msg, line, col):
        self.diagnostics.append(Diagnostic(phase="lex", line=line, col=col, code=code, msg=msg))

    def classify(self, m, line, col):
        name, _ = TOKENS[int(m.lastgroup[1:])]
        text = m.group()
        if name == "NEWLINE": return Token(type=TokenType.NEWLINE, lexeme=text, line=line, col=col)
        if name == "WS": return Token(type=TokenType.WHITESPACE, lexeme=text, line=line, col=col)
        if name == "COM":
            if text.startswith("/*") and (len(text) < 4 or not text.endswith("*/")):
                self.warn("W_LEX_UNTERMINATED_COMMENT", "Block comment runs to end of input", line, col)
            return Token(type=TokenType.COMMENT, lexeme=text, line=line, col=col)
        if name == "STR":
            if m.group("str_end") is None:
                self.warn("W_LEX_UNTERMINATED_STRING", "String literal runs to end of input", line, col)
                return Token(type=TokenType.STRING, lexeme=text[1:], line=line, col=col)
            return Token(type=TokenType.STRING, lexeme=text[1:-1], line=line, col=col)
        if name == "TPL":
            if m.group("tpl_end") is None:
                self.warn("W_LEX_UNTERMINATED_TEMPLATE", "Template literal runs to end of input", line, col)
                return Token(type=TokenType.TEMPLATE, lexeme=text[1:], line=line, col=col)
            return Token(type=TokenType.TEMPLATE, lexeme=text[1:-1], line=line, col=col)
        if name == "NUM": return Token(type=TokenType.NUMBER, lexeme=text, line=line, col=col)
        if name == "IDENT":
            return Token(type=KEYWORDS.get(text, TokenType.IDENTIFIER), lexeme=text, line=line, col=col)
        if name == "OP": return Token(type=OPS[text], lexeme=text, line=line, col=col)
        return Token(type=SYMS[text], lexeme=text, line=line, col=col)

    def tokenize(self) -> List[Token]:
        s = self.source; line = 1; col = 1; i = 0; out: List[Token] = []
        while i < len(s):
            m = MASTER.match(s, i)
            if not m:
                # unknown character, no token
                i += 1; col += 1
                continue
            out.append(self.classify(m, line, col))
            text = m.group(); i = m.end()
            newlines = text.count("\n")
            if newlines:
                line += newlines
                col = len(text) - text.rfind("\n")
            else:
                col += len(text)
        out.append(Token(type=TokenType.EOF, lexeme="", line=line, col=col))
        logger.debug(f"Scanned {len(out)} tokens")
        return out


def tokenize(source: str) -> List[Token]:
    return Lexer(source).tokenize()


class LexReq(BaseModel):
    source: str

@app.post("/lex")
def lex(req: LexReq):
    lexer = Lexer(req.source)
    tokens = lexer.tokenize()
    return ApiOk(data={
        "tokens": [t.model_dump(mode="json") for t in tokens],
        "warnings": [d.model_dump() for d in lexer.diagnostics],
    })
