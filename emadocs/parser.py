import logging
import os
import re
from types import GeneratorType
from typing import Dict, List, Optional

import requests
from fastapi import FastAPI
from pydantic import BaseModel

from emadocs import nodes
from emadocs.models import TRIVIA, ApiErr, ApiOk, Diagnostic, Token, TokenType

logger = logging.getLogger(__name__)

app = FastAPI(title="parser-svc")
CODEGEN_URL = os.getenv("CODEGEN_URL", "http://codegen-svc:8000")
CODEGEN_TIMEOUT = float(os.getenv("EMADOCS_HTTP_TIMEOUT", "10"))

@app.get("/healthz")
def healthz():
    return {"ok": True}

VOID_TAGS = {"area", "base", "br", "col", "embed", "hr", "img", "input", "link", "meta", "source", "track", "wbr"}
# tokens that end an import/export specifier list
SPECIFIER_STOP = {TokenType.KW_FROM, TokenType.SEMICOLON, TokenType.STRING, TokenType.TAG_OPEN}

# helpers
class Stream:
    """Token cursor. ``peek``/``pop`` step over trivia, ``raw_*`` do not."""

    def __init__(self, toks: List[Token]):
        self.t = toks; self.i = 0
        last = toks[-1] if toks else None
        self.eof = Token(type=TokenType.EOF, lexeme="", line=last.line if last else 1, col=last.col if last else 1)
    def skip_trivia(self):
        while self.i < len(self.t) and self.t[self.i].type in TRIVIA: self.i += 1
    def raw_peek(self, offset=0):
        j = self.i + offset
        return self.t[j] if j < len(self.t) else self.eof
    def raw_pop(self): x = self.raw_peek(); self.i += (self.i < len(self.t)); return x
    def peek(self): self.skip_trivia(); return self.raw_peek()
    def peek_next(self):
        self.skip_trivia(); j = self.i + 1
        while j < len(self.t) and self.t[j].type in TRIVIA: j += 1
        return self.t[j] if j < len(self.t) else self.eof
    def pop(self): self.skip_trivia(); return self.raw_pop()
    def check(self, kind): return self.peek().type == kind
    def match(self, *kinds):
        if self.peek().type in kinds: return self.pop()
        return None
    def at_end(self): return self.peek().type == TokenType.EOF


class Parser:
    """Recursive-descent parser producing a ``nodes.Program``.

    Parsing never fails. A token that cannot start a statement is consumed on
    its own and reported once per contiguous run in ``diagnostics``.
    """

    def __init__(self, tokens: List[Token]):
        self.s = Stream(tokens)
        self.diagnostics: List[Diagnostic] = []
        self._skipped: Optional[Token] = None
        self._skip_count = 0
        self.dispatch = {
            TokenType.KW_PAGE: self.page,
            TokenType.KW_COMPONENT: self.component,
            TokenType.KW_STYLE: self.style,
            TokenType.KW_EVENT: self.event,
            TokenType.KW_STATE: self.state,
            TokenType.KW_API: self.api,
            TokenType.KW_ROUTER: self.router,
            TokenType.KW_ROUTE: self.route,
            TokenType.KW_LAYOUT: self.layout,
            TokenType.KW_ANIMATION: self.animation,
            TokenType.KW_TYPE: self.type_decl,
            TokenType.KW_HOOK: self.hook,
            TokenType.KW_PLUGIN: self.plugin,
            TokenType.KW_CONFIG: self.config,
            TokenType.KW_IMPORT: self.import_decl,
            TokenType.KW_EXPORT: self.export_decl,
        }

    def parse(self) -> nodes.Program:
        body = self.run(self.program())
        self.flush_skipped()
        logger.debug(f"Parsed {len(body)} top-level declarations")
        return nodes.Program(body=body)

    def run(self, root):
        """Drive generator sub-parsers from an explicit stack.

        A sub-parser yields a generator to have it run and receives its return
        value back. Any other yielded value is sent straight back. Open
        constructs live on this stack, not the interpreter stack.
        """
        stack = [root]; value = None
        while True:
            try:
                req = stack[-1].send(value)
            except StopIteration as stop:
                stack.pop()
                if not stack: return stop.value
                value = stop.value
                continue
            if isinstance(req, GeneratorType):
                stack.append(req); value = None
            else:
                value = req

    def program(self):
        body = []
        while not self.s.at_end():
            node = yield self.statement()
            if node is not None: body.append(node)
        return body

    # diagnostics
    def warn(self, tok: Token, code: str, msg: str):
        self.diagnostics.append(Diagnostic(phase="parse", line=tok.line, col=tok.col, code=code, msg=msg))

    def skip(self, tok: Token):
        if self._skipped is None: self._skipped = tok
        self._skip_count += 1

    def flush_skipped(self):
        if self._skipped is None: return
        tok, n = self._skipped, self._skip_count
        self._skipped = None; self._skip_count = 0
        self.warn(tok, "W_PARSE_SKIPPED", f"Skipped {n} unexpected token(s) starting at {tok.lexeme!r}")

    def name(self, construct: str) -> str:
        if self.s.check(TokenType.IDENTIFIER): return self.s.pop().lexeme
        self.warn(self.s.peek(), "W_PARSE_EMPTY_NAME", f"Missing name for {construct}")
        return ""

    # statements
    def statement(self):
        tok = self.s.peek()
        sub = self.dispatch.get(tok.type)
        if sub is not None:
            self.flush_skipped()
            self.s.pop()
            return (yield sub())
        if tok.type == TokenType.TAG_OPEN and self.s.raw_peek(1).type == TokenType.IDENTIFIER:
            self.flush_skipped()
            return (yield self.element())
        self.skip(self.s.pop())
        return None

    def parse_block(self):
        """Statements up to the closing brace (left unconsumed) or end of input."""
        body = []
        while not self.s.check(TokenType.RBRACE) and not self.s.at_end():
            node = yield self.statement()
            if node is not None: body.append(node)
        self.flush_skipped()
        return body

    def block(self):
        if not self.s.match(TokenType.LBRACE): return []
        body = yield self.parse_block()
        self.s.match(TokenType.RBRACE)
        return body

    def page(self):
        name = ""
        if self.s.check(TokenType.IDENTIFIER) and self.s.peek_next().type != TokenType.ASSIGN:
            name = self.s.pop().lexeme
        attributes: Dict[str, str] = {}
        while not self.s.check(TokenType.LBRACE) and not self.s.at_end():
            tok = self.s.pop()
            if tok.type == TokenType.IDENTIFIER and self.s.match(TokenType.ASSIGN):
                if self.s.check(TokenType.STRING):
                    attributes[tok.lexeme] = self.s.pop().lexeme
        body = yield self.block()
        return nodes.Page(name=name, attributes=attributes, body=body)

    def component(self):
        name = self.name("component")
        type_params = []
        if self.s.match(TokenType.TAG_OPEN):
            while not self.s.check(TokenType.TAG_END) and not self.s.at_end():
                tok = self.s.pop()
                if tok.type == TokenType.IDENTIFIER: type_params.append(tok.lexeme)
            self.s.match(TokenType.TAG_END)
        # TODO: split the block into props/events/state/methods/render
        yield self.block()
        return nodes.Component(name=name, type_params=type_params)

    def style(self):
        selector = self.name("style")
        rules = yield self.block()
        return nodes.Style(selector=selector, rules=rules)

    def event(self):
        event_type = self.name("event")
        target = ""
        if self.s.check(TokenType.IDENTIFIER) and self.s.peek().lexeme == "on":
            self.s.pop()
            if self.s.check(TokenType.IDENTIFIER): target = self.s.pop().lexeme
        body = yield self.block()
        return nodes.Event(event_type=event_type, target=target, body=body)

    def state(self):
        name = self.name("state")
        properties = yield self.block()
        return nodes.State(name=name, properties=properties)

    def api(self):
        name = self.name("api")
        methods = yield self.block()
        return nodes.Api(name=name, methods=methods)

    def router(self):
        routes = yield self.block()
        return nodes.Router(routes=routes)

    def route(self):
        path = ""
        if self.s.check(TokenType.STRING) or self.s.check(TokenType.IDENTIFIER):
            path = self.s.pop().lexeme
        self.s.match(TokenType.ARROW)
        component = self.s.pop().lexeme if self.s.check(TokenType.IDENTIFIER) else ""
        self.s.match(TokenType.SEMICOLON)
        return nodes.Route(path=path, component=component)

    def layout(self):
        name = self.name("layout")
        body = yield self.block()
        return nodes.Layout(name=name, render=body[0] if body else None)

    def animation(self):
        name = self.name("animation")
        keyframes = yield self.block()
        return nodes.Animation(name=name, keyframes=keyframes)

    def type_decl(self):
        name = self.name("type")
        if self.s.match(TokenType.ASSIGN):
            # definition is consumed, not captured
            depth = 0
            while not self.s.at_end():
                kind = self.s.peek().type
                if depth == 0 and (kind in (TokenType.SEMICOLON, TokenType.RBRACE) or kind in self.dispatch):
                    break
                if kind == TokenType.LBRACE: depth += 1
                elif kind == TokenType.RBRACE: depth -= 1
                self.s.pop()
        self.s.match(TokenType.SEMICOLON)
        return nodes.Type(name=name)

    def hook(self):
        name = self.name("hook")
        if self.s.match(TokenType.LPAREN):
            while not self.s.check(TokenType.RPAREN) and not self.s.at_end():
                self.s.pop()
            self.s.match(TokenType.RPAREN)
        body = yield self.block()
        return nodes.Hook(name=name, body=body)

    def plugin(self):
        name = self.name("plugin")
        yield self.block()
        return nodes.Plugin(name=name)

    def config(self):
        yield self.block()
        return nodes.Config()

    def specifiers(self) -> List[str]:
        """Comma separated specifiers up to ``from``; braces group but are dropped."""
        names, words, depth = [], [], 0
        while not self.s.at_end():
            kind = self.s.peek().type
            if kind in SPECIFIER_STOP or kind in self.dispatch or (kind == TokenType.RBRACE and depth == 0):
                break
            tok = self.s.pop()
            if kind in (TokenType.COMMA, TokenType.LBRACE, TokenType.RBRACE):
                if words: names.append(" ".join(words)); words = []
                if kind == TokenType.LBRACE: depth += 1
                elif kind == TokenType.RBRACE: depth -= 1
            else:
                words.append(tok.lexeme)
        if words: names.append(" ".join(words))
        return names

    def source(self) -> str:
        source = ""
        self.s.match(TokenType.KW_FROM)
        if self.s.check(TokenType.STRING):
            source = self.s.pop().lexeme
        self.s.match(TokenType.SEMICOLON)
        return source

    def import_decl(self):
        specifiers = self.specifiers()
        return nodes.Import(specifiers=specifiers, source=self.source())

    def export_decl(self):
        is_default = False
        if self.s.check(TokenType.IDENTIFIER) and self.s.peek().lexeme == "default":
            self.s.pop(); is_default = True
        specifiers = self.specifiers()
        return nodes.Export(specifiers=specifiers, source=self.source(), is_default=is_default)

    # markup
    def attr_name(self) -> str:
        parts = [self.s.pop().lexeme]
        while self.s.raw_peek().type == TokenType.MINUS and _is_word(self.s.raw_peek(1)):
            self.s.raw_pop(); parts.append(self.s.raw_pop().lexeme)
        return "-".join(parts)

    def element(self):
        self.s.pop()
        tag = self.s.raw_pop().lexeme
        attributes: Dict[str, str] = {}
        while not self.s.at_end() and self.s.peek().type not in (TokenType.TAG_END, TokenType.DIVIDE, TokenType.RBRACE):
            if not _is_word(self.s.peek()):
                self.s.pop()
                continue
            key = self.attr_name()
            value = ""
            if self.s.match(TokenType.ASSIGN) and self.s.peek().type in (
                    TokenType.STRING, TokenType.TEMPLATE, TokenType.NUMBER, TokenType.IDENTIFIER):
                value = self.s.pop().lexeme
            attributes[key] = value
        if self.s.match(TokenType.DIVIDE):
            self.s.match(TokenType.TAG_END)
            return nodes.Element(tag_name=tag, attributes=attributes, self_closing=True)
        self.s.match(TokenType.TAG_END)
        if tag.lower() in VOID_TAGS:
            return nodes.Element(tag_name=tag, attributes=attributes, self_closing=True)
        children = yield self.children()
        return nodes.Element(tag_name=tag, attributes=attributes, children=children)

    def children(self):
        out = []
        while True:
            tok = self.s.raw_peek()
            if tok.type in (TokenType.EOF, TokenType.RBRACE):
                break
            if tok.type == TokenType.TAG_CLOSE_START:
                self.s.raw_pop()
                if _is_word(self.s.peek()): self.s.pop()
                self.s.match(TokenType.TAG_END)
                break
            if tok.type == TokenType.TAG_OPEN and self.s.raw_peek(1).type == TokenType.IDENTIFIER:
                out.append((yield self.element()))
            elif tok.type == TokenType.LBRACE:
                out.append(self.expression())
            else:
                text = self.text()
                if text: out.append(nodes.Text(value=text))
        return out

    def expression(self):
        self.s.raw_pop()
        depth = 1; parts = []
        while True:
            tok = self.s.raw_peek()
            if tok.type == TokenType.EOF: break
            self.s.raw_pop()
            if tok.type == TokenType.LBRACE: depth += 1
            elif tok.type == TokenType.RBRACE:
                depth -= 1
                if depth == 0: break
            parts.append(_source_text(tok))
        return nodes.Expression(expression=" ".join("".join(parts).split()))

    def text(self) -> str:
        parts = [_source_text(self.s.raw_pop())]
        while True:
            tok = self.s.raw_peek()
            if tok.type in (TokenType.EOF, TokenType.RBRACE, TokenType.LBRACE, TokenType.TAG_CLOSE_START):
                break
            if tok.type == TokenType.TAG_OPEN and self.s.raw_peek(1).type == TokenType.IDENTIFIER:
                break
            parts.append(_source_text(self.s.raw_pop()))
        return collapse_text("".join(parts))


def collapse_text(raw: str) -> str:
    """Collapse whitespace in a text run to single spaces.

    Edge whitespace that stays on the line is kept as one space so ``Hello
    <b>`` is not glued together. Edge whitespace crossing a line break is
    indentation between tags and is dropped.
    """
    lines = raw.split("\n")
    if len(lines) > 1:
        lines[0] = lines[0].rstrip()
        lines[-1] = lines[-1].lstrip()
        lines[1:-1] = [line.strip() for line in lines[1:-1]]
        raw = " ".join(line for line in lines if line)
    return re.sub(r"\s+", " ", raw)


def _is_word(tok: Token) -> bool:
    # attribute and closing tag names may collide with keywords (class, for, ...)
    return tok.type == TokenType.IDENTIFIER or tok.type.name.startswith("KW_")


def _source_text(tok: Token) -> str:
    if tok.type == TokenType.STRING: return f'"{tok.lexeme}"'
    if tok.type == TokenType.TEMPLATE: return f"`{tok.lexeme}`"
    if tok.type == TokenType.COMMENT: return " "
    return tok.lexeme


def parse(tokens: List[Token]) -> nodes.Program:
    return Parser(tokens).parse()


class ParseReq(BaseModel):
    tokens: List[Token]

@app.post("/parse")
def parse_api(req: ParseReq):
    parser = Parser(req.tokens)
    program = parser.parse()
    return ApiOk(data={"ast": program.model_dump(), "warnings": [d.model_dump() for d in parser.diagnostics]})

@app.post("/compile")
def compile_api(req: ParseReq):
    parser = Parser(req.tokens)
    program = parser.parse()
    try:
        # forward AST to codegen
        r = requests.post(f"{CODEGEN_URL}/codegen", json={"ast": program.model_dump()}, timeout=CODEGEN_TIMEOUT)
        r.raise_for_status()
    except requests.RequestException as e:
        logger.warning(f"Codegen forward failed: {e}")
        return ApiErr(phase="parse", code="E_FORWARD_CODEGEN", msg=f"Failed to contact codegen: {e}")
    body = r.json()
    if body.get("ok"):
        body["data"]["warnings"] = [d.model_dump() for d in parser.diagnostics] + body["data"].get("warnings", [])
    return body
