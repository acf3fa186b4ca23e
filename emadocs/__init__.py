"""EmadocsLang compiler: .ema source to HTML, CSS and JavaScript."""

from emadocs.codegen import Emitter, generate
from emadocs.lexer import Lexer, tokenize
from emadocs.models import CompileOptions, CompileResult, Diagnostic, Token, TokenType
from emadocs.orchestrator import Compiler, compile
from emadocs.parser import Parser, parse

__all__ = [
    "CompileOptions",
    "CompileResult",
    "Compiler",
    "Diagnostic",
    "Emitter",
    "Lexer",
    "Parser",
    "Token",
    "TokenType",
    "compile",
    "generate",
    "parse",
    "tokenize",
]
