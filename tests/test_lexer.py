from emadocs.lexer import Lexer, tokenize
from emadocs.models import TokenType


def significant(tokens):
    return [t for t in tokens if t.type not in (TokenType.WHITESPACE, TokenType.NEWLINE)]


def test_empty_source_is_just_eof():
    tokens = tokenize("")
    assert [t.type for t in tokens] == [TokenType.EOF]
    assert (tokens[0].line, tokens[0].col) == (1, 1)


def test_keywords_and_identifiers():
    tokens = significant(tokenize("page Home component card_1 _x"))
    assert [t.type for t in tokens] == [
        TokenType.KW_PAGE, TokenType.IDENTIFIER, TokenType.KW_COMPONENT,
        TokenType.IDENTIFIER, TokenType.IDENTIFIER, TokenType.EOF,
    ]
    assert tokens[3].lexeme == "card_1"


def test_each_whitespace_char_is_a_token_and_newline_moves_line():
    tokens = tokenize("a  \tb\nc")
    assert [t.type for t in tokens] == [
        TokenType.IDENTIFIER, TokenType.WHITESPACE, TokenType.WHITESPACE, TokenType.WHITESPACE,
        TokenType.IDENTIFIER, TokenType.NEWLINE, TokenType.IDENTIFIER, TokenType.EOF,
    ]
    c = tokens[6]
    assert (c.lexeme, c.line, c.col) == ("c", 2, 1)
    assert (tokens[4].line, tokens[4].col) == (1, 5)


def test_two_char_operators_win_over_single():
    tokens = significant(tokenize("== => != <= >= && || </ = ! < > & |"))
    assert [t.type for t in tokens][:-1] == [
        TokenType.EQUAL, TokenType.ARROW, TokenType.NOT_EQUAL, TokenType.LESS_EQUAL,
        TokenType.GREATER_EQUAL, TokenType.AND, TokenType.OR, TokenType.TAG_CLOSE_START,
        TokenType.ASSIGN, TokenType.NOT, TokenType.TAG_OPEN, TokenType.TAG_END,
        TokenType.AND, TokenType.PIPE,
    ]


def test_punctuation():
    tokens = significant(tokenize("(){}[];,.:?+-*/%"))
    assert [t.type for t in tokens][:-1] == [
        TokenType.LPAREN, TokenType.RPAREN, TokenType.LBRACE, TokenType.RBRACE,
        TokenType.LBRACKET, TokenType.RBRACKET, TokenType.SEMICOLON, TokenType.COMMA,
        TokenType.DOT, TokenType.COLON, TokenType.QUESTION, TokenType.PLUS,
        TokenType.MINUS, TokenType.MULTIPLY, TokenType.DIVIDE, TokenType.MODULO,
    ]


def test_number_with_several_dots_is_one_token():
    tokens = significant(tokenize("1.2.3 42"))
    assert [(t.type, t.lexeme) for t in tokens][:-1] == [
        (TokenType.NUMBER, "1.2.3"), (TokenType.NUMBER, "42"),
    ]


def test_strings_drop_quotes_and_keep_escapes():
    tokens = significant(tokenize(r"""'single' "say \"hi\"" """))
    assert tokens[0].type == TokenType.STRING and tokens[0].lexeme == "single"
    assert tokens[1].lexeme == r"say \"hi\""


def test_unterminated_string_runs_to_end_of_input():
    lexer = Lexer('"abc')
    tokens = lexer.tokenize()
    assert [t.type for t in tokens] == [TokenType.STRING, TokenType.EOF]
    assert tokens[0].lexeme == "abc"
    assert [d.code for d in lexer.diagnostics] == ["W_LEX_UNTERMINATED_STRING"]


def test_trailing_backslash_in_unterminated_string():
    tokens = tokenize('"ab\\')
    assert tokens[0].type == TokenType.STRING
    assert tokens[0].lexeme == "ab\\"


def test_template_literal():
    lexer = Lexer("`hello ${name}` `open")
    tokens = significant(lexer.tokenize())
    assert tokens[0].type == TokenType.TEMPLATE and tokens[0].lexeme == "hello ${name}"
    assert tokens[1].type == TokenType.TEMPLATE and tokens[1].lexeme == "open"
    assert [d.code for d in lexer.diagnostics] == ["W_LEX_UNTERMINATED_TEMPLATE"]


def test_comments_and_positions_after_block_comment():
    src = "// line\n/* a\n b */x"
    tokens = tokenize(src)
    assert tokens[0].type == TokenType.COMMENT and tokens[0].lexeme == "// line"
    assert tokens[1].type == TokenType.NEWLINE
    assert tokens[2].type == TokenType.COMMENT and tokens[2].lexeme == "/* a\n b */"
    x = tokens[3]
    assert (x.lexeme, x.line, x.col) == ("x", 3, 6)


def test_unterminated_block_comment():
    lexer = Lexer("a /* never closed\n")
    tokens = lexer.tokenize()
    assert tokens[-2].type == TokenType.COMMENT
    assert tokens[-2].lexeme == "/* never closed\n"
    assert tokens[-1].line == 2
    assert [d.code for d in lexer.diagnostics] == ["W_LEX_UNTERMINATED_COMMENT"]


def test_unknown_characters_are_skipped():
    tokens = tokenize("a@#$b")
    assert [(t.type, t.lexeme) for t in tokens] == [
        (TokenType.IDENTIFIER, "a"), (TokenType.IDENTIFIER, "b"), (TokenType.EOF, ""),
    ]
    assert tokens[1].col == 5


def test_tag_markup():
    src = '<page title="X"></page>'
    tokens = significant(tokenize(src))
    assert [t.type for t in tokens] == [
        TokenType.TAG_OPEN, TokenType.KW_PAGE, TokenType.IDENTIFIER, TokenType.ASSIGN,
        TokenType.STRING, TokenType.TAG_END, TokenType.TAG_CLOSE_START, TokenType.KW_PAGE,
        TokenType.TAG_END, TokenType.EOF,
    ]
