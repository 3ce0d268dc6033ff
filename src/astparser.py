from lexer import *
from typing import List, Optional
from astnodes import *
from errors import ParseError
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from compiler import Compiler  # Only for type hints


class ASTParser:
    """
    Recursive descent parser with one token of lookahead.

    Every parse_* method starts on the first token of its construct and
    leaves `current_token()` on the first token after it. Failures raise
    ParseError; the driver reports them and skips a token.
    """
    lexer: Lexer
    token: Optional[Token]

    def __init__(self, compiler: "Compiler", lexer: Optional[Lexer] = None):
        self.compiler = compiler
        self.lexer = lexer
        self.token = None

    def load_lexer(self, lexer: Lexer):
        self.lexer = lexer
        self.token = None

    def current_token(self) -> Token:
        return self.token

    def next_token(self) -> Token:
        self.token = self.lexer.next_token()
        if self.compiler is not None and self.compiler.dump_tokens:
            self.token.print()
        return self.token

    def syntax_error(self, message: str, token: Optional[Token] = None):
        token = token or self.token
        if token is not None:
            raise ParseError(message, token.line, token.column)
        raise ParseError(message)

    def expect_char(self, char: str, message: str):
        if not self.token.is_char(char):
            self.syntax_error(message)
        self.next_token()

    # ------------------------------------------------------------------
    # Primary expressions
    # ------------------------------------------------------------------

    def parse_number(self):
        # numberexpr ::= number
        node = ASTNode.Number(self.token.value)
        self.next_token()  # consume the number
        return node

    def parse_paren(self):
        # parenexpr ::= '(' expression ')'
        self.next_token()  # consume '('
        expr = self.parse_expression()
        self.expect_char(separators["RPAREN"], "Expected ')'")
        return expr

    def parse_identifier(self):
        # identifierexpr ::= identifier | identifier '(' (expression (',' expression)*)? ')'
        name = self.token.value
        self.next_token()  # consume identifier

        if not self.token.is_char(separators["LPAREN"]):
            return ASTNode.Variable(name)

        self.next_token()  # consume '('
        arguments = []
        if not self.token.is_char(separators["RPAREN"]):
            while True:
                arguments.append(self.parse_expression())

                if self.token.is_char(separators["RPAREN"]):
                    break
                if not self.token.is_char(separators["COMMA"]):
                    self.syntax_error("Expected ')' or ',' in argument list")
                self.next_token()  # consume ','

        self.next_token()  # consume ')'
        return ASTNode.Call(name, arguments)

    def parse_if(self):
        # ifexpr ::= 'if' expression 'then' expression 'else' expression
        self.next_token()  # consume 'if'
        condition = self.parse_expression()

        if self.token._type != TokenType.THEN:
            self.syntax_error("Expected then")
        self.next_token()
        then_body = self.parse_expression()

        if self.token._type != TokenType.ELSE:
            self.syntax_error("Expected else")
        self.next_token()
        else_body = self.parse_expression()

        return ASTNode.If(condition, then_body, else_body)

    def parse_for(self):
        # forexpr ::= 'for' identifier '=' expr ',' expr (',' expr)? 'in' expression
        self.next_token()  # consume 'for'

        if self.token._type != TokenType.IDENTIFIER:
            self.syntax_error("Expected identifier after for")
        var_name = self.token.value
        self.next_token()

        self.expect_char(separators["ASSIGN"], "Expected '=' after for")
        start = self.parse_expression()

        self.expect_char(separators["COMMA"], "Expected ',' after for start value")
        end = self.parse_expression()

        # The step value is optional.
        step = None
        if self.token.is_char(separators["COMMA"]):
            self.next_token()
            step = self.parse_expression()

        if self.token._type != TokenType.IN:
            self.syntax_error("Expected 'in' after for")
        self.next_token()

        body = self.parse_expression()
        return ASTNode.For(var_name, start, end, step, body)

    def parse_var(self):
        # varexpr ::= 'var' identifier ('=' expression)? (',' identifier ('=' expression)?)* 'in' expression
        self.next_token()  # consume 'var'

        if self.token._type != TokenType.IDENTIFIER:
            self.syntax_error("Expected identifier after var")

        bindings = []
        while True:
            name = self.token.value
            self.next_token()

            init = None
            if self.token.is_char(separators["ASSIGN"]):
                self.next_token()
                init = self.parse_expression()
            bindings.append((name, init))

            if not self.token.is_char(separators["COMMA"]):
                break
            self.next_token()

            if self.token._type != TokenType.IDENTIFIER:
                self.syntax_error("Expected identifier list after var")

        if self.token._type != TokenType.IN:
            self.syntax_error("Expected 'in' keyword after 'var'")
        self.next_token()

        body = self.parse_expression()
        return ASTNode.VarBlock(bindings, body)

    def parse_primary(self):
        token = self.token
        if token._type == TokenType.IDENTIFIER:
            return self.parse_identifier()
        elif token._type == TokenType.NUMBER:
            return self.parse_number()
        elif token._type == TokenType.IF:
            return self.parse_if()
        elif token._type == TokenType.FOR:
            return self.parse_for()
        elif token._type == TokenType.VAR:
            return self.parse_var()
        elif token.is_char(separators["LPAREN"]):
            return self.parse_paren()
        self.syntax_error("Unknown token when expecting an expression")

    # ------------------------------------------------------------------
    # Operators
    # ------------------------------------------------------------------

    def parse_unary(self):
        # unary ::= primary | SYM unary
        token = self.token
        if token._type != TokenType.CHAR or token.value in (separators["LPAREN"], separators["COMMA"]):
            return self.parse_primary()

        op = token.value
        self.next_token()
        operand = self.parse_unary()
        return ASTNode.Unary(op, operand)

    def token_precedence(self) -> int:
        """Precedence of the pending binary operator, -1 if it isn't one."""
        if self.token._type != TokenType.CHAR:
            return -1
        precedence = self.compiler.binop_precedence.get(self.token.value, 0)
        return precedence if precedence > 0 else -1

    def parse_binary_rhs(self, min_precedence: int, lhs):
        # binoprhs ::= (SYM unary)*
        while True:
            precedence = self.token_precedence()
            if precedence < min_precedence:
                return lhs

            op = self.token.value
            self.next_token()

            rhs = self.parse_unary()

            # If op binds less tightly with rhs than the operator after rhs,
            # let the pending operator take rhs as its lhs.
            next_precedence = self.token_precedence()
            if precedence < next_precedence:
                rhs = self.parse_binary_rhs(precedence + 1, rhs)

            lhs = ASTNode.Binary(op, lhs, rhs)

    def parse_expression(self):
        # expression ::= unary binoprhs
        lhs = self.parse_unary()
        return self.parse_binary_rhs(0, lhs)

    # ------------------------------------------------------------------
    # Functions
    # ------------------------------------------------------------------

    def parse_prototype(self) -> ASTNode.Prototype:
        # prototype ::= id '(' id* ')'
        #           ::= 'unary' SYM '(' id ')'
        #           ::= 'binary' SYM number? '(' id id ')'
        token = self.token
        kind = OperatorKind.NONE
        precedence = DEFAULT_BINARY_PRECEDENCE

        if token._type == TokenType.IDENTIFIER:
            name = token.value
            self.next_token()
        elif token._type == TokenType.UNARY:
            self.next_token()
            if self.token._type != TokenType.CHAR:
                self.syntax_error("Expected unary operator")
            name = "unary" + self.token.value
            kind = OperatorKind.UNARY
            self.next_token()
        elif token._type == TokenType.BINARY:
            self.next_token()
            if self.token._type != TokenType.CHAR:
                self.syntax_error("Expected binary operator")
            name = "binary" + self.token.value
            kind = OperatorKind.BINARY
            self.next_token()

            # Read the precedence if present.
            if self.token._type == TokenType.NUMBER:
                if self.token.value < 1 or self.token.value > 100:
                    self.syntax_error("Invalid precedence: must be 1..100")
                precedence = int(self.token.value)
                self.next_token()
        else:
            self.syntax_error("Expected function name in prototype")

        if not self.token.is_char(separators["LPAREN"]):
            self.syntax_error("Expected '(' in prototype")

        parameters = []
        while self.next_token()._type == TokenType.IDENTIFIER:
            parameters.append(self.token.value)

        if not self.token.is_char(separators["RPAREN"]):
            self.syntax_error("Expected ')' in prototype")
        self.next_token()  # consume ')'

        # Verify right number of names for operator.
        if kind != OperatorKind.NONE and len(parameters) != kind.value:
            self.syntax_error("Invalid number of operands for operator", token)

        return ASTNode.Prototype(name, parameters, kind, precedence)

    def parse_definition(self) -> ASTNode.Function:
        # definition ::= 'def' prototype expression
        self.next_token()  # consume 'def'
        prototype = self.parse_prototype()
        body = self.parse_expression()
        return ASTNode.Function(prototype, body)

    def parse_extern(self) -> ASTNode.Prototype:
        # external ::= 'extern' prototype
        self.next_token()  # consume 'extern'
        return self.parse_prototype()

    def parse_top_level_expression(self) -> ASTNode.Function:
        # toplevelexpr ::= expression
        body = self.parse_expression()
        # Every anonymous function gets a fresh name, the JIT never forgets a symbol.
        prototype = ASTNode.Prototype(self.compiler.next_anonymous_name(), [])
        return ASTNode.Function(prototype, body)

    def parse(self) -> List[object]:
        """
        Parse every top-level item up to end of input without lowering them.
        Only usable when no item declares a new binary operator that a later
        item relies on, since precedences are installed at lowering time.
        """
        nodes = []
        self.next_token()
        while self.token._type != TokenType.EOF:
            if self.token.is_char(separators["SEMICOLON"]):
                self.next_token()
            elif self.token._type == TokenType.DEF:
                nodes.append(self.parse_definition())
            elif self.token._type == TokenType.EXTERN:
                nodes.append(self.parse_extern())
            else:
                nodes.append(self.parse_top_level_expression())
        return nodes
