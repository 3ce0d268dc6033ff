from typing import List, Optional, Tuple
from enum import Enum


class OperatorKind(Enum):
    NONE = 0
    UNARY = 1
    BINARY = 2


DEFAULT_BINARY_PRECEDENCE = 30
ANONYMOUS_FUNCTION_NAME = "__anon_expr"


class ASTNode:
    class Number:
        def __init__(self, value: float):
            self.value: float = value

        def print_tree(self, prefix: str = "") -> str:
            return f"{prefix}Number: {self.value}\n"

        def __repr__(self):
            return self.print_tree()

    class Variable:
        def __init__(self, name: str):
            self.name: str = name

        def print_tree(self, prefix: str = "") -> str:
            return f"{prefix}Variable: {self.name}\n"

        def __repr__(self):
            return self.print_tree()

    class Unary:
        def __init__(self, op: str, operand):
            self.op: str = op
            self.operand = operand

        def print_tree(self, prefix: str = "") -> str:
            result = f"{prefix}Unary: {self.op}\n"
            result += self.operand.print_tree(prefix + "    ")
            return result

        def __repr__(self):
            return self.print_tree()

    class Binary:
        def __init__(self, op: str, left, right):
            self.op: str = op
            self.left = left
            self.right = right

        def print_tree(self, prefix: str = "") -> str:
            result = f"{prefix}Binary: {self.op}\n"
            result += f"{prefix}├── left:\n"
            result += self.left.print_tree(prefix + "│   ")
            result += f"{prefix}└── right:\n"
            result += self.right.print_tree(prefix + "    ")
            return result

        def __repr__(self):
            return self.print_tree()

    class VarBlock:
        """`var a = 1, b in body`. A binding without initializer holds None."""

        def __init__(self, bindings: List[Tuple[str, Optional[object]]], body):
            self.bindings: List[Tuple[str, Optional[object]]] = bindings
            self.body = body

        def print_tree(self, prefix: str = "") -> str:
            result = f"{prefix}VarBlock\n"
            for name, init in self.bindings:
                result += f"{prefix}├── binding: {name}\n"
                if init is not None:
                    result += init.print_tree(prefix + "│   ")
            result += f"{prefix}└── body:\n"
            result += self.body.print_tree(prefix + "    ")
            return result

        def __repr__(self):
            return self.print_tree()

    class If:
        def __init__(self, condition, then_body, else_body):
            self.condition = condition
            self.then_body = then_body
            self.else_body = else_body

        def print_tree(self, prefix: str = "") -> str:
            result = f"{prefix}If\n"
            result += f"{prefix}├── condition:\n"
            result += self.condition.print_tree(prefix + "│   ")
            result += f"{prefix}├── then:\n"
            result += self.then_body.print_tree(prefix + "│   ")
            result += f"{prefix}└── else:\n"
            result += self.else_body.print_tree(prefix + "    ")
            return result

        def __repr__(self):
            return self.print_tree()

    class For:
        def __init__(self, var_name: str, start, end, step, body):
            self.var_name: str = var_name
            self.start = start
            self.end = end
            self.step = step  # None means 1.0
            self.body = body

        def print_tree(self, prefix: str = "") -> str:
            result = f"{prefix}For: {self.var_name}\n"
            result += f"{prefix}├── start:\n"
            result += self.start.print_tree(prefix + "│   ")
            result += f"{prefix}├── end:\n"
            result += self.end.print_tree(prefix + "│   ")
            if self.step is not None:
                result += f"{prefix}├── step:\n"
                result += self.step.print_tree(prefix + "│   ")
            result += f"{prefix}└── body:\n"
            result += self.body.print_tree(prefix + "    ")
            return result

        def __repr__(self):
            return self.print_tree()

    class Call:
        def __init__(self, callee: str, arguments: List[object]):
            self.callee: str = callee
            self.arguments: List[object] = arguments

        def print_tree(self, prefix: str = "") -> str:
            result = f"{prefix}Call: {self.callee}\n"
            for argument in self.arguments:
                result += argument.print_tree(prefix + "    ")
            return result

        def __repr__(self):
            return self.print_tree()

    class Prototype:
        """
        Name and parameter names of a function. Operator prototypes carry
        their kind, and binary ones a precedence; their names are
        `unary<op>` / `binary<op>`.
        """

        def __init__(self, name: str, parameters: List[str],
                     kind: OperatorKind = OperatorKind.NONE,
                     precedence: int = DEFAULT_BINARY_PRECEDENCE):
            self.name: str = name
            self.parameters: List[str] = parameters
            self.kind: OperatorKind = kind
            self.precedence: int = precedence

        @property
        def is_unary_op(self) -> bool:
            return self.kind == OperatorKind.UNARY and len(self.parameters) == 1

        @property
        def is_binary_op(self) -> bool:
            return self.kind == OperatorKind.BINARY and len(self.parameters) == 2

        @property
        def operator_name(self) -> str:
            assert self.kind != OperatorKind.NONE
            return self.name[-1]

        def print_tree(self, prefix: str = "") -> str:
            result = f"{prefix}Prototype\n"
            result += f"{prefix}├── name: {self.name}\n"
            if self.kind != OperatorKind.NONE:
                result += f"{prefix}├── kind: {self.kind.name}\n"
            if self.kind == OperatorKind.BINARY:
                result += f"{prefix}├── precedence: {self.precedence}\n"
            result += f"{prefix}└── parameters: {', '.join(self.parameters)}\n"
            return result

        def __repr__(self):
            return self.print_tree()

    class Function:
        def __init__(self, prototype: "ASTNode.Prototype", body):
            self.prototype: "ASTNode.Prototype" = prototype
            self.body = body

        @property
        def name(self) -> str:
            return self.prototype.name

        def print_tree(self, prefix: str = "") -> str:
            result = f"{prefix}FunctionDefinition\n"
            result += self.prototype.print_tree(prefix + "│   ")
            result += f"{prefix}└── body:\n"
            result += self.body.print_tree(prefix + "    ")
            return result

        def __repr__(self):
            return self.print_tree()
