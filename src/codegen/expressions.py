from typing import TYPE_CHECKING

from llvmlite import ir

from astnodes import ASTNode

if TYPE_CHECKING:
    from .base import Codegen


def handle_number(self: "Codegen", node: ASTNode.Number) -> ir.Value:
    return self.double(node.value)


def handle_variable(self: "Codegen", node: ASTNode.Variable) -> ir.Value:
    symbol = self.symbol_table.lookup(node.name)
    if symbol is None:
        self.generation_error(f"Unknown variable name '{node.name}'", node)
    return self.builder.load(symbol.llvm_value, node.name)


def handle_unary(self: "Codegen", node: ASTNode.Unary) -> ir.Value:
    operand = self.process_node(node.operand)

    func = self.get_function("unary" + node.op)
    if func is None:
        self.generation_error(f"Unknown unary operator '{node.op}'", node)
    return self.builder.call(func, [operand], "unop")


def handle_binary(self: "Codegen", node: ASTNode.Binary) -> ir.Value:
    left = self.process_node(node.left)
    right = self.process_node(node.right)
    builder = self.builder
    operator = node.op

    if operator == "+":
        return builder.fadd(left, right, "addtmp")
    elif operator == "-":
        return builder.fsub(left, right, "subtmp")
    elif operator == "*":
        return builder.fmul(left, right, "multmp")
    elif operator == "<":
        # convert bool 0/1 to double 0.0 or 1.0
        cmp = builder.fcmp_unordered("<", left, right, "cmptmp")
        return builder.uitofp(cmp, self.double_type, "booltmp")

    # user defined operator, emit a call to it
    func = self.get_function("binary" + operator)
    if func is None:
        self.generation_error(f"Invalid binary operator '{operator}'", node)
    return builder.call(func, [left, right], "binop")


def handle_call(self: "Codegen", node: ASTNode.Call) -> ir.Value:
    callee = self.get_function(node.callee)
    if callee is None:
        self.generation_error(f"Unknown function referenced '{node.callee}'", node)

    if len(callee.args) != len(node.arguments):
        self.generation_error(
            f"Incorrect number of arguments passed to '{node.callee}': "
            f"expected {len(callee.args)}, got {len(node.arguments)}", node)

    arguments = [self.process_node(argument) for argument in node.arguments]

    if self.debug:
        print(f"DEBUG - Calling function {node.callee} with {len(arguments)} arguments")
    return self.builder.call(callee, arguments, "calltmp")
