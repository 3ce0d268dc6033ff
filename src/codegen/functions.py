from typing import TYPE_CHECKING, Optional

from llvmlite import ir

from astnodes import ASTNode
from errors import CodegenError
from .symboltable import SymbolKind

if TYPE_CHECKING:
    from .base import Codegen


def get_function(self: "Codegen", name: str) -> Optional[ir.Function]:
    """
    Resolve `name` to a function of the current unit. A function known only
    from the prototype registry (defined or declared in an earlier unit) is
    declared in this unit on first use.
    """
    existing = self.module.globals.get(name)
    if isinstance(existing, ir.Function):
        return existing

    prototype = self.compiler.function_protos.get(name)
    if prototype is not None:
        return self.handle_prototype(prototype)

    return None


def handle_prototype(self: "Codegen", node: ASTNode.Prototype) -> ir.Function:
    """Declare `double name(double, ...)` in the current unit."""
    existing = self.module.globals.get(node.name)
    if isinstance(existing, ir.Function):
        if len(existing.args) != len(node.parameters):
            self.generation_error(
                f"Function '{node.name}' redeclared with a different number of arguments", node)
        return existing

    func_type = ir.FunctionType(self.double_type, [self.double_type] * len(node.parameters))
    func = ir.Function(self.module, func_type, name=node.name)

    for arg, param_name in zip(func.args, node.parameters):
        arg.name = param_name

    return func


def handle_extern(self: "Codegen", node: ASTNode.Prototype) -> ir.Function:
    """`extern` declarations are declared here and remembered for later units."""
    known = self.compiler.function_protos.get(node.name)
    if known is not None and len(known.parameters) != len(node.parameters):
        self.generation_error(
            f"Function '{node.name}' redeclared with a different number of arguments", node)
    func = self.handle_prototype(node)
    self.compiler.function_protos[node.name] = node
    return func


def handle_function_definition(self: "Codegen", node: ASTNode.Function) -> ir.Function:
    """
    Lower a function definition into the current unit.

    On success the function has been verified and optimised, and a binary
    operator definition has installed its precedence. On failure the
    partially built function is removed from the unit, the prototype
    registry is put back the way it was, and CodegenError is raised.
    """
    prototype = node.prototype
    name = prototype.name
    registry = self.compiler.function_protos
    previous_prototype = registry.get(name)
    created = name not in self.module.globals

    # Registered first so that recursive calls in the body resolve.
    registry[name] = prototype

    func = None
    try:
        if name in self.compiler.defined_functions:
            self.generation_error(f"Function cannot be redefined: '{name}'", node)

        declared = self.get_function(name)
        if not declared.is_declaration:
            self.generation_error(f"Function cannot be redefined: '{name}'", node)
        if len(declared.args) != len(prototype.parameters):
            self.generation_error(
                f"Function '{name}' redeclared with a different number of arguments", node)
        func = declared

        entry_block = func.append_basic_block("entry")
        self.builder = ir.IRBuilder(entry_block)

        # Function bodies only see their own parameters.
        self.symbol_table.reset(name)
        for arg, param_name in zip(func.args, prototype.parameters):
            alloca = self.create_entry_block_alloca(param_name)
            self.builder.store(arg, alloca)
            self.symbol_table.define(param_name, SymbolKind.PARAMETER, alloca)
        if self.debug:
            print(self.symbol_table.dump_scopes(), end="")

        return_value = self.process_node(node.body)
        self.builder.ret(return_value)

        self.compiler.finalize_function(func)
    except CodegenError:
        if func is not None:
            _erase_function(self, func, created)
        if previous_prototype is None:
            del registry[name]
        else:
            registry[name] = previous_prototype
        raise
    finally:
        self.builder = None

    if prototype.is_binary_op:
        self.compiler.binop_precedence[prototype.operator_name] = prototype.precedence

    return func


def _erase_function(self: "Codegen", func: ir.Function, created: bool):
    if created:
        del self.module.globals[func.name]
    else:
        # It was declared before (extern or forward call), keep the declaration.
        func.blocks.clear()
