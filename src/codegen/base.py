import inspect
import types
from typing import TYPE_CHECKING, Callable, Dict, Optional, Type

from llvmlite import ir

from astnodes import *
from errors import CodegenError
from .symboltable import SymbolTable

# Handler modules, their functions become methods of Codegen
from . import expressions
from . import controlflow
from . import variables
from . import functions

if TYPE_CHECKING:
    from compiler import Compiler  # Only for type hints


class Codegen:
    """
    Lowers AST nodes into the compiler's current compilation unit.

    The handlers live in the modules listed in `handler_modules`; each is a
    plain function taking the Codegen as `self` and is bound onto the
    instance at construction time.
    """
    handler_modules = [
        expressions,
        controlflow,
        variables,
        functions,
    ]

    def _bind_handler_functions(self, modules):
        """Automatically bind all functions defined in the given modules to this instance."""
        for module in modules:
            for name, obj in inspect.getmembers(module, inspect.isfunction):
                # skip anything the module merely imported
                if obj.__module__ != module.__name__:
                    continue
                setattr(self, name, types.MethodType(obj, self))

    def __init__(self, compiler: "Compiler"):
        self.compiler = compiler
        self.debug = compiler.debug
        self.symbol_table = SymbolTable(debug=compiler.debug)
        self.builder: Optional[ir.IRBuilder] = None

        self.double_type = ir.DoubleType()

        self._bind_handler_functions(self.handler_modules)

        # Node type to handler mapping, every AST node class must be listed
        self.node_handlers: Dict[Type, Callable] = {
            ASTNode.Number: self.handle_number,
            ASTNode.Variable: self.handle_variable,
            ASTNode.Unary: self.handle_unary,
            ASTNode.Binary: self.handle_binary,
            ASTNode.VarBlock: self.handle_var_block,
            ASTNode.If: self.handle_if,
            ASTNode.For: self.handle_for,
            ASTNode.Call: self.handle_call,
            ASTNode.Prototype: self.handle_prototype,
            ASTNode.Function: self.handle_function_definition,
        }

    @property
    def module(self) -> ir.Module:
        """The compilation unit currently being built."""
        return self.compiler.module

    def generation_error(self, message: str, node=None):
        """Report a lowering failure for `node`; always raises CodegenError."""
        if self.debug and node is not None:
            print(f"DEBUG - Caused by ASTNode: {repr(node)}")
        raise CodegenError(message)

    def double(self, value: float) -> ir.Constant:
        return ir.Constant(self.double_type, value)

    def process_node(self, node):
        node_class = type(node)
        if node_class not in self.node_handlers:
            raise TypeError(f"No handler for node type {node_class.__name__}")
        return self.node_handlers[node_class](node)

    def generate(self, node):
        """Lower one top-level item (Function or extern Prototype)."""
        if isinstance(node, ASTNode.Prototype):
            return self.handle_extern(node)
        return self.process_node(node)
