from typing import TYPE_CHECKING

from llvmlite import ir

from astnodes import ASTNode
from .symboltable import ScopeType, SymbolKind

if TYPE_CHECKING:
    from .base import Codegen


def create_entry_block_alloca(self: "Codegen", name: str) -> ir.AllocaInstr:
    """Allocate a double slot at the top of the current function's entry block."""
    entry_block = self.builder.function.entry_basic_block
    entry_builder = ir.IRBuilder(entry_block)
    entry_builder.position_at_start(entry_block)
    alloca = entry_builder.alloca(self.double_type, name=name)

    # The main builder keeps an instruction index, move it past the new alloca.
    if self.builder.block is entry_block:
        self.builder.position_at_end(entry_block)
    return alloca


def handle_var_block(self: "Codegen", node: ASTNode.VarBlock) -> ir.Value:
    """
    var a = 1, b = a + 1, c in body

    Each binding is visible to the initializers after it. All of them are
    gone again once the body has been lowered, even if lowering fails.
    """
    builder = self.builder

    with self.symbol_table.scope(ScopeType.BLOCK, "var"):
        for name, init in node.bindings:
            # Lower the initializer before binding the name, so that
            # `var a = a in ...` refers to the outer `a`.
            if init is not None:
                value = self.process_node(init)
            else:
                value = self.double(0.0)

            alloca = self.create_entry_block_alloca(name)
            builder.store(value, alloca)
            self.symbol_table.define(name, SymbolKind.VARIABLE, alloca)

        return self.process_node(node.body)
