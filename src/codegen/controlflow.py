from typing import TYPE_CHECKING

from llvmlite import ir

from astnodes import ASTNode
from .symboltable import ScopeType, SymbolKind

if TYPE_CHECKING:
    from .base import Codegen


def handle_if(self: "Codegen", node: ASTNode.If) -> ir.Value:
    """
    if/then/else. Both arms branch to a merge block where a phi picks the
    value of whichever arm control came from.
    """
    builder = self.builder
    condition = self.process_node(node.condition)
    condition = builder.fcmp_ordered("!=", condition, self.double(0.0), "ifcond")

    # Create basic blocks
    then_block = builder.append_basic_block("then")
    else_block = builder.append_basic_block("else")
    merge_block = builder.append_basic_block("ifcont")

    builder.cbranch(condition, then_block, else_block)

    builder.position_at_end(then_block)
    then_value = self.process_node(node.then_body)
    builder.branch(merge_block)
    # lowering the arm may have moved the builder to another block
    then_block = builder.block

    builder.position_at_end(else_block)
    else_value = self.process_node(node.else_body)
    builder.branch(merge_block)
    else_block = builder.block

    builder.position_at_end(merge_block)
    phi = builder.phi(self.double_type, "iftmp")
    phi.add_incoming(then_value, then_block)
    phi.add_incoming(else_value, else_block)
    return phi


def handle_for(self: "Codegen", node: ASTNode.For) -> ir.Value:
    """
    for x = start, end, step in body

    Lowered as:
        entry:     x.addr = alloca double
                   store start, x.addr
                   br loop
        loop:      body
                   x.addr <- x.addr + step
                   br (end != 0.0), loop, afterloop
        afterloop: value is 0.0
    """
    builder = self.builder

    alloca = self.create_entry_block_alloca(node.var_name)
    start = self.process_node(node.start)
    builder.store(start, alloca)

    loop_block = builder.append_basic_block("loop")
    builder.branch(loop_block)
    builder.position_at_end(loop_block)

    # The loop variable shadows any outer binding until the loop is done.
    with self.symbol_table.scope(ScopeType.BLOCK, "for_" + node.var_name):
        self.symbol_table.define(node.var_name, SymbolKind.LOOP_VARIABLE, alloca)

        # The body value is discarded.
        self.process_node(node.body)

        if node.step is not None:
            step = self.process_node(node.step)
        else:
            step = self.double(1.0)

        current = builder.load(alloca, node.var_name)
        builder.store(builder.fadd(current, step, "nextvar"), alloca)

        end = self.process_node(node.end)
        end_condition = builder.fcmp_ordered("!=", end, self.double(0.0), "loopcond")

    after_block = builder.append_basic_block("afterloop")
    builder.cbranch(end_condition, loop_block, after_block)
    builder.position_at_end(after_block)

    return self.double(0.0)
