import io
import unittest
from unittest.mock import patch

from llvmlite import binding, ir

from astnodes import ASTNode
from astparser import ASTParser
from compiler import Compiler
from errors import CodegenError
from lexer import Lexer
from codegen.symboltable import ScopeType, SymbolKind, SymbolTable


def instructions(func):
    return [inst for block in func.blocks for inst in block.instructions]


def opnames(func):
    return [inst.opname for inst in instructions(func)]


def callees(func):
    return [inst.callee.name for inst in instructions(func) if isinstance(inst, ir.CallInstr)]


class CodegenTests(unittest.TestCase):
    """Lowering into the current unit, without executing anything."""

    def setUp(self):
        self.compiler = Compiler(optimize=False, diagnostics=io.StringIO())

    def lower(self, source, compiler=None):
        compiler = compiler or self.compiler
        parser = ASTParser(compiler, Lexer(source))
        parser.next_token()
        if source.startswith("def"):
            node = parser.parse_definition()
        elif source.startswith("extern"):
            node = parser.parse_extern()
        else:
            node = parser.parse_top_level_expression()
        return compiler.codegen.generate(node)

    def test_number(self):
        func = self.lower("4")
        self.assertIsInstance(func, ir.Function)
        self.assertEqual(func.blocks[0].terminator.return_value.constant, 4.0)

    def test_builtin_binary_operators(self):
        names = opnames(self.lower("def f(a b) a + b - a * b"))
        self.assertIn("fadd", names)
        self.assertIn("fsub", names)
        self.assertIn("fmul", names)

    def test_less_than_widens_to_double(self):
        func = self.lower("def f(a b) a < b")
        compares = [inst for inst in instructions(func) if isinstance(inst, ir.FCMPInstr)]
        self.assertEqual([inst.op for inst in compares], ["ult"])
        self.assertIn("uitofp", opnames(func))

    def test_parameters_are_storage_backed(self):
        names = opnames(self.lower("def f(x) x"))
        self.assertEqual(names, ["alloca", "store", "load", "ret"])

    def test_if_produces_phi(self):
        func = self.lower("def f(x) if x then 1 else 2")
        compares = [inst for inst in instructions(func) if isinstance(inst, ir.FCMPInstr)]
        self.assertEqual([inst.op for inst in compares], ["one"])
        phis = [inst for inst in instructions(func) if isinstance(inst, ir.PhiInstr)]
        self.assertEqual(len(phis), 1)
        self.assertEqual([block.name for _, block in phis[0].incomings], ["then", "else"])
        self.assertEqual([b.name for b in func.blocks], ["entry", "then", "else", "ifcont"])

    def test_for_loop_shape(self):
        func = self.lower("def f(n) for i = 1, i < n in i")
        self.assertEqual([b.name for b in func.blocks], ["entry", "loop", "afterloop"])
        entry = func.blocks[0]
        allocas = [inst for inst in entry.instructions if isinstance(inst, ir.AllocaInstr)]
        # one slot for `n`, one for the loop variable
        self.assertEqual(len(allocas), 2)
        self.assertEqual(func.blocks[-1].terminator.return_value.constant, 0.0)

    def test_var_block_allocas_live_in_entry(self):
        func = self.lower("def f(x) if x then var a = 1 in a else 2")
        entry = func.blocks[0]
        allocas = [inst for inst in entry.instructions if isinstance(inst, ir.AllocaInstr)]
        self.assertEqual(len(allocas), 2)
        for block in func.blocks[1:]:
            self.assertFalse(any(isinstance(inst, ir.AllocaInstr) for inst in block.instructions))

    def test_allocas_precede_other_entry_instructions(self):
        for source in ("def f(x) var a = x in a",
                       "def g(x y) var a = x, b = a in for i = a, i < y in b"):
            func = self.lower(source)
            names = [inst.opname for inst in func.blocks[0].instructions]
            first_other = next(i for i, name in enumerate(names) if name != "alloca")
            self.assertNotIn("alloca", names[first_other:], source)
            self.assertTrue(func.blocks[0].is_terminated)
        # The unit must also be accepted by LLVM itself.
        binding.parse_assembly(str(self.compiler.module)).verify()

    def test_unknown_variable(self):
        with self.assertRaises(CodegenError) as ctx:
            self.lower("def f(x) y")
        self.assertIn("Unknown variable name", ctx.exception.message)

    def test_failed_definition_leaves_no_trace(self):
        with self.assertRaises(CodegenError):
            self.lower("def broken(x) y")
        self.assertNotIn("broken", self.compiler.module.globals)
        self.assertNotIn("broken", self.compiler.function_protos)

    def test_failed_definition_restores_previous_prototype(self):
        self.lower("extern g(a)")
        original = self.compiler.function_protos["g"]
        with self.assertRaises(CodegenError):
            self.lower("def g(a) nope")
        self.assertIs(self.compiler.function_protos["g"], original)
        # The extern declaration is still there, without a body.
        self.assertTrue(self.compiler.module.globals["g"].is_declaration)

    def test_function_bodies_do_not_see_outer_scope(self):
        self.lower("def f(x) x")
        with self.assertRaises(CodegenError):
            self.lower("def g(y) x")

    def test_var_bindings_see_earlier_ones(self):
        self.lower("def f() var a = 1, b = a + 1 in b")

    def test_var_binding_is_gone_after_block(self):
        with self.assertRaises(CodegenError) as ctx:
            self.lower("def f() (var a = 1 in a) + a")
        self.assertIn("'a'", ctx.exception.message)

    def test_loop_variable_is_gone_after_loop(self):
        with self.assertRaises(CodegenError):
            self.lower("def f() (for i = 1, i < 3 in i) + i")

    def test_unknown_function(self):
        with self.assertRaises(CodegenError) as ctx:
            self.lower("nothing(1)")
        self.assertIn("Unknown function referenced", ctx.exception.message)

    def test_argument_count(self):
        self.lower("extern two(a b)")
        with self.assertRaises(CodegenError) as ctx:
            self.lower("two(1)")
        self.assertIn("Incorrect number of arguments", ctx.exception.message)

    def test_extern_with_conflicting_arity(self):
        self.lower("def foo(x) x")
        original = self.compiler.function_protos["foo"]
        self.compiler.open_module()
        with self.assertRaises(CodegenError) as ctx:
            self.lower("extern foo(a b)")
        self.assertIn("redeclared with a different number of arguments", ctx.exception.message)
        self.assertIs(self.compiler.function_protos["foo"], original)
        self.assertNotIn("foo", self.compiler.module.globals)

    def test_extern_repeated_with_same_arity(self):
        first = self.lower("extern sin(x)")
        self.assertIs(self.lower("extern sin(y)"), first)

    def test_redefinition_in_same_unit(self):
        first = self.lower("def f(x) x")
        with self.assertRaises(CodegenError) as ctx:
            self.lower("def f(x) x + 1")
        self.assertIn("Function cannot be redefined", ctx.exception.message)
        self.assertIs(self.compiler.module.globals["f"], first)
        self.assertFalse(first.is_declaration)

    def test_recursive_call_resolves(self):
        func = self.lower("def fib(x) if x < 3 then 1 else fib(x-1) + fib(x-2)")
        self.assertEqual(callees(func), ["fib", "fib"])

    def test_registry_declares_functions_from_earlier_units(self):
        self.lower("def f(x) x")
        self.compiler.open_module()
        self.assertNotIn("f", self.compiler.module.globals)
        self.lower("f(2)")
        self.assertTrue(self.compiler.module.globals["f"].is_declaration)

    def test_unknown_unary_operator_is_recoverable(self):
        with self.assertRaises(CodegenError) as ctx:
            self.lower("def f(x) !x")
        self.assertIn("Unknown unary operator", ctx.exception.message)

    def test_unknown_binary_operator_is_recoverable(self):
        self.compiler.binop_precedence["|"] = 5
        with self.assertRaises(CodegenError) as ctx:
            self.lower("def f(a b) a | b")
        self.assertIn("Invalid binary operator", ctx.exception.message)

    def test_user_operators_are_called(self):
        self.lower("def unary!(v) if v then 0 else 1")
        self.lower("def binary| 5 (a b) if a then 1 else if b then 1 else 0")
        func = self.lower("def f(a b) !a | b")
        self.assertEqual(callees(func), ["unary!", "binary|"])

    def test_binary_definition_installs_precedence(self):
        self.assertNotIn("|", self.compiler.binop_precedence)
        self.lower("def binary| 5 (a b) a")
        self.assertEqual(self.compiler.binop_precedence["|"], 5)

    def test_failed_binary_definition_installs_nothing(self):
        with self.assertRaises(CodegenError):
            self.lower("def binary| 5 (a b) c")
        self.assertNotIn("|", self.compiler.binop_precedence)
        self.assertNotIn("binary|", self.compiler.function_protos)

    def test_independent_sessions_lower_identically(self):
        source = "def binary| 5 (a b) if a then 1 else if b then 1 else 0"
        first = Compiler(optimize=False)
        second = Compiler(optimize=False)
        self.lower(source, first)
        self.lower(source, second)
        self.assertEqual(str(first.module), str(second.module))

    def test_every_node_type_has_a_handler(self):
        node_classes = [obj for obj in vars(ASTNode).values() if isinstance(obj, type)]
        for node_class in node_classes:
            self.assertIn(node_class, self.compiler.codegen.node_handlers)


class SymbolTableTests(unittest.TestCase):
    def setUp(self):
        self.table = SymbolTable()
        self.table.reset("f")

    def test_shadowing_restores_outer_binding(self):
        self.table.define("x", SymbolKind.PARAMETER, "outer")
        with self.table.scope(ScopeType.BLOCK, "var"):
            self.table.define("x", SymbolKind.VARIABLE, "inner")
            self.assertEqual(self.table.lookup("x").llvm_value, "inner")
        self.assertEqual(self.table.lookup("x").llvm_value, "outer")

    def test_new_name_is_removed_on_exit(self):
        with self.table.scope():
            self.table.define("y", SymbolKind.VARIABLE, "slot")
            self.assertIn("y", self.table)
        self.assertNotIn("y", self.table)

    def test_restored_on_failure(self):
        self.table.define("x", SymbolKind.PARAMETER, "outer")
        with self.assertRaises(CodegenError):
            with self.table.scope():
                self.table.define("x", SymbolKind.VARIABLE, "inner")
                raise CodegenError("boom")
        self.assertEqual(self.table.lookup("x").llvm_value, "outer")
        self.assertEqual(self.table.current_scope_level, 0)

    def test_one_visible_entry_per_name(self):
        self.table.define("x", SymbolKind.PARAMETER, "outer")
        with self.table.scope():
            self.table.define("x", SymbolKind.VARIABLE, "inner")
            self.table.define("x", SymbolKind.VARIABLE, "innermost")
            visible = self.table.visible_names()
            self.assertEqual(list(visible), ["x"])
            self.assertEqual(visible["x"].llvm_value, "innermost")

    def test_reset_drops_everything(self):
        self.table.define("x", SymbolKind.PARAMETER, "slot")
        self.table.reset("g")
        self.assertIsNone(self.table.lookup("x"))
        self.assertEqual(self.table.current_scope_level, 0)

    def test_dump_scopes(self):
        self.table.define("x", SymbolKind.PARAMETER, "slot")
        with self.table.scope(ScopeType.BLOCK, "var"):
            self.table.define("y", SymbolKind.VARIABLE, "slot")
            dump = self.table.dump_scopes()
        self.assertIn("Level 0", dump)
        self.assertIn("  - x:", dump)
        self.assertIn("  - y:", dump)
        self.assertIn("<- CURRENT", dump.splitlines()[2])

    def test_scopes_dumped_when_debugging(self):
        compiler = Compiler(debug=True, optimize=False, diagnostics=io.StringIO())
        parser = ASTParser(compiler, Lexer("def f(x) x"))
        parser.next_token()
        with patch("sys.stdout", new_callable=io.StringIO) as stdout:
            compiler.codegen.generate(parser.parse_definition())
        self.assertIn("=== SCOPE DUMP ===", stdout.getvalue())


if __name__ == "__main__":
    unittest.main()
