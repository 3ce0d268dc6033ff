# Kaleidoscope JIT
# An interactive LLVM compiler front-end for the Kaleidoscope toy language
# Licensed under MIT
import argparse
import ctypes
import sys
from typing import Dict, List, Optional, Set, TextIO, Union

from llvmlite import ir

from lexer import *
from astparser import *
from errors import CodegenError, KaleidoscopeError, ParseError
from codegen.base import Codegen
from codegen.optimizer import FunctionOptimizer
from jit import KaleidoscopeJIT
import runtime


class Compiler:
    """
    A compiler session. Owns the state shared by parser and codegen: the
    binary operator precedence table, the function prototype registry and
    the compilation unit currently being built. Sessions are independent
    of each other.
    """
    version = "0.1.0"
    binop_precedence: Dict[str, int]
    function_protos: Dict[str, ASTNode.Prototype]
    defined_functions: Set[str]
    module: ir.Module
    astparser: ASTParser
    codegen: Codegen
    jit: KaleidoscopeJIT

    def __init__(self, debug=False, dump_tokens=False, dump_ast=False, dump_llvmir=False,
                 optimize=True, output: Optional[TextIO] = None, diagnostics: Optional[TextIO] = None):
        self.debug = debug
        self.dump_tokens = dump_tokens
        self.dump_ast = dump_ast
        self.dump_llvmir = dump_llvmir
        self.optimize = optimize
        self.output = output
        self.diagnostics = diagnostics

        self.binop_precedence = {}
        self.function_protos = {}
        self.defined_functions = set()
        self.install_builtin_operators()

        self.jit = KaleidoscopeJIT(debug=debug)
        self.optimizer = FunctionOptimizer(self.jit.target_machine, optimize)
        self.codegen = Codegen(self)
        self.astparser = ASTParser(self)

        self.unit_count = 0
        self.anonymous_count = 0
        self.module = None
        self.compiled_module = None
        self.open_module()

    def install_builtin_operators(self):
        # 1 is the lowest precedence.
        self.binop_precedence["<"] = 10
        self.binop_precedence["+"] = 20
        self.binop_precedence["-"] = 20
        self.binop_precedence["*"] = 40  # highest.

    def open_module(self):
        """Start a fresh compilation unit."""
        self.module = ir.Module(name=f"kaleidoscope_unit_{self.unit_count}")
        self.module.triple = self.jit.triple
        self.module.data_layout = self.jit.data_layout
        self.compiled_module = None
        self.unit_count += 1

    def next_anonymous_name(self) -> str:
        name = f"{ANONYMOUS_FUNCTION_NAME}_{self.anonymous_count}"
        self.anonymous_count += 1
        return name

    def finalize_function(self, func: ir.Function):
        """Verify and optimise a function that has just been lowered into the current unit."""
        self.compiled_module = self.optimizer.run(self.module, func)

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------

    def _out(self) -> TextIO:
        return self.output if self.output is not None else sys.stdout

    def _err(self) -> TextIO:
        return self.diagnostics if self.diagnostics is not None else sys.stderr

    def report(self, error: KaleidoscopeError):
        print(error.diagnostic(), file=self._err())

    def _dump(self, title: str, text):
        print(f"==== {title} ====", file=self._err())
        print(text, file=self._err())
        print("==================", file=self._err())

    # ------------------------------------------------------------------
    # Top-level items
    # ------------------------------------------------------------------

    def handle_definition(self) -> Optional[ir.Function]:
        try:
            node = self.astparser.parse_definition()
        except ParseError as e:
            self.report(e)
            # Skip token for error recovery.
            self.astparser.next_token()
            return None
        if self.dump_ast:
            self._dump("AST Nodes", node.print_tree())

        try:
            func = self.codegen.generate(node)
        except CodegenError as e:
            self.report(e)
            self.open_module()
            return None

        if self.dump_llvmir:
            self._dump("Generated LLVM IR Code", self.compiled_module)
        if self.jit.missing_symbols(self.compiled_module):
            self.jit.defer_module(self.compiled_module)
        else:
            self.jit.add_module(self.compiled_module)
            self.jit.promote_pending()
        self.defined_functions.add(func.name)
        self.open_module()
        return func

    def handle_extern(self) -> Optional[ir.Function]:
        try:
            node = self.astparser.parse_extern()
        except ParseError as e:
            self.report(e)
            self.astparser.next_token()
            return None
        if self.dump_ast:
            self._dump("AST Nodes", node.print_tree())

        try:
            func = self.codegen.generate(node)
        except CodegenError as e:
            self.report(e)
            return None

        if self.dump_llvmir:
            self._dump("Generated LLVM IR Code", func)
        return func

    def handle_top_level_expression(self) -> Optional[float]:
        try:
            node = self.astparser.parse_top_level_expression()
        except ParseError as e:
            self.report(e)
            self.astparser.next_token()
            return None
        if self.dump_ast:
            self._dump("AST Nodes", node.print_tree())

        try:
            func = self.codegen.generate(node)
        except CodegenError as e:
            self.report(e)
            self.open_module()
            return None

        if self.dump_llvmir:
            self._dump("Generated LLVM IR Code", self.compiled_module)

        # Host functions registered since the last item may unblock deferred units.
        self.jit.promote_pending()
        missing = self.jit.missing_symbols(self.compiled_module)
        if missing:
            self.report(CodegenError(
                f"Unresolved external function '{self.jit.blocking_symbol(missing[0])}'"))
            self.open_module()
            return None

        # The anonymous unit only lives for one call.
        handle = self.jit.add_module(self.compiled_module)
        try:
            address = self.jit.find_symbol(func.name)
            if address is None:
                raise CodegenError(f"Function '{func.name}' not found after compilation")
            cfunc = ctypes.CFUNCTYPE(ctypes.c_double)(address)
            result = cfunc()
        except CodegenError as e:
            self.report(e)
            return None
        finally:
            self.jit.remove_module(handle)
            self.open_module()

        if self.debug:
            print(f"DEBUG - {func.name} evaluated to {result}")
        return result

    # ------------------------------------------------------------------
    # Driver
    # ------------------------------------------------------------------

    def main_loop(self, source: Union[str, TextIO], interactive: bool = False) -> List[float]:
        """
        top ::= definition | external | expression | ';'

        Returns the values of the evaluated top-level expressions.
        """
        results = []
        self.astparser.load_lexer(Lexer(source))

        if interactive:
            print("ready> ", end="", file=self._err(), flush=True)
        self.astparser.next_token()

        while True:
            token = self.astparser.current_token()
            if token._type == TokenType.EOF:
                break

            if token.is_char(separators["SEMICOLON"]):
                # ignore top-level semicolons.
                self.astparser.next_token()
            elif token._type == TokenType.DEF:
                self.handle_definition()
            elif token._type == TokenType.EXTERN:
                self.handle_extern()
            else:
                result = self.handle_top_level_expression()
                if result is not None:
                    results.append(result)
                    if interactive:
                        print(f"Evaluated to {result}", file=self._err())

            if interactive:
                print("ready> ", end="", file=self._err(), flush=True)

        return results

    def run(self, source: Union[str, TextIO]) -> List[float]:
        return self.main_loop(source)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Kaleidoscope JIT compiler")
    parser.add_argument("file", nargs='?', help="Source file to run. Starts an interactive session when omitted")
    parser.add_argument("-d", "--debug", action="store_true", help="Enable debugging output")
    parser.add_argument("-dt", "--dump-tokens", action="store_true", help="Dump tokens as they are read")
    parser.add_argument("-da", "--dump-ast", action="store_true", help="Dump the AST of every top-level item")
    parser.add_argument("-dl", "--dump-llvmir", action="store_true", help="Dump the LLVM IR of every top-level item")
    parser.add_argument("--no-opt", action="store_true", help="Disable the per-function optimization passes")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)

    compiler = Compiler(
        debug=args.debug,
        dump_tokens=args.dump_tokens,
        dump_ast=args.dump_ast,
        dump_llvmir=args.dump_llvmir,
        optimize=not args.no_opt,
    )
    runtime.install_stdlib()

    if args.file:
        try:
            with open(args.file, "r") as src:
                results = compiler.run(src.read())
        except OSError as e:
            print(f"Error: cannot read {args.file}: {e.strerror}", file=sys.stderr)
            return 1
        for result in results:
            print(f"Evaluated to {result}")
    else:
        print(f"Kaleidoscope JIT version: {compiler.version}", file=sys.stderr)
        compiler.main_loop(sys.stdin, interactive=True)
        print(file=sys.stderr)
    return 0


if __name__ == "__main__":
    sys.exit(main())
