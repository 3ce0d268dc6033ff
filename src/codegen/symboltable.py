from contextlib import contextmanager
from enum import Enum, auto
from typing import Dict, List, Optional

from llvmlite import ir


class SymbolKind(Enum):
    """Enum for different kinds of symbols."""
    VARIABLE = auto()
    PARAMETER = auto()
    LOOP_VARIABLE = auto()


class Symbol:
    """
    A named local: a parameter, a `var` binding or a loop induction variable.
    `llvm_value` is the alloca holding its current value.
    """
    def __init__(self, name: str, kind: SymbolKind, llvm_value: ir.AllocaInstr, scope_level: int = 0):
        self.name = name
        self.kind = kind
        self.llvm_value = llvm_value
        self.scope_level = scope_level

    def __repr__(self) -> str:
        return f"Symbol(name='{self.name}', kind={self.kind}, scope={self.scope_level})"


class ScopeType(Enum):
    """Different types of scopes in the language."""
    FUNCTION = auto()    # Function scope (parameters)
    BLOCK = auto()       # var/in block or for/in loop


class Scope:
    """Represents a single scope level in the symbol table."""
    def __init__(self, level: int, scope_type: ScopeType = ScopeType.BLOCK, name: str = None):
        self.level = level
        self.symbols: Dict[str, Symbol] = {}
        self.scope_type = scope_type
        self.name = name

    def define(self, symbol: Symbol) -> None:
        # A later binding of the same name in one block shadows the earlier one.
        self.symbols[symbol.name] = symbol

    def lookup(self, name: str) -> Optional[Symbol]:
        return self.symbols.get(name)

    def __repr__(self):
        return f"Scope(level={self.level}, type={self.scope_type}, name={self.name})"


class SymbolTable:
    """
    Stack of scopes for the function being lowered. Lookups walk from the
    innermost scope outwards, so leaving a scope restores whatever binding
    (or absence of one) was visible before it was entered.
    """
    def __init__(self, debug: bool = False):
        self.debug = debug
        self.scopes: List[Scope] = []

    @property
    def current_scope_level(self) -> int:
        return len(self.scopes) - 1

    @property
    def current_scope(self) -> Scope:
        return self.scopes[-1]

    def reset(self, name: str = None) -> None:
        """Drop every scope and open a fresh function scope."""
        self.scopes = []
        self.enter_scope(ScopeType.FUNCTION, name)

    def enter_scope(self, scope_type: ScopeType = ScopeType.BLOCK, name: str = None) -> int:
        self.scopes.append(Scope(len(self.scopes), scope_type, name))
        if self.debug:
            print(f"SCOPE: Entering {scope_type} scope '{name}' at level {self.current_scope_level}")
        return self.current_scope_level

    def exit_scope(self) -> int:
        old_scope = self.scopes.pop()
        if self.debug:
            print(f"SCOPE: Exiting {old_scope.scope_type} scope '{old_scope.name}' from level {old_scope.level}")
        return self.current_scope_level

    @contextmanager
    def scope(self, scope_type: ScopeType = ScopeType.BLOCK, name: str = None):
        """Enter a scope for the duration of a `with` block, on every exit path."""
        self.enter_scope(scope_type, name)
        try:
            yield self.current_scope
        finally:
            self.exit_scope()

    def define(self, name: str, kind: SymbolKind, llvm_value: ir.AllocaInstr) -> Symbol:
        symbol = Symbol(name, kind, llvm_value, self.current_scope_level)
        self.current_scope.define(symbol)
        if self.debug:
            print(f"SCOPE: Defined '{name}' in {self.current_scope.scope_type} scope '{self.current_scope.name}' (level {self.current_scope_level})")
        return symbol

    def lookup(self, name: str) -> Optional[Symbol]:
        for scope in reversed(self.scopes):
            symbol = scope.lookup(name)
            if symbol:
                return symbol
        if self.debug:
            print(f"SCOPE: Symbol '{name}' not found in any scope")
        return None

    def visible_names(self) -> Dict[str, Symbol]:
        """Name to symbol for every binding currently visible."""
        visible = {}
        for scope in self.scopes:
            visible.update(scope.symbols)
        return visible

    def dump_scopes(self) -> str:
        result = "=== SCOPE DUMP ===\n"
        for i, scope in enumerate(self.scopes):
            marker = " <- CURRENT" if i == self.current_scope_level else ""
            result += f"Level {i}: {scope}{marker}\n"
            for name, symbol in scope.symbols.items():
                result += f"  - {name}: {symbol}\n"
        result += "================\n"
        return result

    def __contains__(self, name: str) -> bool:
        return self.lookup(name) is not None
