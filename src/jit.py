from typing import List, Optional, Set, Union

from llvmlite import binding, ir


class KaleidoscopeJIT:
    """
    Execution engine holding every compilation unit handed to it.

    Units are added with add_module, which returns a handle that can be
    passed to remove_module. Symbols are looked up across all units still
    held and the host process (see runtime.register_function). A unit that
    calls a function nobody provides yet is deferred instead, and handed to
    the engine by promote_pending once it resolves.
    """
    def __init__(self, debug: bool = False):
        self.debug = debug
        binding.initialize_native_target()
        binding.initialize_native_asmprinter()

        target = binding.Target.from_default_triple()
        self.target_machine = target.create_target_machine()

        backing_module = binding.parse_assembly("")
        self.engine = binding.create_mcjit_compiler(backing_module, self.target_machine)
        self.modules: List[binding.ModuleRef] = []
        self.pending: List[binding.ModuleRef] = []

    @property
    def triple(self) -> str:
        return self.target_machine.triple

    @property
    def data_layout(self) -> str:
        return str(self.target_machine.target_data)

    def add_module(self, module: Union[ir.Module, binding.ModuleRef]) -> binding.ModuleRef:
        if isinstance(module, ir.Module):
            module = binding.parse_assembly(str(module))
            module.verify()
        self.engine.add_module(module)
        self.modules.append(module)
        if self.debug:
            print(f"DEBUG - JIT: added module '{module.name}'")
        return module

    def remove_module(self, handle: binding.ModuleRef):
        self.engine.remove_module(handle)
        self.modules.remove(handle)
        if self.debug:
            print(f"DEBUG - JIT: removed module '{handle.name}'")

    def defer_module(self, module: binding.ModuleRef):
        """Hold a unit back until every function it calls can be resolved."""
        self.pending.append(module)
        if self.debug:
            print(f"DEBUG - JIT: deferred module '{module.name}', missing {self.missing_symbols(module)}")

    def promote_pending(self) -> List[binding.ModuleRef]:
        """Hand every deferred unit that has become resolvable to the engine."""
        promoted = []
        progress = True
        while progress:
            progress = False
            for module in list(self.pending):
                if not self.missing_symbols(module):
                    self.pending.remove(module)
                    self.add_module(module)
                    promoted.append(module)
                    progress = True
        return promoted

    def defined_symbols(self) -> Set[str]:
        defined = set()
        for module in self.modules:
            for func in module.functions:
                if not func.is_declaration:
                    defined.add(func.name)
        return defined

    def missing_symbols(self, module: binding.ModuleRef) -> List[str]:
        """
        Functions `module` calls that no unit held by the engine defines and
        the host process does not provide. Finalizing with any of these left
        over would abort the process inside LLVM.
        """
        defined = self.defined_symbols()
        missing = []
        for name in called_declarations(module):
            if name in defined or name in missing:
                continue
            if binding.address_of_symbol(name) is None:
                missing.append(name)
        return missing

    def blocking_symbol(self, name: str, seen: Optional[Set[str]] = None) -> str:
        """The missing host function that keeps `name` from resolving."""
        seen = seen if seen is not None else set()
        seen.add(name)
        for module in self.pending:
            if _find_definition(module, name) is None:
                continue
            for missing in self.missing_symbols(module):
                if missing not in seen:
                    return self.blocking_symbol(missing, seen)
        return name

    def find_symbol(self, name: str) -> Optional[int]:
        self.engine.finalize_object()
        address = self.engine.get_function_address(name)
        return address or None


def called_declarations(module: binding.ModuleRef) -> List[str]:
    """Names of the declared (bodiless) functions that `module` actually calls."""
    declared = {func.name for func in module.functions
                if func.is_declaration and not func.name.startswith("llvm.")}
    called = []
    for func in module.functions:
        for block in func.blocks:
            for instruction in block.instructions:
                if instruction.opcode != "call":
                    continue
                for operand in instruction.operands:
                    if operand.name in declared and operand.name not in called:
                        called.append(operand.name)
    return called


def _find_definition(module: binding.ModuleRef, name: str):
    for func in module.functions:
        if func.name == name and not func.is_declaration:
            return func
    return None
