from llvmlite import binding, ir

from errors import CodegenError


class FunctionOptimizer:
    """
    Verifies a freshly lowered function and runs the fixed per-function
    pipeline over it: instruction combining, reassociation, GVN and CFG
    simplification.
    """
    def __init__(self, target_machine: binding.TargetMachine, optimize: bool = True, speed_level: int = 2):
        self.optimize = optimize
        self.pass_builder = None
        self.pass_manager = None
        if optimize:
            tuning = binding.PipelineTuningOptions(speed_level=speed_level)
            self.pass_builder = binding.create_pass_builder(target_machine, tuning)
            self.pass_manager = binding.create_new_function_pass_manager()
            self.pass_manager.add_instruction_combine_pass()
            self.pass_manager.add_reassociate_pass()
            self.pass_manager.add_new_gvn_pass()
            self.pass_manager.add_simplify_cfg_pass()

    def run(self, module: ir.Module, func: ir.Function) -> binding.ModuleRef:
        """
        Parse and verify `module`, then optimise `func` inside it.
        Returns the parsed module, ready to be handed to the JIT.
        """
        try:
            llvm_module = binding.parse_assembly(str(module))
            llvm_module.verify()
        except RuntimeError as e:
            raise CodegenError(f"Invalid function '{func.name}': {e}")

        if self.optimize:
            self.pass_manager.run(llvm_module.get_function(func.name), self.pass_builder)
        return llvm_module
