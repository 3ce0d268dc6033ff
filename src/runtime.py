"""Host functions callable from Kaleidoscope through `extern` declarations."""
import ctypes
import sys
from typing import Callable, List, TextIO

from llvmlite import binding

# ctypes callbacks must outlive every piece of JIT code that may call them
_callbacks: List[object] = []


def register_function(name: str, func: Callable[..., float], arity: int) -> int:
    """
    Expose `func` (taking `arity` doubles, returning a double) to JIT code
    under `name`. Registering a name again replaces the previous function.
    Returns the callback address.
    """
    prototype = ctypes.CFUNCTYPE(ctypes.c_double, *([ctypes.c_double] * arity))

    def wrapper(*args):
        result = func(*args)
        return 0.0 if result is None else float(result)

    callback = prototype(wrapper)
    _callbacks.append(callback)
    address = ctypes.cast(callback, ctypes.c_void_p).value
    binding.add_symbol(name, address)
    return address


def install_stdlib(output: TextIO = None):
    """Register putchard and printd, writing to `output` (stdout by default)."""
    def _stream():
        return output if output is not None else sys.stdout

    def putchard(x):
        _stream().write(chr(int(x)))
        return 0.0

    def printd(x):
        _stream().write(f"{x:f}\n")
        return 0.0

    register_function("putchard", putchard, 1)
    register_function("printd", printd, 1)
