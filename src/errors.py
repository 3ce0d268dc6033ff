class KaleidoscopeError(Exception):
    """Base class for every recoverable compiler failure."""
    kind = "Error"

    def __init__(self, message: str, line: int = -1, column: int = -1):
        super().__init__(message)
        self.message = message
        self.line = line
        self.column = column

    def diagnostic(self) -> str:
        if self.line >= 0:
            return f"{self.kind}: {self.message} (line {self.line}, column {self.column})"
        return f"{self.kind}: {self.message}"


class ParseError(KaleidoscopeError):
    kind = "Parser error"


class CodegenError(KaleidoscopeError):
    kind = "Codegen error"
