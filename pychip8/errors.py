class Chip8Error(Exception):
    """Base class for faults raised while running a program"""

    def __init__(self, message: str, pc: int | None = None):
        if pc is not None:
            message = f"{message} (pc={pc:#05x})"
        super().__init__(message)
        self.pc = pc


class DecodeError(Chip8Error):
    def __init__(self, opcode: int, pc: int | None = None):
        super().__init__(f"Unknown opcode: {opcode:04X}", pc)
        self.opcode = opcode


class StackError(Chip8Error):
    pass


class StackOverflowError(StackError):
    def __init__(self, pc: int | None = None):
        super().__init__("Call stack is full", pc)


class StackUnderflowError(StackError):
    def __init__(self, pc: int | None = None):
        super().__init__("Return with an empty call stack", pc)


class MemoryBoundsError(Chip8Error):
    def __init__(self, address: int, size: int = 1, pc: int | None = None):
        super().__init__(
            f"Access to {size} byte(s) at {address:#x} is outside memory", pc
        )
        self.address = address
        self.size = size


class ProgramTooLargeError(MemoryBoundsError):
    def __init__(self, address: int, size: int, capacity: int):
        Chip8Error.__init__(
            self,
            f"Program of {size} bytes does not fit in the {capacity} bytes "
            f"available from {address:#05x}",
        )
        self.address = address
        self.size = size
        self.capacity = capacity
