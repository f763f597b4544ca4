"""Instruction decoding and execution for the RV32IM virtual machine."""

from __future__ import annotations

from collections.abc import Callable

from rv32vm.state import MASK32, WORD_SIZE, MachineState

OPCODE_MASK = 0x7F
OP_R = 0b0110011
OP_I = 0b0010011
OP_LOAD = 0b0000011
OP_STORE = 0b0100011
OP_BRANCH = 0b1100011
OP_JAL = 0b1101111
OP_JALR = 0b1100111
OP_LUI = 0b0110111
OP_AUIPC = 0b0010111
OP_SYSTEM = 0b1110011

EBREAK_BIT = 0x100000


def _signed(value: int) -> int:
    value &= MASK32
    return value - (1 << 32) if value & 0x80000000 else value


def _sign_extend(value: int, bits: int) -> int:
    sign = 1 << (bits - 1)
    value &= (1 << bits) - 1
    return (value ^ sign) - sign


def _trunc_div(a: int, b: int) -> int:
    """Signed division rounding toward zero."""
    if b == 0:
        raise ZeroDivisionError("integer division by zero")
    quotient = abs(a) // abs(b)
    return -quotient if (a < 0) != (b < 0) else quotient


def _trunc_rem(a: int, b: int) -> int:
    """Signed remainder taking the sign of the dividend."""
    return a - b * _trunc_div(a, b)


def _unsigned_rem(a: int, b: int) -> int:
    if b == 0:
        raise ZeroDivisionError("integer division by zero")
    return a % b


# Keyed by (funct3, funct7); operands are the raw unsigned register values.
_R_OPS: dict[tuple[int, int], Callable[[int, int], int]] = {
    (0x0, 0x00): lambda a, b: a + b,
    (0x0, 0x20): lambda a, b: a - b,
    (0x0, 0x01): lambda a, b: _signed(a) * _signed(b),
    (0x1, 0x00): lambda a, b: a << (b & 31),
    (0x1, 0x01): lambda a, b: (_signed(a) * _signed(b)) >> 32,
    (0x2, 0x00): lambda a, b: int(_signed(a) < _signed(b)),
    (0x2, 0x01): lambda a, b: (_signed(a) * b) >> 32,
    (0x3, 0x00): lambda a, b: int(a < b),
    (0x3, 0x01): lambda a, b: (a * b) >> 32,
    (0x4, 0x00): lambda a, b: a ^ b,
    (0x4, 0x01): lambda a, b: _trunc_div(_signed(a), _signed(b)),
    (0x5, 0x00): lambda a, b: a >> (b & 31),
    (0x5, 0x20): lambda a, b: _signed(a) >> (b & 31),
    # DIVU shares the signed quotient with DIV.
    (0x5, 0x01): lambda a, b: _trunc_div(_signed(a), _signed(b)),
    (0x6, 0x00): lambda a, b: a | b,
    (0x6, 0x01): lambda a, b: _trunc_rem(_signed(a), _signed(b)),
    (0x7, 0x00): lambda a, b: a & b,
    (0x7, 0x01): _unsigned_rem,
}

# funct3 -> (size in bytes, sign-extend)
_LOADS: dict[int, tuple[int, bool]] = {
    0x0: (1, True),
    0x1: (2, True),
    0x2: (4, False),
    0x4: (1, False),
    0x5: (2, False),
}

_STORES: dict[int, int] = {0x0: 1, 0x1: 2, 0x2: 4}

_BRANCHES: dict[int, Callable[[int, int], bool]] = {
    0x0: lambda a, b: a == b,
    0x1: lambda a, b: a != b,
    0x4: lambda a, b: _signed(a) < _signed(b),
    0x5: lambda a, b: _signed(a) >= _signed(b),
    0x6: lambda a, b: a < b,
    0x7: lambda a, b: a >= b,
}


def _rd(instruction: int) -> int:
    return (instruction >> 7) & 0x1F


def _funct3(instruction: int) -> int:
    return (instruction >> 12) & 0x7


def _rs1(instruction: int) -> int:
    return (instruction >> 15) & 0x1F


def _rs2(instruction: int) -> int:
    return (instruction >> 20) & 0x1F


def _funct7(instruction: int) -> int:
    return (instruction >> 25) & 0x7F


def _i_imm(instruction: int) -> int:
    return _sign_extend(instruction >> 20, 12)


class VirtualMachine(MachineState):
    """A machine state that decodes and executes RV32IM instructions."""

    def _advance(self, offset: int) -> None:
        self.pc = (self.pc + offset) & MASK32

    def execute(self, instruction: int) -> None:
        """Execute one instruction and step the program counter past it."""
        instruction &= MASK32
        opcode = instruction & OPCODE_MASK
        handler = self._HANDLERS.get(opcode)
        if handler is not None:
            handler(self, instruction)
        elif opcode == OP_SYSTEM:
            if instruction & EBREAK_BIT:
                print("ebreak")
                self.halt()
        else:
            print(f"Invalid opcode at PC={_signed(self.pc)}")
            self.halt(fault=True)
        self._advance(WORD_SIZE)

    def run(self) -> None:
        """Run until a halt, a fault, or the end of the program."""
        self.running = True
        while self.running and self.pc < self.program_size:
            self.execute(self.fetch())

    def exec_r(self, instruction: int) -> None:
        """Register-register arithmetic, including the M extension."""
        operation = _R_OPS.get((_funct3(instruction), _funct7(instruction)))
        if operation is None:
            self.halt(fault=True)
            return
        result = operation(self.regs[_rs1(instruction)], self.regs[_rs2(instruction)])
        self.write_reg(_rd(instruction), result)

    def exec_i(self, instruction: int) -> None:
        """Register-immediate arithmetic."""
        imm = _i_imm(instruction)
        funct3 = _funct3(instruction)
        funct7 = _funct7(instruction)
        value = self.regs[_rs1(instruction)]
        shamt = imm & 0x1F
        if funct3 == 0x0:
            result = _signed(value) + imm
        elif funct3 == 0x1:
            if funct7 != 0x00:
                self.halt(fault=True)
                return
            result = value << shamt
        elif funct3 == 0x2:
            result = int(_signed(value) < imm)
        elif funct3 == 0x3:
            result = int(value < (imm & MASK32))
        elif funct3 == 0x4:
            result = value ^ imm
        elif funct3 == 0x5:
            if funct7 == 0x00:
                result = value >> shamt
            elif funct7 == 0x20:
                result = _signed(value) >> shamt
            else:
                self.halt(fault=True)
                return
        elif funct3 == 0x6:
            result = _signed(value) | imm
        else:
            result = _signed(value) & imm
        self.write_reg(_rd(instruction), result)

    def exec_load(self, instruction: int) -> None:
        """Load a byte, halfword or word from memory into a register."""
        kind = _LOADS.get(_funct3(instruction))
        if kind is None:
            self.halt(fault=True)
            return
        size, signed = kind
        address = (self.regs[_rs1(instruction)] + _i_imm(instruction)) & MASK32
        self.write_reg(_rd(instruction), self.read_mem(address, size, signed))

    def exec_store(self, instruction: int) -> None:
        """Store a byte, halfword or word from a register into memory."""
        size = _STORES.get(_funct3(instruction))
        if size is None:
            self.halt(fault=True)
            return
        imm = _sign_extend((_funct7(instruction) << 5) | _rd(instruction), 12)
        address = (self.regs[_rs1(instruction)] + imm) & MASK32
        self.write_mem(address, self.regs[_rs2(instruction)], size)

    def exec_branch(self, instruction: int) -> None:
        """Conditional branch relative to the current instruction."""
        compare = _BRANCHES.get(_funct3(instruction))
        if compare is None:
            self.halt(fault=True)
            return
        imm = (
            (((instruction >> 31) & 0x1) << 12)
            | (((instruction >> 25) & 0x3F) << 5)
            | (((instruction >> 8) & 0xF) << 1)
            | (((instruction >> 7) & 0x1) << 11)
        )
        imm = _sign_extend(imm, 13)
        if compare(self.regs[_rs1(instruction)], self.regs[_rs2(instruction)]):
            self._advance(imm - WORD_SIZE)

    def exec_jal(self, instruction: int) -> None:
        """Jump and link by a PC-relative offset."""
        imm = (
            (((instruction >> 31) & 0x1) << 20)
            | (instruction & 0xFF000)
            | (((instruction >> 20) & 0x1) << 11)
            | (((instruction >> 21) & 0x3FF) << 1)
        )
        imm = _sign_extend(imm, 21)
        self.write_reg(_rd(instruction), self.pc + WORD_SIZE)
        self._advance(imm)

    def exec_jalr(self, instruction: int) -> None:
        """Jump and link to a register plus immediate."""
        self.write_reg(_rd(instruction), self.pc + WORD_SIZE)
        self.pc = (self.regs[_rs1(instruction)] + _i_imm(instruction)) & MASK32

    def exec_lui(self, instruction: int) -> None:
        """Load the upper 20 bits of an immediate."""
        self.write_reg(_rd(instruction), instruction & 0xFFFFF000)

    def exec_auipc(self, instruction: int) -> None:
        """Add an upper immediate to the program counter."""
        self.write_reg(_rd(instruction), self.pc + (instruction & 0xFFFFF000))

    _HANDLERS: dict[int, Callable[[VirtualMachine, int], None]] = {
        OP_R: exec_r,
        OP_I: exec_i,
        OP_LOAD: exec_load,
        OP_STORE: exec_store,
        OP_BRANCH: exec_branch,
        OP_JAL: exec_jal,
        OP_JALR: exec_jalr,
        OP_LUI: exec_lui,
        OP_AUIPC: exec_auipc,
    }