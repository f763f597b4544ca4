"""Registers, memory and program storage of the RV32 virtual machine."""

from __future__ import annotations

from collections.abc import Iterable

MEM_SIZE = 1 << 20
REG_COUNT = 32
MASK32 = 0xFFFFFFFF
WORD_SIZE = 4


class MachineState:
    """Register file, byte-addressed memory, loaded program and run flags."""

    def __init__(self, program: Iterable[int], initial_regs: Iterable[int] | None = None) -> None:
        self.program: tuple[int, ...] = tuple(word & MASK32 for word in program)
        self.program_size: int = len(self.program) * WORD_SIZE
        regs = [value & MASK32 for value in (initial_regs or ())]
        if len(regs) > REG_COUNT:
            raise ValueError(f"at most {REG_COUNT} initial register values are allowed")
        self.regs: list[int] = regs + [0] * (REG_COUNT - len(regs))
        self.pc: int = 0
        self.memory = bytearray(MEM_SIZE)
        self.running: bool = False
        self.fault: bool = False

    @classmethod
    def from_bytes(cls, data: bytes, initial_regs: Iterable[int] | None = None) -> MachineState:
        """Build a state from a raw little-endian program image."""
        padded = bytes(data) + b"\x00" * (-len(data) % WORD_SIZE)
        words = (
            int.from_bytes(padded[start:start + WORD_SIZE], "little")
            for start in range(0, len(padded), WORD_SIZE)
        )
        state = cls(words, initial_regs)
        state.program_size = len(data)
        return state

    def halt(self, fault: bool = False) -> None:
        """Stop execution, optionally recording a fault."""
        self.running = False
        if fault:
            self.fault = True

    def fetch(self) -> int:
        """Return the instruction word at the current program counter."""
        return self.program[self.pc // WORD_SIZE]

    def write_reg(self, index: int, value: int) -> None:
        """Store a 32-bit value in a register; writes to x0 are discarded."""
        if index == 0:
            return
        self.regs[index] = value & MASK32

    def _in_bounds(self, address: int, size: int) -> bool:
        return 0 <= address and address + size <= MEM_SIZE

    def write_mem(self, address: int, data: int, size: int) -> None:
        """Store the low ``size`` bytes of ``data`` little-endian at ``address``."""
        address &= MASK32
        if not self._in_bounds(address, size):
            print("Tried to set memory out of bounds")
            self.halt(fault=True)
            return
        mask = (1 << (8 * size)) - 1
        self.memory[address:address + size] = (data & mask).to_bytes(size, "little")

    def read_mem(self, address: int, size: int, signed: bool = False) -> int:
        """Load ``size`` bytes little-endian, extended to a 32-bit value."""
        address &= MASK32
        if not self._in_bounds(address, size):
            print("Tried to read memory out of bounds")
            self.halt(fault=True)
            return 0
        raw = bytes(self.memory[address:address + size])
        return int.from_bytes(raw, "little", signed=signed) & MASK32