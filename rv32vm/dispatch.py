"""Table-driven execution loop for the RV32IM virtual machine."""

from __future__ import annotations

from collections.abc import Callable

from rv32vm.machine import (
    OP_AUIPC,
    OP_BRANCH,
    OP_I,
    OP_JAL,
    OP_JALR,
    OP_LOAD,
    OP_LUI,
    OP_R,
    OP_STORE,
    OP_SYSTEM,
    OPCODE_MASK,
    VirtualMachine,
)
from rv32vm.state import MASK32, WORD_SIZE

Step = Callable[[VirtualMachine, int], None]


def _then_advance(handler: Step) -> Step:
    """Wrap an instruction handler so the program counter moves past it."""

    def step(vm: VirtualMachine, instruction: int) -> None:
        handler(vm, instruction)
        vm.pc = (vm.pc + WORD_SIZE) & MASK32

    return step


def _system(vm: VirtualMachine, instruction: int) -> None:
    # Any system instruction stops the table-driven loop; the PC stays put.
    vm.halt()


def _illegal(vm: VirtualMachine, instruction: int) -> None:
    pc = vm.pc - (1 << 32) if vm.pc & 0x80000000 else vm.pc
    print(f"Invalid opcode at PC={pc}")
    vm.halt(fault=True)


def _build_table() -> tuple[Step, ...]:
    handlers: dict[int, Step] = {
        OP_R: _then_advance(VirtualMachine.exec_r),
        OP_I: _then_advance(VirtualMachine.exec_i),
        OP_LOAD: _then_advance(VirtualMachine.exec_load),
        OP_STORE: _then_advance(VirtualMachine.exec_store),
        OP_BRANCH: _then_advance(VirtualMachine.exec_branch),
        OP_JAL: _then_advance(VirtualMachine.exec_jal),
        OP_JALR: _then_advance(VirtualMachine.exec_jalr),
        OP_LUI: _then_advance(VirtualMachine.exec_lui),
        OP_AUIPC: _then_advance(VirtualMachine.exec_auipc),
        OP_SYSTEM: _system,
    }
    return tuple(handlers.get(opcode, _illegal) for opcode in range(OPCODE_MASK + 1))


DISPATCH_TABLE: tuple[Step, ...] = _build_table()


def run_table(vm: VirtualMachine) -> None:
    """Run ``vm`` by looking each opcode up in a 128-entry handler table.

    Unlike :meth:`VirtualMachine.run`, any system instruction halts the
    machine, and neither a system instruction nor an illegal opcode moves
    the program counter past itself.
    """
    vm.running = True
    while vm.running and vm.pc < vm.program_size:
        instruction = vm.fetch()
        DISPATCH_TABLE[instruction & OPCODE_MASK](vm, instruction)