import pytest

from rv32vm.dispatch import run_table
from rv32vm.machine import VirtualMachine

EBREAK = 0x00100073
ECALL = 0x00000073


def addi(rd, rs1, imm):
    return ((imm & 0xFFF) << 20) | (rs1 << 15) | (rd << 7) | 0x13


def add(rd, rs1, rs2):
    return (rs2 << 20) | (rs1 << 15) | (rd << 7) | 0x33


def sw(rs2, rs1, imm):
    imm &= 0xFFF
    return ((imm >> 5) << 25) | (rs2 << 20) | (rs1 << 15) | (0x2 << 12) | ((imm & 0x1F) << 7) | 0x23


def lw(rd, rs1, imm):
    return ((imm & 0xFFF) << 20) | (rs1 << 15) | (0x2 << 12) | (rd << 7) | 0x03


def bne(rs1, rs2, imm):
    imm &= 0x1FFF
    return (
        (((imm >> 12) & 1) << 31)
        | (((imm >> 5) & 0x3F) << 25)
        | (rs2 << 20)
        | (rs1 << 15)
        | (0x1 << 12)
        | (((imm >> 1) & 0xF) << 8)
        | (((imm >> 11) & 1) << 7)
        | 0x63
    )


def run_both(program, regs=None):
    switch_vm = VirtualMachine(program, regs)
    switch_vm.run()
    table_vm = VirtualMachine(program, regs)
    run_table(table_vm)
    return switch_vm, table_vm


@pytest.mark.parametrize(
    "program",
    [
        [addi(1, 0, 5), addi(2, 0, 7), add(3, 1, 2)],
        [addi(1, 0, 3), addi(2, 2, 1), addi(1, 1, -1), bne(1, 0, -8)],
        [addi(1, 0, -1), addi(2, 0, 64), sw(1, 2, 0), lw(3, 2, 0)],
    ],
)
def test_matches_switch_interpreter_without_system_instructions(program):
    switch_vm, table_vm = run_both(program)
    assert table_vm.regs == switch_vm.regs
    assert table_vm.pc == switch_vm.pc
    assert table_vm.fault == switch_vm.fault
    assert table_vm.memory == switch_vm.memory


def test_countdown_loop_result():
    program = [addi(1, 0, 3), addi(2, 2, 1), addi(1, 1, -1), bne(1, 0, -8)]
    vm = VirtualMachine(program)
    run_table(vm)
    assert vm.regs[1] == 0
    assert vm.regs[2] == 3
    assert vm.pc == vm.program_size


def test_store_then_load_round_trip():
    program = [addi(2, 0, 128), sw(1, 2, 0), lw(3, 2, 0)]
    vm = VirtualMachine(program, [0, 0xDEADBEEF])
    run_table(vm)
    assert vm.regs[3] == 0xDEADBEEF
    assert vm.read_mem(128, 4) == 0xDEADBEEF


def test_ebreak_halts_without_advancing_pc():
    program = [addi(1, 0, 1), EBREAK, addi(1, 0, 9)]
    vm = VirtualMachine(program)
    run_table(vm)
    assert vm.pc == 4
    assert vm.regs[1] == 1
    assert vm.running is False
    assert vm.fault is False


def test_any_system_instruction_halts():
    program = [ECALL, addi(1, 0, 9)]
    switch_vm, table_vm = run_both(program)
    assert table_vm.pc == 0
    assert table_vm.regs[1] == 0
    assert switch_vm.regs[1] == 9


def test_illegal_opcode_faults_and_keeps_pc(capsys):
    program = [addi(1, 0, 2), 0x0000007F, addi(1, 0, 9)]
    vm = VirtualMachine(program)
    run_table(vm)
    assert vm.fault is True
    assert vm.running is False
    assert vm.pc == 4
    assert vm.regs[1] == 2
    assert "Invalid opcode at PC=4" in capsys.readouterr().out


def test_out_of_bounds_store_faults_like_switch():
    program = [lw(0, 0, 0), sw(1, 2, 0), addi(3, 0, 1)]
    regs = [0, 7, 0xFFFFFFF0]
    switch_vm, table_vm = run_both(program, regs)
    assert table_vm.fault is True
    assert table_vm.pc == switch_vm.pc
    assert table_vm.regs[3] == 0


def test_x0_stays_zero():
    vm = VirtualMachine([addi(0, 0, 5), add(1, 0, 0)])
    run_table(vm)
    assert vm.regs[0] == 0
    assert vm.regs[1] == 0


def test_initial_registers_are_used():
    vm = VirtualMachine([add(3, 1, 2)], [0, 40, 2])
    run_table(vm)
    assert vm.regs[3] == 42
    assert vm.regs[1:3] == [40, 2]


def test_empty_program_leaves_state_untouched():
    vm = VirtualMachine([], [0, 11])
    run_table(vm)
    assert vm.pc == 0
    assert vm.regs[1] == 11
    assert vm.fault is False


def test_program_from_bytes_runs():
    image = b"".join(word.to_bytes(4, "little") for word in [addi(5, 0, 21), add(5, 5, 5)])
    vm = VirtualMachine.from_bytes(image)
    run_table(vm)
    assert vm.regs[5] == 42
    assert vm.pc == len(image)