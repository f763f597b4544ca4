"""Command line front end: load a program image, run it, and write register reports."""

from __future__ import annotations

import re
import sys
import time
from collections.abc import Callable, Sequence
from enum import Enum

from rv32vm.dispatch import run_table
from rv32vm.machine import VirtualMachine
from rv32vm.state import MASK32, REG_COUNT

_PROG = "rv32vm"
_USAGE = (
    f"Usage: {_PROG} <input file> <output file> "
    "[-S (switch) or -G (goto) or -B (both)] <<register> <value>> \n"
    f" Example: {_PROG} input.bin output.txt -B 5 2 6 10"
)
_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


class Mode(Enum):
    """Which execution loop (or both) to run."""

    SWITCH = "-S"
    GOTO = "-G"
    BOTH = "-B"

    @property
    def labels(self) -> tuple[str, ...]:
        """Names of the interpreters this mode runs, in run order."""
        if self is Mode.SWITCH:
            return ("switch",)
        if self is Mode.GOTO:
            return ("goto",)
        return ("switch", "goto")


_RUNNERS: dict[str, Callable[[VirtualMachine], None]] = {
    "switch": VirtualMachine.run,
    "goto": run_table,
}


def _atoi(text: str) -> int:
    """Parse a leading decimal integer, yielding 0 when there is none."""
    match = _LEADING_INT.match(text)
    return int(match.group(1)) if match else 0


def parse_args(argv: Sequence[str]) -> tuple[str, str, Mode, list[int]]:
    """Split arguments into input path, output prefix, mode and initial registers.

    Raises ValueError when fewer than two arguments are given or a register
    index falls outside the register file.
    """
    args = list(argv)
    if len(args) < 2:
        raise ValueError("an input file and an output file are required")
    input_path, output_prefix, *rest = args
    mode = Mode.SWITCH
    flags = {member.value: member for member in Mode}
    if rest and rest[0] in flags:
        mode = flags[rest[0]]
        rest = rest[1:]
    regs = [0] * REG_COUNT
    for reg_text, value_text in zip(rest[0::2], rest[1::2]):
        index = _atoi(reg_text)
        if not 0 <= index < REG_COUNT:
            raise ValueError(f"register index {index} is out of range")
        regs[index] = _atoi(value_text) & MASK32
    return input_path, output_prefix, mode, regs


def format_report(vm: VirtualMachine, label: str) -> str:
    """Render the program counter, registers and fault flag of a finished run."""
    lines = [
        f"PC and register values from {label} interpreter (in hex): \n \n",
        f"PC = {vm.pc & MASK32:x} \n",
    ]
    lines.extend(f"regs[{index}] = {value & MASK32:x} \n" for index, value in enumerate(vm.regs))
    lines.append(f"Ended with fault: {int(vm.fault)}")
    return "".join(lines)


def main(argv: Sequence[str] | None = None) -> int:
    """Run the program named on the command line and write its reports."""
    args = list(sys.argv[1:] if argv is None else argv)
    if len(args) < 2:
        print(_USAGE)
        return 1
    try:
        input_path, output_prefix, mode, regs = parse_args(args)
    except ValueError as err:
        print(err)
        return 1

    try:
        with open(input_path, "rb") as handle:
            image = handle.read()
    except OSError:
        print("Error opening input file")
        return 1

    finished: list[tuple[str, VirtualMachine]] = []
    for label in mode.labels:
        vm = VirtualMachine.from_bytes(image, regs)
        start = time.process_time()
        _RUNNERS[label](vm)
        elapsed = time.process_time() - start
        print(f"Using {label}: {elapsed:f} seconds")
        finished.append((label, vm))

    for label, vm in finished:
        path = f"{output_prefix}_{label}.txt"
        try:
            with open(path, "w", encoding="ascii") as out:
                out.write(format_report(vm, label))
        except OSError:
            print(f"Error opening output file ({label})")
            return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())