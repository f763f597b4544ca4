# rv32vm

An interpreter for RV32IM machine code. It loads a flat binary of
little-endian 32-bit instructions, runs it from address 0 against
32 registers and 1 MiB of zeroed memory, and writes the final program
counter, register values and fault flag to a text report.

## Two execution loops

- **switch** (`VirtualMachine.run` in `rv32vm.machine`) decodes each
  instruction's opcode and steps the program counter past it. A system
  instruction halts the machine only when it is `ebreak` (bit 20 set);
  the program counter still moves past it.
- **table** (`run_table` in `rv32vm.dispatch`) looks each opcode up in a
  128-entry handler table. Any system instruction halts the machine, and
  neither a system instruction nor an illegal opcode moves the program
  counter past itself.

The two loops execute ordinary instructions the same way, but the final
program counter can differ where the run ends on a system instruction
or an illegal opcode.

Execution stops:

- at a halting system instruction (see above);
- when the program counter reaches or passes the end of the program;
- on a fault: an unknown opcode, an unknown function code, or a load or
  store outside the 1 MiB memory. The fault flag is then set and a
  message is printed.

Writes to register `x0` are discarded. A division or remainder by zero
raises `ZeroDivisionError`. `DIVU` yields the same signed quotient as
`DIV`.

## Installation

```
pip install .
```

## Command line

```
rv32vm <input file> <output file> [-S | -G | -B] [<register> <value> ...]
```

- `-S` runs the switch loop (the default), writing
  `<output file>_switch.txt`.
- `-G` runs the table loop, writing `<output file>_goto.txt`.
- `-B` runs both and writes both reports.

Remaining arguments are register/value pairs set before the run; an
unpaired trailing argument is ignored, text that does not start with a
number reads as 0, and a register index outside 0–31 is an error. The
processor time each run took is printed. The command exits with status
1 on too few arguments, a bad register index, or a file that cannot be
opened.

```
rv32vm program.bin result -B 5 2 6 10
```

runs `program.bin` in both loops with `x5 = 2` and `x6 = 10`,
producing `result_switch.txt` and `result_goto.txt`.

A report looks like this:

```
PC and register values from switch interpreter (in hex): 
 
PC = 1c 
regs[0] = 0 
regs[1] = 2a 
...
Ended with fault: 0
```

## Library use

```python
from rv32vm.machine import VirtualMachine
from rv32vm.dispatch import run_table

with open("program.bin", "rb") as f:
    data = f.read()

regs = [0] * 32
regs[5], regs[6] = 2, 10

vm = VirtualMachine.from_bytes(data, regs)
vm.run()
print(hex(vm.pc), vm.regs[7], vm.fault)

other = VirtualMachine.from_bytes(data, regs)
run_table(other)
```

Initial registers are given as a sequence starting at `x0`; a shorter
sequence leaves the rest at zero, and more than 32 values is a
`ValueError`. A single instruction can be run with
`VirtualMachine.execute(instruction)`. `rv32vm.state.MachineState` holds
the registers, memory and program, with `read_mem`, `write_mem` and
`write_reg`.

`rv32vm.cli` also offers `parse_args(argv)` and `format_report(vm, label)`
for building the same reports yourself.

## What it does not do

There is no assembler or ELF loader: input must already be a flat
binary image. System calls (`ecall`), CSR instructions, interrupts and
memory-mapped devices are not supported, so a program can produce
results only through its registers and memory.

## Tests

```
pip install .[test]
pytest
```