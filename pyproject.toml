[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "rv32vm"
version = "0.1.0"
description = "An interpreter for RV32IM machine code with register and memory state reporting"
requires-python = ">=3.10"
dependencies = []
keywords = ["risc-v", "rv32im", "interpreter", "emulator", "virtual machine"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Intended Audience :: Education",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Emulators",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
rv32vm = "rv32vm.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["rv32vm"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
