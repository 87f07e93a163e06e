[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "gbacore"
version = "0.1.0"
description = "ARM7TDMI processor core, instruction decoders, debugger hooks and GPIO real-time clock for a Game Boy Advance emulator"
requires-python = ">=3.10"
dependencies = []
keywords = ["emulator", "gba", "arm7tdmi", "arm", "thumb", "cpu", "rtc"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
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

[tool.hatch.build.targets.wheel]
packages = ["gbacore"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
