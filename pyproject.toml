[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "barcodepad"
version = "0.1.0"
description = "Turn barcode scans into gamepad macros played on a virtual Linux controller over the network"
requires-python = ">=3.10"
dependencies = []
keywords = ["barcode", "gamepad", "uinput", "controller", "macro", "joystick"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: End Users/Desktop",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Games/Entertainment",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
barcodepad-server = "barcodepad.server:main"
barcodepad-client = "barcodepad.client:main"

[tool.hatch.build.targets.wheel]
packages = ["barcodepad"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]
