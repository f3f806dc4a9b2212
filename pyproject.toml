[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "lrpar"
version = "0.1.0"
description = "Table-driven LR parsing with CPCT+ syntax error recovery"
requires-python = ">=3.10"
dependencies = []
keywords = ["parser", "lr", "yacc", "error recovery", "cpct+"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Compilers",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["lrpar"]

[tool.pytest.ini_options]
addopts = "-ra"
