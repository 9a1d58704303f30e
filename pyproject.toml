[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "kratixcli"
version = "0.1.0"
description = "Command-line tooling for Kratix Promises: workflow containers, container builds, split Promise assembly and pipeline aspects"
requires-python = ">=3.10"
dependencies = [
    "pyyaml",
]
keywords = [
    "kratix",
    "promise",
    "kubernetes",
    "platform-engineering",
    "crossplane",
    "helm",
    "terraform",
    "code-generation",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Code Generators",
    "Topic :: System :: Systems Administration",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
kratix = "kratixcli.cli:main"
kratix-operator-aspect = "kratixcli.aspects.request:operator_main"
kratix-crossplane-aspect = "kratixcli.aspects.request:crossplane_main"
kratix-terraform-module-aspect = "kratixcli.aspects.terraform_module:main"

[tool.hatch.build.targets.wheel]
packages = ["kratixcli"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
ignore_missing_imports = true
