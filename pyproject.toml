[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "optoolkit"
version = "0.1.0"
description = "Building blocks for controller operators: operand graphs, executors, admission webhooks, event sources and telemetry helpers."
requires-python = ">=3.11"
keywords = ["operator", "controller", "reconciler", "webhook", "admission", "dag"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Software Development :: Libraries :: Application Frameworks",
]
dependencies = []

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["optoolkit"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py311"

[tool.mypy]
python_version = "3.11"
