[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "oikos"
version = "1.0.0"
description = "Records of a university's organisational units and physical spaces in SQLite, with hierarchy queries."
requires-python = ">=3.10"
dependencies = []
keywords = [
    "university",
    "physical spaces",
    "organisational units",
    "hierarchy",
    "sqlite",
    "repository",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Database :: Front-Ends",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["oikos"]

[tool.hatch.build.targets.sdist]
include = ["oikos", "tests", "pyproject.toml"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
