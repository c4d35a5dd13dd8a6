[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "dbmeta"
version = "0.1.0"
description = "Structured database metadata readers for information_schema, PostgreSQL, MySQL and Oracle"
requires-python = ">=3.10"
dependencies = []
keywords = ["database", "metadata", "information_schema", "postgresql", "mysql", "oracle", "sql"]
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
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["dbmeta"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
