[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "pgconfig"
version = "0.1.0"
description = "PostgreSQL tuning calculator with a command-line tool and an HTTP API"
requires-python = ">=3.10"
keywords = ["postgresql", "tuning", "configuration", "database", "postgresql.conf"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Environment :: Web Environment",
    "Intended Audience :: System Administrators",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Database",
]
dependencies = [
    "pyyaml",
    "requests",
    "beautifulsoup4",
    "flask",
    "psutil",
]

[project.optional-dependencies]
test = [
    "pytest",
    "responses",
]

[project.scripts]
pgconfigctl = "pgconfig.cli:main"
pgconfig-api = "pgconfig.api:main"
pgconfig-docgen = "pgconfig.docgen:main"

[tool.hatch.build.targets.wheel]
packages = ["pgconfig"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
ignore_missing_imports = true
