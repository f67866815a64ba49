[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "agentboard"
version = "0.1.5"
description = "Local task boards for coding agents: boards, cards, checklists and comments stored in SQLite"
requires-python = ">=3.10"
keywords = ["kanban", "task-board", "agents", "cli", "sqlite"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Office/Business :: Groupware",
]
dependencies = []

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
taskboard = "agentboard.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["agentboard"]

[tool.pytest.ini_options]
addopts = "-ra"
