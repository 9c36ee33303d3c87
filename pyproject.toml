[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "botplugins"
version = "0.1.0"
description = "Chat bot plugin logic: group reminder timers, gist join checks, MIDI note tools, a song guessing game and holiday reminders"
requires-python = ">=3.10"
dependencies = [
    "mido",
]
keywords = ["chat", "bot", "timer", "cron", "midi", "reminder"]
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
    "Topic :: Communications :: Chat",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["botplugins"]

[tool.pytest.ini_options]
addopts = "-ra"
