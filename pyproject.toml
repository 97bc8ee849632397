[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "pollbot"
version = "0.1.0"
description = "A Mattermost chat bot for creating and running polls, with polls and votes stored in Tarantool"
requires-python = ">=3.10"
keywords = ["mattermost", "bot", "poll", "voting", "tarantool", "chat"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Communications :: Chat",
]
dependencies = [
    "msgpack>=1.0",
    "requests>=2.28",
    "websocket-client>=1.5",
    "python-dotenv>=1.0",
]

[project.optional-dependencies]
test = [
    "pytest>=7.0",
]

[project.scripts]
pollbot = "pollbot.app:main"

[tool.hatch.build.targets.wheel]
packages = ["pollbot"]

[tool.pytest.ini_options]
addopts = "-ra"
