[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "rumba"
version = "0.1.0"
description = "Building blocks for a documentation site's member features: request tags, StatsD metrics, settings, collection models and browser-compat update parsing."
requires-python = ">=3.11"
dependencies = []
keywords = ["statsd", "metrics", "user-agent", "browser-compat", "settings"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP :: Dynamic Content",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["rumba"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py311"
