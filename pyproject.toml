[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "eduos"
version = "0.1.0"
description = "Small teaching models of operating-system pieces: a heap allocator, a sector-based file system and a double-buffered stream copier"
requires-python = ">=3.10"
dependencies = []
keywords = ["allocator", "heap", "filesystem", "double-buffering", "education"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Education",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Education",
    "Topic :: System :: Operating System",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
eduos-pingpong = "eduos.pingpong:main"

[tool.hatch.build.targets.wheel]
packages = ["eduos"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
