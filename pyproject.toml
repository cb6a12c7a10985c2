[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "cellrep"
version = "0.1.0"
description = "Cell representative helpers: rootfs and volume-mount conversion, JSON configuration loading, an HTTP(S) probe command and a process test runner"
requires-python = ">=3.10"
dependencies = []
keywords = ["cell", "containers", "rootfs", "configuration", "scheduler", "https", "probe"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Distributed Computing",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
cellrep-gocurl = "cellrep.gocurl:main"

[tool.hatch.build.targets.wheel]
packages = ["cellrep"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
