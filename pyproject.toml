[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "flagdcore"
version = "0.1.0"
description = "Feature flag evaluation core: flag definitions, JSON Logic targeting, fractional rollouts, semantic version rules and OFREP response models"
requires-python = ">=3.10"
keywords = ["feature-flags", "feature-toggles", "jsonlogic", "targeting", "ofrep"]
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
    "Topic :: Software Development :: Libraries :: Python Modules",
]
dependencies = [
    "cryptography",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["flagdcore"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
