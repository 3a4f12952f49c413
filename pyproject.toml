[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "clxsim"
version = "0.1.0"
description = "Coulomb-excitation experiment modelling: reaction kinematics, detector geometry, hit building, level schemes, excitation probabilities and macro commands"
requires-python = ">=3.10"
keywords = [
    "nuclear physics",
    "coulomb excitation",
    "gamma-ray spectroscopy",
    "doppler correction",
    "kinematics",
    "level scheme",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Physics",
]
dependencies = [
    "numpy",
    "scipy",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
clxsim = "clxsim.commands:main"

[tool.hatch.build.targets.wheel]
packages = ["clxsim"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
