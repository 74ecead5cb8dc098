[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "s2voronoi"
version = "0.1.0"
description = "Building blocks for spherical Voronoi cells on the unit sphere: tangent-plane clipping, validation and timing records"
requires-python = ">=3.10"
dependencies = []
keywords = ["voronoi", "sphere", "geometry", "s2", "half-plane clipping", "gnomonic"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Science/Research",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Scientific/Engineering :: Mathematics",
]

[project.optional-dependencies]
test = ["pytest", "hypothesis"]

[tool.hatch.build.targets.wheel]
packages = ["s2voronoi"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
