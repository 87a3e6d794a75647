[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "nerfbox"
version = "0.1.0"
description = "A small neural radiance field trainer with ray sampling, volume compositing and a live preview window"
requires-python = ">=3.10"
keywords = ["nerf", "neural radiance fields", "volume rendering", "ray sampling", "mlp", "numpy"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Science/Research",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Artificial Intelligence",
    "Topic :: Multimedia :: Graphics :: 3D Rendering",
]
dependencies = [
    "numpy",
    "pillow",
    "pygame",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
nerfbox = "nerfbox.app:main"

[tool.hatch.build.targets.wheel]
packages = ["nerfbox"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
ignore_missing_imports = true
