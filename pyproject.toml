[build-system]
requires = ["setuptools>=64"]
build-backend = "setuptools.build_meta"

[project]
name = "capypdf"
version = "0.16.99"
description = "Building blocks for PDF generation: CID-keyed CFF font parsing and subsetting, document properties and mesh shading streams."
requires-python = ">=3.10"
dependencies = []
keywords = ["pdf", "cff", "font", "subsetting", "shading", "pdf/a", "pdf/x"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Text Processing :: Fonts",
    "Topic :: Printing",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.setuptools.packages.find]
include = ["capypdf*"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
