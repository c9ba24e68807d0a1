[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "dmarckit"
version = "0.1.0"
description = "DMARC policy evaluation: record parsing, SPF/DKIM alignment and DNS lookups"
requires-python = ">=3.10"
keywords = ["dmarc", "spf", "dkim", "email", "dns", "policy"]
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
    "Topic :: Communications :: Email :: Filters",
]
dependencies = [
    "dnspython",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["dmarckit"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
