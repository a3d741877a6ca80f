[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "mosdns"
version = "5.0.0"
description = "A pluggable DNS forwarder core with domain, IP and hosts matching, LRU caches and rate limiting."
requires-python = ">=3.10"
keywords = ["dns", "forwarder", "hosts", "lru", "domain-matcher", "rate-limiting"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: System Administrators",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: Name Service (DNS)",
]
dependencies = [
    "dnspython>=2.4",
    "pyyaml>=6.0",
]

[project.optional-dependencies]
test = [
    "pytest>=7.0",
]

[project.scripts]
mosdns = "mosdns.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["mosdns"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
