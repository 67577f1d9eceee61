[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "reconkit"
version = "0.1.0"
description = "DNS and network reconnaissance toolkit: rate-limited resolvers and pools, wildcard detection, NSEC walking, ASN caching and graph exports"
requires-python = ">=3.10"
keywords = ["dns", "reconnaissance", "subdomain", "resolver", "nsec", "wildcard", "asn", "graph"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Information Technology",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: Name Service (DNS)",
    "Topic :: Security",
    "Topic :: System :: Networking",
]
dependencies = [
    "dnspython>=2.3",
    "jinja2>=3.0",
]

[project.optional-dependencies]
test = [
    "pytest>=7.0",
]

[tool.hatch.build.targets.wheel]
packages = ["reconkit"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
ignore_missing_imports = true
