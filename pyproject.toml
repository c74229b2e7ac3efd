[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "rawnet"
version = "0.1.0"
description = "IPv4 header packing, Internet checksums, IP/TCP option insertion, raw IPv4 sending and Linux network interface inspection"
requires-python = ">=3.10"
dependencies = []
keywords = ["ip", "ipv6", "checksum", "crc32c", "raw socket", "network interface", "packet"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Networking",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["rawnet"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
