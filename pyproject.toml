[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "twig"
version = "0.1.0"
description = "A user-space IPv4 host that answers ICMP echo, UDP echo and UDP time requests read from a pcap file, plus UDP ping and time clients"
requires-python = ">=3.10"
dependencies = []
keywords = ["pcap", "icmp", "udp", "echo", "ping", "rfc868", "networking"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Education",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX",
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

[project.scripts]
twig = "twig.cli:main"
socket-time = "twig.socket_time:main"
udpping = "twig.udpping:main"

[tool.hatch.build.targets.wheel]
packages = ["twig"]

[tool.pytest.ini_options]
addopts = "-ra"
