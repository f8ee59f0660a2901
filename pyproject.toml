[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "opskit"
version = "0.1.0"
description = "Operational building blocks: registered metrics, token-bucket rate limiting, queued logging and routed inter-thread queues"
requires-python = ">=3.10"
dependencies = []
keywords = ["metrics", "ratelimit", "token-bucket", "logging", "queues", "monitoring"]
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
    "Topic :: System :: Monitoring",
    "Topic :: System :: Logging",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["opskit"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
