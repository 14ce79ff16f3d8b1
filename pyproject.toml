[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "endurance"
version = "0.1.0"
description = "Market data services, technical indicators and opportunity scoring for crypto trading"
requires-python = ">=3.10"
dependencies = []
keywords = ["trading", "technical-analysis", "indicators", "market-data", "crypto"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Financial and Insurance Industry",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Office/Business :: Financial :: Investment",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["endurance"]

[tool.pytest.ini_options]
addopts = "-ra"
