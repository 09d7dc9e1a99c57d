[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "edgemq"
version = "0.3.0"
description = "MQTT broker building blocks: packet codecs, subscription handling, a REST control API and an application launcher"
requires-python = ">=3.10"
dependencies = []
keywords = ["mqtt", "broker", "iot", "edge", "publish-subscribe", "mqtt5"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet",
    "Topic :: Communications",
    "Topic :: System :: Networking",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
edgemq = "edgemq.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["edgemq"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
