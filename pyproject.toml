[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "modmqtt"
version = "1.0.0"
description = "Core of a Modbus to MQTT gateway: register values, converters, MQTT objects, payload generation and an MQTT client"
requires-python = ">=3.10"
keywords = ["modbus", "mqtt", "gateway", "home-automation", "iot"]
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
    "Topic :: Home Automation",
]
dependencies = [
    "paho-mqtt",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["modmqtt"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
