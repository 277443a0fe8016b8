[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "turborabbit"
version = "2.0.0"
description = "A resilient RabbitMQ client library with connection pooling, consumers, publishers and topology building."
requires-python = ">=3.10"
keywords = ["rabbitmq", "amqp", "messaging", "publisher", "consumer", "connection-pool"]
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
    "Topic :: Software Development :: Libraries :: Python Modules",
    "Topic :: System :: Networking",
]
dependencies = [
    "pika",
    "cryptography",
    "zstandard",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["turborabbit"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
