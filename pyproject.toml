[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "webfilebrowser"
version = "1.0.0"
description = "A small HTTP file browser with chunked uploads, streamed downloads and basic file management"
requires-python = ">=3.10"
keywords = ["file browser", "http", "upload", "chunked upload", "file manager", "flask"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Web Environment",
    "Framework :: Flask",
    "Intended Audience :: End Users/Desktop",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
    "Topic :: Desktop Environment :: File Managers",
]
dependencies = [
    "flask",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
webfilebrowser = "webfilebrowser.server:main"

[tool.hatch.build.targets.wheel]
packages = ["webfilebrowser"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
