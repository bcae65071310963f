[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "youflac"
version = "0.1.0"
description = "Match music videos to lossless audio, track downloads in a queue, name files for media servers and handle lyrics"
requires-python = ">=3.10"
dependencies = [
    "requests",
]
keywords = ["flac", "music video", "lyrics", "lrc", "srt", "jellyfin", "plex", "nfo", "m3u8", "qobuz", "isrc"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: End Users/Desktop",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Multimedia :: Sound/Audio",
    "Topic :: Multimedia :: Video",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = [
    "pytest",
    "responses",
]

[tool.hatch.build.targets.wheel]
packages = ["youflac"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
