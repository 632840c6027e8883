"""
ChannelDigest — setuptools build script.

Usage:
    # Development (editable install):
    pip install -e .

    # Run:
    channel-digest --test

Requires ffmpeg and ffprobe on PATH at runtime.
"""

from setuptools import setup

APP_NAME = "ChannelDigest"

setup(
    name=APP_NAME,
    version="1.0.0",
    description="Incremental YouTube channel transcription and analysis digest",
    packages=[
        "channeldigest",
        "channeldigest.core",
        "channeldigest.cli",
    ],
    py_modules=["main"],
    install_requires=[
        "requests>=2.28.0",
        "yt-dlp",
    ],
    python_requires=">=3.10",
    entry_points={
        "console_scripts": [
            "channel-digest=main:main",
        ],
    },
)
