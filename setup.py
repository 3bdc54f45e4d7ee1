#!/usr/bin/env python3
"""
semcache Setup Script
=====================
Allows installation of the semcache package.

Usage:
    pip install -e .           # Development install
    pip install -e ".[test]"   # Development install with test tools
    pip install .              # Regular install
"""

from setuptools import setup, find_packages

setup(
    name="semcache",
    version="1.0.0",
    packages=find_packages(include=["semcache", "semcache.*"]),
    python_requires=">=3.10",
    install_requires=[
        "redis>=5.3",
    ],
    extras_require={
        "test": [
            "pytest>=7.4",
            "pytest-asyncio>=0.23",
        ],
    },
    entry_points={
        "console_scripts": [
            "semcache=semcache.cli:main",
        ],
    },
)
